"""Main entry point for the sweep buyer."""

import asyncio
import os
import threading

from dotenv import load_dotenv
load_dotenv()  # Load .env into environment variables

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sweepbuy.api.middleware import RequestLoggingMiddleware
from sweepbuy.api.routes.purchase import router as purchase_router
from sweepbuy.config.settings import settings
from sweepbuy.errors import SweepBuyError
from sweepbuy.logging import configure_logging
from sweepbuy.purchase.controller import PurchaseController, create_purchase_controller
from sweepbuy.state.models import Signer, WalletState

configure_logging()

logger = structlog.get_logger()

app = FastAPI(title="Sweep Buyer API")

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(purchase_router)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


class SweepRunner:
    """Interactive terminal front-end over the purchase controller."""

    def __init__(self, controller: PurchaseController):
        self.controller = controller

    def print_listing(self) -> None:
        session = self.controller.session
        if session.error_text:
            print(session.error_text)
        for item in session.items:
            mark = "x" if item.item_id in session.selected else " "
            print(f"  [{mark}] {item.token}  {item.floor_price} ETH")

    async def buy(self, account_address: str, network_id: int) -> None:
        wallet = WalletState(
            signer=Signer(address=account_address),
            connected=False,
            active_network_id=network_id,
            account_address=account_address,
        )
        session = await self.controller.submit(
            wallet, observer=lambda message: print(f"Progress: {message}")
        )
        if session.error_text:
            print(session.error_text)
        elif session.error_code:
            print(f"Not submitted ({session.error_code})")

    async def interactive_mode(self):
        """Run in interactive CLI mode."""
        logger.info("Starting interactive mode")

        print("\n" + "=" * 60)
        print("  SWEEP BUYER")
        print("=" * 60)
        print("\nCommands:")
        print("  load [contract]          - Load tokens to buy")
        print("  list                     - Show the listing and selection")
        print("  toggle <token id>        - Select or unselect a token")
        print("  buy <account> [network]  - Buy the selected tokens")
        print("  quit                     - Exit")
        print()

        while True:
            try:
                user_input = input("\n> ").strip()

                if not user_input:
                    continue

                command, _, argument = user_input.partition(" ")
                command = command.lower()
                argument = argument.strip()

                if command == "quit":
                    print("Goodbye!")
                    break

                if command == "load":
                    await self.controller.load_items(argument or None)
                    self.print_listing()
                elif command == "list":
                    self.print_listing()
                elif command == "toggle" and argument:
                    self.controller.toggle(argument)
                    self.print_listing()
                elif command == "buy" and argument:
                    account, _, network = argument.partition(" ")
                    await self.buy(account, int(network or settings.required_network_id))
                else:
                    print(f"Unknown command: {user_input}")

            except KeyboardInterrupt:
                print("\nGoodbye!")
                break
            except SweepBuyError as e:
                print(f"Error: {e.message}")
            except Exception as e:
                logger.error("Error processing input", error=str(e))
                print(f"Error: {e}")


def run_api_server():
    """Run the FastAPI server in a separate thread."""
    port = int(os.environ.get("PORT", settings.api_port))
    config = uvicorn.Config(app, host=settings.api_host, port=port, log_level="warning")
    server = uvicorn.Server(config)
    server.run()


def create_cli_runner() -> SweepRunner:
    """Terminal runner with its own controller.

    The API thread serves ``get_controller()`` on uvicorn's loop; the CLI
    runs on the ``asyncio.run`` loop, so the two never share a session.
    """
    return SweepRunner(create_purchase_controller())


async def main():
    """Main entry point."""
    # In production, just run uvicorn directly (no interactive mode)
    if settings.environment == "production":
        port = int(os.environ.get("PORT", settings.api_port))
        logger.info("Starting production server", port=port)
        config = uvicorn.Config(app, host=settings.api_host, port=port, log_level="info")
        server = uvicorn.Server(config)
        await server.serve()
        return

    # Development: API server in a background thread + interactive mode
    api_thread = threading.Thread(target=run_api_server, daemon=True)
    api_thread.start()
    logger.info("API server started", url=f"http://localhost:{settings.api_port}")

    await create_cli_runner().interactive_mode()


if __name__ == "__main__":
    asyncio.run(main())
