"""Python client for the wallet bridge service."""

from abc import ABC, abstractmethod

import httpx
import structlog

logger = structlog.get_logger()


class WalletConnector(ABC):
    """Something that can bring a wallet into the connected state."""

    @abstractmethod
    async def connect(self) -> None:
        """Connect the wallet, raising on failure."""
        pass


class WalletBridgeClient(WalletConnector):
    """Async client for the wallet bridge service."""

    def __init__(self, base_url: str = "http://localhost:8090", timeout: float = 15.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def check_health(self) -> dict:
        """Check if the bridge is healthy."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(f"{self.base_url}/api/health")
            return response.json()

    async def get_status(self) -> dict:
        """Get wallet connection status."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(f"{self.base_url}/api/status")
            return response.json()

    async def is_connected(self) -> bool:
        """Check if the bridge reports a connected wallet."""
        try:
            status = await self.get_status()
            return status.get("connected", False)
        except httpx.HTTPError:
            return False

    async def connect(self) -> None:
        """Ask the bridge to connect its wallet.

        Raises:
            httpx.HTTPError: The bridge could not be reached or refused
            RuntimeError: The bridge answered but did not connect
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(f"{self.base_url}/api/connect")
            response.raise_for_status()
            result = response.json()

        if not result.get("connected"):
            logger.error("Wallet bridge did not connect", error=result.get("error"))
            raise RuntimeError(result.get("error") or "Wallet bridge did not connect")

        logger.info("Wallet connected", account=result.get("account"))


def create_wallet_client(base_url: str = "http://localhost:8090") -> WalletBridgeClient:
    """Create a wallet bridge client.

    Args:
        base_url: REST API URL of the bridge

    Returns:
        Configured WalletBridgeClient
    """
    return WalletBridgeClient(base_url=base_url)
