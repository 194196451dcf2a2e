"""Wallet, network and account checks that gate a submission."""

import structlog

from sweepbuy.bridge.wallet_client import WalletConnector
from sweepbuy.errors import (
    ConnectionFailedError,
    MissingSignerError,
    NoAccountError,
    WrongNetworkError,
)
from sweepbuy.logging import log_error
from sweepbuy.state.models import ValidatedBuyer, WalletState

logger = structlog.get_logger()


class PreconditionValidator:
    """Checks wallet state in a fixed order, stopping at the first failure."""

    def __init__(
        self,
        required_network_id: int,
        connector: WalletConnector,
        network_name: str = "Rinkeby Test Network",
    ):
        self.required_network_id = required_network_id
        self.connector = connector
        self.network_name = network_name

    async def validate(self, wallet: WalletState) -> ValidatedBuyer:
        """Validate the wallet before a purchase is built.

        Order: network, account, connection, signer.

        Raises:
            WrongNetworkError: Wallet is on another network (user-facing message)
            NoAccountError: No account address yet
            ConnectionFailedError: The connector failed to connect
            MissingSignerError: No signer; the caller should never get here without one
        """
        if wallet.active_network_id != self.required_network_id:
            logger.info(
                "Wrong network",
                active_network_id=wallet.active_network_id,
                required_network_id=self.required_network_id,
            )
            raise WrongNetworkError(
                "You are connected to the wrong network. "
                f"Please, switch to the {self.network_name}.",
                details={
                    "active_network_id": wallet.active_network_id,
                    "required_network_id": self.required_network_id,
                },
            )

        if not wallet.account_address:
            raise NoAccountError()

        if not wallet.connected:
            logger.info("Wallet not connected, connecting", account=wallet.account_address)
            try:
                await self.connector.connect()
            except Exception as e:
                logger.warning("Wallet connection failed", error=str(e))
                raise ConnectionFailedError(
                    f"Wallet connection failed: {e}",
                    details={"account": wallet.account_address},
                ) from e

        if wallet.signer is None:
            log_error(
                error_type="MissingSignerError",
                message="Submission reached without a signer",
                context={"account": wallet.account_address},
            )
            raise MissingSignerError()

        return ValidatedBuyer(account_address=wallet.account_address, signer=wallet.signer)
