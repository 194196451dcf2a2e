"""Clients for external bridge services."""

from .wallet_client import WalletBridgeClient, WalletConnector, create_wallet_client

__all__ = ["WalletBridgeClient", "WalletConnector", "create_wallet_client"]
