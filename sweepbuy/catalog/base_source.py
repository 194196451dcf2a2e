"""Base interface for item catalog sources."""

from abc import ABC, abstractmethod

from sweepbuy.state.models import Item


class CatalogSource(ABC):
    """Abstract source of purchasable items for a collection."""

    @abstractmethod
    async def fetch_items(self, collection_address: str) -> list[Item]:
        """Fetch the items listed for a collection.

        Args:
            collection_address: Collection contract address

        Returns:
            List of Item objects, priced or not

        Raises:
            CatalogFetchError: The catalog could not be reached or parsed
        """
        pass


def purchasable_items(items: list[Item]) -> list[Item]:
    """Keep only items that currently have an ask price."""
    return [item for item in items if item.is_purchasable]
