"""Item catalog sources."""

from .base_source import CatalogSource, purchasable_items
from .reservoir import ReservoirCatalogSource

__all__ = ["CatalogSource", "ReservoirCatalogSource", "purchasable_items"]
