"""Catalog source backed by the Reservoir tokens API."""

from typing import Optional

import structlog

from sweepbuy.catalog.base_source import CatalogSource
from sweepbuy.catalog.http_client import CatalogHttpError, RobustHttpClient, get_http_client
from sweepbuy.errors import CatalogFetchError
from sweepbuy.state.models import Item

logger = structlog.get_logger()


class ReservoirCatalogSource(CatalogSource):
    """Lists the tokens of a collection with their floor ask price."""

    TOKENS_PATH = "/tokens/v4"

    def __init__(
        self,
        base_url: str,
        limit: int = 20,
        http_client: Optional[RobustHttpClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.limit = limit
        self._http_client = http_client

    @property
    def http_client(self) -> RobustHttpClient:
        return self._http_client or get_http_client()

    async def fetch_items(self, collection_address: str) -> list[Item]:
        url = f"{self.base_url}{self.TOKENS_PATH}"
        logger.info("Fetching tokens", collection=collection_address, url=url)

        try:
            response = await self.http_client.get(
                url, params={"contract": collection_address, "limit": self.limit}
            )
        except CatalogHttpError as e:
            raise CatalogFetchError(
                f"Could not load tokens for {collection_address}: {e.reason.value}",
                details={
                    "collection": collection_address,
                    "reason": e.reason.value,
                    "status": e.status_code,
                },
            ) from e
        except Exception as e:
            logger.error("Catalog request failed", collection=collection_address, error=str(e))
            raise CatalogFetchError(
                f"Could not load tokens for {collection_address}",
                details={"collection": collection_address, "reason": "unexpected", "error": str(e)},
            ) from e

        try:
            tokens = response.json().get("tokens") or []
            items = [self._parse_token(token, collection_address) for token in tokens]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Malformed catalog response", collection=collection_address, error=str(e))
            raise CatalogFetchError(
                f"Malformed token listing for {collection_address}",
                details={"collection": collection_address, "error": str(e)},
            ) from e

        logger.info("Tokens fetched", collection=collection_address, count=len(items))
        return items

    @staticmethod
    def _parse_token(token: dict, collection_address: str) -> Item:
        """Map one API token record to an Item."""
        return Item(
            collection_id=token.get("contract") or collection_address,
            item_id=str(token["tokenId"]),
            floor_price=token.get("floorAskPrice"),
        )
