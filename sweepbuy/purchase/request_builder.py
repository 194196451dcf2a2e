"""Turn a selection into a purchase request."""

from typing import Iterable

from sweepbuy.errors import EmptySelectionError
from sweepbuy.state.models import PurchaseRequest


def encode_token(collection_contract: str, item_id: str) -> str:
    """Encode a token as ``<collection>:<item>``."""
    return f"{collection_contract}:{item_id}"


def build_purchase_request(
    buyer_address: str,
    selection: Iterable[str],
    collection_contract: str,
) -> PurchaseRequest:
    """Build the request for every selected item, in selection order.

    Prices are not re-checked here; the execution backend protects against
    price changes itself.

    Raises:
        EmptySelectionError: Nothing is selected
    """
    items = tuple(encode_token(collection_contract, item_id) for item_id in selection)
    if not items:
        raise EmptySelectionError(details={"buyer": buyer_address})

    return PurchaseRequest(buyer=buyer_address, items=items)
