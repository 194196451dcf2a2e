"""Purchase orchestration controller."""

import asyncio
import time
from datetime import datetime
from typing import Optional

import structlog

from sweepbuy.bridge.wallet_client import WalletConnector, create_wallet_client
from sweepbuy.catalog import CatalogSource, ReservoirCatalogSource, purchasable_items
from sweepbuy.config.settings import Settings, settings as default_settings
from sweepbuy.errors import (
    CatalogFetchError,
    SubmissionInProgressError,
    SweepBuyError,
    UnknownItemError,
    WrongNetworkError,
)
from sweepbuy.logging import log_catalog_fetch, log_purchase_event
from sweepbuy.purchase.execution import ExecutionProcess, HttpExecutionProcess
from sweepbuy.purchase.executor import Observer, PurchaseExecutor
from sweepbuy.purchase.preconditions import PreconditionValidator
from sweepbuy.purchase.request_builder import build_purchase_request
from sweepbuy.state.models import (
    Item,
    ProgressPhase,
    ProgressState,
    SubmissionSession,
    WalletState,
)
from sweepbuy.state.selection import SelectionStore

logger = structlog.get_logger()

NO_ITEMS_MESSAGE = "There are no tokens available to purchase."


class PurchaseController:
    """Owns the listing, the selection and the submission lifecycle.

    Each operation returns the new ``SubmissionSession`` value; the controller
    only keeps a reference to the latest one.
    """

    def __init__(
        self,
        catalog: CatalogSource,
        validator: PreconditionValidator,
        executor: PurchaseExecutor,
        collection_contract: str,
    ):
        self.catalog = catalog
        self.validator = validator
        self.executor = executor
        self.selection = SelectionStore()
        self._items: dict[str, Item] = {}
        self._submitting = False
        self._session = SubmissionSession(collection_contract=collection_contract)

    @property
    def session(self) -> SubmissionSession:
        return self._session

    @property
    def is_submitting(self) -> bool:
        return self._submitting or self.executor.is_running

    def _update(self, **changes) -> SubmissionSession:
        self._session = self._session.model_copy(update=changes)
        return self._session

    async def load_items(self, collection_contract: Optional[str] = None) -> SubmissionSession:
        """Replace the listing with the purchasable items of a collection.

        The selection is cleared before fetching, so a failed fetch never
        leaves stale ids selected. Any failure of the catalog ends loading
        with a user-visible message.

        Raises:
            SubmissionInProgressError: A submission is running
        """
        if self.is_submitting:
            raise SubmissionInProgressError(
                "Cannot reload the listing while a purchase is running"
            )

        contract = collection_contract or self._session.collection_contract

        self.selection.clear()
        self._items = {}
        self._update(
            collection_contract=contract,
            items=(),
            selected=(),
            loading=True,
            error_text="",
            error_code=None,
        )

        start = time.perf_counter()
        try:
            items = await self.catalog.fetch_items(contract)
        except Exception as e:
            if isinstance(e, CatalogFetchError):
                error = e
            else:
                error = CatalogFetchError(
                    f"Could not load tokens for {contract}",
                    details={"collection": contract, "error": str(e)},
                )
            log_catalog_fetch(
                collection=contract,
                items_found=0,
                purchasable=0,
                duration_ms=(time.perf_counter() - start) * 1000,
                error=error.message,
            )
            return self._update(loading=False, error_text=error.message, error_code=error.error_code)

        available = purchasable_items(items)
        log_catalog_fetch(
            collection=contract,
            items_found=len(items),
            purchasable=len(available),
            duration_ms=(time.perf_counter() - start) * 1000,
        )

        self._items = {item.item_id: item for item in available}
        return self._update(
            items=tuple(available),
            loading=False,
            error_text="" if available else NO_ITEMS_MESSAGE,
        )

    def toggle(self, item_id: str) -> SubmissionSession:
        """Select or unselect a listed, purchasable item.

        Raises:
            UnknownItemError: The id is not purchasable in the current listing
        """
        if item_id not in self._items:
            raise UnknownItemError(
                f"Item {item_id} is not available to purchase",
                details={"item_id": item_id},
            )

        self.selection.toggle(item_id)
        return self._update(selected=tuple(self.selection.ordered()))

    def clear_selection(self) -> SubmissionSession:
        self.selection.clear()
        return self._update(selected=())

    async def submit(
        self,
        wallet: WalletState,
        observer: Optional[Observer] = None,
    ) -> SubmissionSession:
        """Validate, build and execute a purchase of the current selection.

        Validation and build failures abort the submission and reset the
        loading state; only a wrong network produces a user-facing message.
        A missing signer is re-raised after the reset. Exceptions from the
        execution process are re-raised once the session records them.

        Raises:
            SubmissionInProgressError: A submission is already running
            MissingSignerError: The wallet has no signer
        """
        if self.is_submitting:
            raise SubmissionInProgressError()

        self._submitting = True
        try:
            self._update(
                loading=True,
                progress=ProgressState(phase=ProgressPhase.VALIDATING),
                error_text="",
                error_code=None,
                started_at=datetime.now(),
                completed_at=None,
            )

            try:
                buyer = await self.validator.validate(wallet)
                request = build_purchase_request(
                    buyer.account_address,
                    self.selection.ordered(),
                    self._session.collection_contract,
                )
            except SweepBuyError as e:
                session = self._abort(e)
                if e.fatal:
                    raise
                return session

            self._update(
                request=request,
                progress=ProgressState(phase=ProgressPhase.SUBMITTING),
                progress_text="",
                messages=(),
            )

            try:
                state = await self.executor.submit(
                    request, buyer.signer, observer=self._relay(observer)
                )
            except Exception:
                self._update(
                    loading=False,
                    progress=self.executor.state,
                    completed_at=datetime.now(),
                )
                raise

            return self._update(loading=False, progress=state, completed_at=datetime.now())
        finally:
            self._submitting = False

    def _abort(self, error: SweepBuyError) -> SubmissionSession:
        """Reset the session after a submission that never started."""
        log_purchase_event("aborted", error_code=error.error_code, reason=error.message)
        return self._update(
            loading=False,
            progress=ProgressState.idle(),
            error_text=error.message if isinstance(error, WrongNetworkError) else "",
            error_code=error.error_code,
            completed_at=datetime.now(),
        )

    def _relay(self, observer: Optional[Observer]) -> Observer:
        """Observer that records each message on the session, then forwards it."""

        async def relay(message: str) -> None:
            self._update(
                progress_text=message,
                messages=self._session.messages + (message,),
                progress=self.executor.state,
            )
            if observer is not None:
                result = observer(message)
                if asyncio.iscoroutine(result):
                    await result

        return relay


def create_purchase_controller(
    config: Optional[Settings] = None,
    catalog: Optional[CatalogSource] = None,
    connector: Optional[WalletConnector] = None,
    process: Optional[ExecutionProcess] = None,
) -> PurchaseController:
    """Wire a controller from settings, with optional collaborator overrides."""
    config = config or default_settings

    validator = PreconditionValidator(
        required_network_id=config.required_network_id,
        connector=connector or create_wallet_client(config.wallet_bridge_url),
        network_name=config.required_network_name,
    )
    executor = PurchaseExecutor(
        process=process or HttpExecutionProcess(),
        api_base=config.api_base,
    )
    return PurchaseController(
        catalog=catalog or ReservoirCatalogSource(config.catalog_base_url, limit=config.catalog_limit),
        validator=validator,
        executor=executor,
        collection_contract=config.collection_contract,
    )
