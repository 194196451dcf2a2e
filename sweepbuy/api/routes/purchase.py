"""API routes for loading a listing, selecting tokens and buying them."""

from typing import Optional

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel

from sweepbuy.errors import (
    EmptySelectionError,
    SubmissionInProgressError,
    UnknownItemError,
    create_http_exception,
)
from sweepbuy.purchase.controller import PurchaseController, create_purchase_controller
from sweepbuy.state.models import Signer, SubmissionSession, WalletState

router = APIRouter(prefix="/api/purchase", tags=["purchase"])
logger = structlog.get_logger()

# One controller per process; the listing and selection live in memory
_controller: Optional[PurchaseController] = None


def get_controller() -> PurchaseController:
    """Get or create the process-wide purchase controller."""
    global _controller
    if _controller is None:
        _controller = create_purchase_controller()
    return _controller


def reset_controller() -> None:
    """Drop the process-wide controller (useful for testing)."""
    global _controller
    _controller = None


class ItemView(BaseModel):
    """A listed token."""
    collection_id: str
    item_id: str
    token: str
    floor_price: Optional[float] = None


class SessionView(BaseModel):
    """Current listing, selection and progress."""
    session_id: str
    collection_contract: str
    items: list[ItemView]
    selected: list[str]
    loading: bool
    phase: str
    progress_text: str
    error_text: str
    error_code: Optional[str] = None
    messages: list[str]
    request_items: list[str]
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class LoadItemsRequest(BaseModel):
    """Request to load the listing of a collection."""
    collection_contract: Optional[str] = None


class SubmitRequest(BaseModel):
    """Wallet state supplied with a purchase submission."""
    connected: bool = True
    active_network_id: Optional[int] = None
    account_address: Optional[str] = None
    signer_address: Optional[str] = None


class SubmitResponse(BaseModel):
    """Response from starting a purchase."""
    session_id: str
    status: str


def session_view(session: SubmissionSession) -> SessionView:
    return SessionView(
        session_id=session.id,
        collection_contract=session.collection_contract,
        items=[
            ItemView(
                collection_id=item.collection_id,
                item_id=item.item_id,
                token=item.token,
                floor_price=item.floor_price,
            )
            for item in session.items
        ],
        selected=list(session.selected),
        loading=session.loading,
        phase=session.progress.phase.value,
        progress_text=session.progress_text,
        error_text=session.error_text,
        error_code=session.error_code,
        messages=list(session.messages),
        request_items=list(session.request.items) if session.request else [],
        started_at=session.started_at.isoformat() if session.started_at else None,
        completed_at=session.completed_at.isoformat() if session.completed_at else None,
    )


async def run_submission(controller: PurchaseController, wallet: WalletState) -> None:
    """Run a submission in the background and log how it ended."""
    try:
        session = await controller.submit(wallet)
        logger.info(
            "purchase_submission_finished",
            session_id=session.id,
            phase=session.progress.phase.value,
            error_code=session.error_code,
        )
    except Exception as e:
        logger.error(
            "purchase_submission_failed",
            session_id=controller.session.id,
            error=str(e),
            error_type=type(e).__name__,
        )


@router.post("/items/load")
async def load_items(
    request: LoadItemsRequest,
    controller: PurchaseController = Depends(get_controller),
) -> SessionView:
    """Fetch the collection listing, keeping only priced tokens.

    Clears the current selection. Rejected with 409 while a purchase runs.
    """
    try:
        session = await controller.load_items(request.collection_contract)
    except SubmissionInProgressError as e:
        raise create_http_exception(e)
    return session_view(session)


@router.get("/items")
async def get_items(controller: PurchaseController = Depends(get_controller)) -> SessionView:
    """Return the current listing and selection."""
    return session_view(controller.session)


@router.post("/selection/{item_id}/toggle")
async def toggle_item(
    item_id: str,
    controller: PurchaseController = Depends(get_controller),
) -> SessionView:
    """Select or unselect a listed token."""
    try:
        session = controller.toggle(item_id)
    except UnknownItemError as e:
        raise create_http_exception(e)
    return session_view(session)


@router.delete("/selection")
async def clear_selection(controller: PurchaseController = Depends(get_controller)) -> SessionView:
    """Unselect every token."""
    return session_view(controller.clear_selection())


@router.post("/submit")
async def submit_purchase(
    request: SubmitRequest,
    background_tasks: BackgroundTasks,
    controller: PurchaseController = Depends(get_controller),
) -> SubmitResponse:
    """Start buying the selected tokens.

    The purchase runs in the background; poll ``/status`` for progress.
    """
    if controller.is_submitting:
        raise create_http_exception(SubmissionInProgressError())
    if not controller.selection:
        raise create_http_exception(EmptySelectionError())

    wallet = WalletState(
        signer=Signer(address=request.signer_address) if request.signer_address else None,
        connected=request.connected,
        active_network_id=request.active_network_id,
        account_address=request.account_address,
    )
    background_tasks.add_task(run_submission, controller, wallet)

    logger.info(
        "purchase_submission_started",
        session_id=controller.session.id,
        item_count=len(controller.selection),
    )

    return SubmitResponse(session_id=controller.session.id, status="started")


@router.get("/status")
async def get_status(controller: PurchaseController = Depends(get_controller)) -> SessionView:
    """Return progress of the current or last submission."""
    return session_view(controller.session)
