"""State management exports."""

from sweepbuy.state.models import (
    ExecutionStep,
    Item,
    ProgressPhase,
    ProgressState,
    PurchaseRequest,
    Signer,
    StepStatus,
    SubmissionSession,
    ValidatedBuyer,
    WalletState,
)
from sweepbuy.state.selection import SelectionStore

__all__ = [
    "ExecutionStep",
    "Item",
    "ProgressPhase",
    "ProgressState",
    "PurchaseRequest",
    "SelectionStore",
    "Signer",
    "StepStatus",
    "SubmissionSession",
    "ValidatedBuyer",
    "WalletState",
]
