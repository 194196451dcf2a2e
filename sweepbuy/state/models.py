"""State models for purchase orchestration."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
import uuid


def generate_id() -> str:
    """Generate a unique ID."""
    return str(uuid.uuid4())[:8]


class Item(BaseModel):
    """A purchasable token from the catalog."""

    model_config = ConfigDict(frozen=True)

    collection_id: str
    item_id: str
    floor_price: Optional[float] = None

    @property
    def is_purchasable(self) -> bool:
        """Whether the item currently has an ask price."""
        return bool(self.floor_price)

    @property
    def token(self) -> str:
        """Encoded ``collection:item`` identifier."""
        return f"{self.collection_id}:{self.item_id}"


class PurchaseRequest(BaseModel):
    """A request to buy several tokens in one execution."""

    model_config = ConfigDict(frozen=True)

    buyer: str
    items: tuple[str, ...]

    def to_payload(self) -> dict[str, Any]:
        """Wire body understood by the execution backend."""
        return {"taker": self.buyer, "tokens": list(self.items)}


class StepStatus(str, Enum):
    """Status of one execution step."""

    INCOMPLETE = "incomplete"
    COMPLETE = "complete"
    ERROR = "error"


class ExecutionStep(BaseModel):
    """One step reported by the execution process."""

    model_config = ConfigDict(frozen=True)

    status: StepStatus
    message: str = ""

    @field_validator("message", mode="before")
    @classmethod
    def _blank_message(cls, value: Any) -> Any:
        return "" if value is None else value


class ProgressPhase(str, Enum):
    """Phase of a submission."""

    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TERMINAL_PHASES = frozenset({ProgressPhase.SUCCEEDED, ProgressPhase.FAILED})


class ProgressState(BaseModel):
    """Externally visible summary of a submission."""

    model_config = ConfigDict(frozen=True)

    phase: ProgressPhase = ProgressPhase.IDLE
    message: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def idle(cls) -> "ProgressState":
        return cls()

    @classmethod
    def in_progress(cls, message: str) -> "ProgressState":
        return cls(phase=ProgressPhase.IN_PROGRESS, message=message)

    @classmethod
    def failed(cls, reason: str) -> "ProgressState":
        return cls(phase=ProgressPhase.FAILED, reason=reason)

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES


class Signer(BaseModel):
    """Opaque signer handle forwarded to the execution process."""

    model_config = ConfigDict(frozen=True)

    address: str


class WalletState(BaseModel):
    """Snapshot of the wallet at submit time."""

    model_config = ConfigDict(frozen=True)

    signer: Optional[Signer] = None
    connected: bool = False
    active_network_id: Optional[int] = None
    account_address: Optional[str] = None


class ValidatedBuyer(BaseModel):
    """Account and signer that passed the precondition checks."""

    model_config = ConfigDict(frozen=True)

    account_address: str
    signer: Signer


class SubmissionSession(BaseModel):
    """Listing, selection and progress state owned by the controller.

    Every controller operation returns a new session; instances are never
    mutated in place.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_id)
    collection_contract: str
    items: tuple[Item, ...] = ()
    selected: tuple[str, ...] = ()
    loading: bool = False
    progress: ProgressState = Field(default_factory=ProgressState)
    progress_text: str = ""
    error_text: str = ""
    error_code: Optional[str] = None
    request: Optional[PurchaseRequest] = None
    messages: tuple[str, ...] = ()
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
