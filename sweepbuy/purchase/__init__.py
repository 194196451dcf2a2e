"""Purchase orchestration: preconditions, request building and execution."""

from .controller import NO_ITEMS_MESSAGE, PurchaseController, create_purchase_controller
from .execution import ExecutionProcess, HttpExecutionProcess
from .executor import ProgressChannel, PurchaseExecutor
from .preconditions import PreconditionValidator
from .request_builder import build_purchase_request, encode_token

__all__ = [
    "NO_ITEMS_MESSAGE",
    "ExecutionProcess",
    "HttpExecutionProcess",
    "PreconditionValidator",
    "ProgressChannel",
    "PurchaseController",
    "PurchaseExecutor",
    "build_purchase_request",
    "create_purchase_controller",
    "encode_token",
]
