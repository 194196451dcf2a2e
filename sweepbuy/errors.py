"""Error taxonomy for purchase orchestration."""

from typing import Any, Optional

from fastapi import HTTPException, status


class SweepBuyError(Exception):
    """Base exception for the sweep buyer."""

    # Fatal errors indicate a caller bug and must never be swallowed.
    fatal: bool = False

    def __init__(self, message: str, error_code: str = "UNKNOWN", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class WrongNetworkError(SweepBuyError):
    """Wallet is connected to a network other than the required one."""

    def __init__(self, message: str = "Wrong network", details: Optional[dict[str, Any]] = None):
        super().__init__(message, "WRONG_NETWORK", details)


class NoAccountError(SweepBuyError):
    """No account address is available (wallet permission not granted yet)."""

    def __init__(self, message: str = "No account available", details: Optional[dict[str, Any]] = None):
        super().__init__(message, "NO_ACCOUNT", details)


class ConnectionFailedError(SweepBuyError):
    """The wallet connector failed to establish a connection."""

    def __init__(self, message: str = "Wallet connection failed", details: Optional[dict[str, Any]] = None):
        super().__init__(message, "CONNECTION_FAILED", details)


class MissingSignerError(SweepBuyError):
    """Submission was reached without a signer."""

    fatal = True

    def __init__(self, message: str = "Missing a signer", details: Optional[dict[str, Any]] = None):
        super().__init__(message, "MISSING_SIGNER", details)


class EmptySelectionError(SweepBuyError):
    """A purchase request was requested for an empty selection."""

    def __init__(self, message: str = "No items selected", details: Optional[dict[str, Any]] = None):
        super().__init__(message, "EMPTY_SELECTION", details)


class CatalogFetchError(SweepBuyError):
    """The item catalog could not be fetched."""

    def __init__(self, message: str = "Failed to fetch items", details: Optional[dict[str, Any]] = None):
        super().__init__(message, "CATALOG_FETCH_FAILED", details)


class ExecutionFailedError(SweepBuyError):
    """The external execution process reported a failure."""

    def __init__(self, message: str = "Purchase execution failed", details: Optional[dict[str, Any]] = None):
        super().__init__(message, "EXECUTION_FAILED", details)


class SubmissionInProgressError(SweepBuyError):
    """A submission was attempted while another one is still running."""

    def __init__(self, message: str = "A purchase is already in progress", details: Optional[dict[str, Any]] = None):
        super().__init__(message, "SUBMISSION_IN_PROGRESS", details)


class UnknownItemError(SweepBuyError):
    """An item id that is not purchasable in the current listing."""

    def __init__(self, message: str = "Unknown item", details: Optional[dict[str, Any]] = None):
        super().__init__(message, "UNKNOWN_ITEM", details)


ERROR_TO_HTTP_STATUS = {
    WrongNetworkError: status.HTTP_409_CONFLICT,
    NoAccountError: status.HTTP_401_UNAUTHORIZED,
    ConnectionFailedError: status.HTTP_503_SERVICE_UNAVAILABLE,
    MissingSignerError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    EmptySelectionError: status.HTTP_400_BAD_REQUEST,
    CatalogFetchError: status.HTTP_502_BAD_GATEWAY,
    ExecutionFailedError: status.HTTP_502_BAD_GATEWAY,
    SubmissionInProgressError: status.HTTP_409_CONFLICT,
    UnknownItemError: status.HTTP_404_NOT_FOUND,
}


def create_http_exception(error: SweepBuyError) -> HTTPException:
    """Convert a SweepBuyError to an HTTPException with the mapped status code."""
    status_code = ERROR_TO_HTTP_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail={
            "error": error.error_code,
            "message": error.message,
            "details": error.details,
        },
    )
