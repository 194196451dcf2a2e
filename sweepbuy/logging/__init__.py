"""Structured logging for the sweep buyer.

Provides structured logging for:
- API requests (method, path, status, latency)
- Catalog fetches (collection, items found, failures)
- Purchase lifecycle events (validation, submission, progress, outcome)

Supports:
- Console logging (development: colored text, production: JSON)
- File logging with rotation
"""

import logging
import os
import sys
import time
from contextvars import ContextVar
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

# Request context for correlating logs
_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
_session_id: ContextVar[Optional[str]] = ContextVar("session_id", default=None)


class EventCategory(str, Enum):
    """Categories of logged events."""
    CATALOG = "catalog"
    SELECTION = "selection"
    PURCHASE = "purchase"
    WALLET = "wallet"
    SYSTEM = "system"
    ERROR = "error"
    PERFORMANCE = "performance"


class LogConfig:
    """Logging configuration from environment variables."""

    # Environment: development, staging, production
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Log level: DEBUG, INFO, WARNING, ERROR
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Log format: json or text
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json" if ENVIRONMENT == "production" else "text")

    # File logging
    LOG_TO_FILE: bool = os.getenv("LOG_TO_FILE", "false").lower() == "true"
    LOG_DIR: Path = Path(os.getenv("LOG_DIR", "logs"))
    LOG_FILE_MAX_BYTES: int = int(os.getenv("LOG_FILE_MAX_BYTES", 10 * 1024 * 1024))  # 10MB
    LOG_FILE_BACKUP_COUNT: int = int(os.getenv("LOG_FILE_BACKUP_COUNT", 5))


def setup_file_logging() -> Optional[logging.Handler]:
    """Set up file-based logging with rotation."""
    if not LogConfig.LOG_TO_FILE:
        return None

    LogConfig.LOG_DIR.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        LogConfig.LOG_DIR / "app.log",
        maxBytes=LogConfig.LOG_FILE_MAX_BYTES,
        backupCount=LogConfig.LOG_FILE_BACKUP_COUNT,
    )
    handler.setFormatter(logging.Formatter('%(message)s'))
    handler.setLevel(getattr(logging, LogConfig.LOG_LEVEL))

    return handler


def setup_error_file_logging() -> Optional[logging.Handler]:
    """Set up separate error log file."""
    if not LogConfig.LOG_TO_FILE:
        return None

    LogConfig.LOG_DIR.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        LogConfig.LOG_DIR / "error.log",
        maxBytes=LogConfig.LOG_FILE_MAX_BYTES,
        backupCount=LogConfig.LOG_FILE_BACKUP_COUNT,
    )
    handler.setFormatter(logging.Formatter('%(message)s'))
    handler.setLevel(logging.ERROR)

    return handler


def configure_logging():
    """Configure structlog and the stdlib handlers it renders into."""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, LogConfig.LOG_LEVEL))

    # Clear existing handlers
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, LogConfig.LOG_LEVEL))
    root_logger.addHandler(console_handler)

    for handler in (setup_file_logging(), setup_error_file_logging()):
        if handler:
            root_logger.addHandler(handler)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        add_request_context,
        add_environment_context,
    ]

    # Use JSON renderer for production, colored console for dev
    if LogConfig.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).info(
        "logging_configured",
        environment=LogConfig.ENVIRONMENT,
        log_level=LogConfig.LOG_LEVEL,
        log_format=LogConfig.LOG_FORMAT,
        file_logging=LogConfig.LOG_TO_FILE,
        log_dir=str(LogConfig.LOG_DIR) if LogConfig.LOG_TO_FILE else None,
    )


def add_request_context(logger, method_name, event_dict):
    """Add request context to log events."""
    request_id = _request_id.get()
    session_id = _session_id.get()

    if request_id:
        event_dict["request_id"] = request_id
    if session_id:
        event_dict["session_id"] = session_id

    return event_dict


def add_environment_context(logger, method_name, event_dict):
    """Add environment info to log events."""
    event_dict["env"] = LogConfig.ENVIRONMENT
    return event_dict


def set_request_context(
    request_id: Optional[str] = None,
    session_id: Optional[str] = None,
):
    """Set request context for correlation."""
    if request_id:
        _request_id.set(request_id)
    if session_id:
        _session_id.set(session_id)


def clear_request_context():
    """Clear request context."""
    _request_id.set(None)
    _session_id.set(None)


logger = structlog.get_logger(__name__)


# High-level logging functions

def log_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    user_agent: Optional[str] = None,
    error: Optional[str] = None,
):
    """Log API request.

    Args:
        method: HTTP method
        path: Request path
        status_code: Response status code
        duration_ms: Request duration
        user_agent: Client user agent
        error: Error message if failed
    """
    level = "info" if status_code < 400 else "warning" if status_code < 500 else "error"
    getattr(logger, level)(
        "api_request",
        category=EventCategory.SYSTEM.value,
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
        user_agent=user_agent[:100] if user_agent else None,
        error=error,
    )


def log_catalog_fetch(
    collection: str,
    items_found: int,
    purchasable: int,
    duration_ms: float,
    error: Optional[str] = None,
):
    """Log a catalog fetch.

    Args:
        collection: Collection contract address
        items_found: Number of items returned by the catalog
        purchasable: Number of items with a known price
        duration_ms: Fetch duration in milliseconds
        error: Error message if the fetch failed
    """
    level = "info" if error is None else "warning"
    getattr(logger, level)(
        "catalog_fetch",
        category=EventCategory.CATALOG.value,
        collection=collection,
        items_found=items_found,
        purchasable=purchasable,
        duration_ms=duration_ms,
        success=error is None,
        error=error,
    )


def log_purchase_event(event: str, **data):
    """Log a purchase lifecycle event (submitted, succeeded, failed, ...)."""
    logger.info(
        "purchase_event",
        category=EventCategory.PURCHASE.value,
        event=event,
        **data,
    )


def log_error(
    error_type: str,
    message: str,
    context: Optional[dict] = None,
):
    """Log an error.

    Args:
        error_type: Type/class of error
        message: Error message
        context: Additional context
    """
    logger.error(
        "error",
        category=EventCategory.ERROR.value,
        error_type=error_type,
        message=message,
        context=context or {},
    )


class LogTimer:
    """Context manager for timing and logging operations."""

    def __init__(
        self,
        operation: str,
        category: EventCategory = EventCategory.PERFORMANCE,
        **extra_fields,
    ):
        self.operation = operation
        self.category = category
        self.extra_fields = extra_fields
        self.start_time: float = 0
        self.duration_ms: float = 0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000

        if exc_type is not None:
            logger.error(
                self.operation,
                category=self.category.value,
                duration_ms=self.duration_ms,
                success=False,
                error=str(exc_val),
                **self.extra_fields,
            )
        else:
            logger.info(
                self.operation,
                category=self.category.value,
                duration_ms=self.duration_ms,
                success=True,
                **self.extra_fields,
            )

        return False  # Don't suppress exceptions
