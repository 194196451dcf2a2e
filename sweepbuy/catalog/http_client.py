"""JSON GET client for catalog APIs.

Every failure is raised as a ``CatalogHttpError`` whose ``reason`` says why
the fetch gave up, so callers can report it instead of a bare "failed".
"""

import asyncio
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Optional

import httpx
import structlog

from sweepbuy.config.settings import settings

logger = structlog.get_logger()

DEFAULT_HEADERS = {
    "User-Agent": "sweepbuy/0.1",
    "Accept": "application/json",
}

DEFAULT_RETRY_AFTER = 60.0
MAX_RETRY_AFTER = 30.0


class FailureReason(str, Enum):
    """Why a catalog request was abandoned."""
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    RATE_LIMITED = "rate_limited"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    TRANSPORT = "transport"


class CatalogHttpError(Exception):
    """A catalog request that did not produce a usable response."""

    def __init__(
        self,
        reason: FailureReason,
        url: str,
        status_code: Optional[int] = None,
        detail: str = "",
    ):
        self.reason = reason
        self.url = url
        self.status_code = status_code
        self.detail = detail
        text = f"{reason.value} fetching {url}"
        if status_code is not None:
            text += f" (HTTP {status_code})"
        if detail:
            text += f": {detail}"
        super().__init__(text)


def retry_after_seconds(value: Optional[str], default: float = DEFAULT_RETRY_AFTER) -> float:
    """Parse a Retry-After header given as delta-seconds or an HTTP date."""
    if not value:
        return default
    try:
        return float(max(int(value.strip()), 0))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return default
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max((when - datetime.now(timezone.utc)).total_seconds(), 0.0)


class RobustHttpClient:
    """Catalog GETs with bounded retries on timeouts, 429 and 5xx."""

    def __init__(
        self,
        timeout: float = 15.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
    ):
        """Initialize the HTTP client.

        Args:
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts
            retry_delay: Base delay between retries (linear backoff)
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def get(
        self,
        url: str,
        headers: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> httpx.Response:
        """Fetch a URL, retrying transient failures.

        Returns:
            The successful response

        Raises:
            CatalogHttpError: The last failure once retries are exhausted,
                or the first non-retryable one
        """
        merged_headers = {**DEFAULT_HEADERS, **(headers or {})}
        failure: Optional[CatalogHttpError] = None

        attempts = max(self.max_retries, 1)
        for attempt in range(1, attempts + 1):
            delay = self.retry_delay * attempt
            try:
                async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                    response = await client.get(url, headers=merged_headers, params=params)
            except httpx.TimeoutException:
                failure = CatalogHttpError(FailureReason.TIMEOUT, url)
            except httpx.ConnectError as e:
                # DNS failure or refused connection
                raise CatalogHttpError(FailureReason.CONNECTION, url, detail=str(e)) from e
            except httpx.HTTPError as e:
                failure = CatalogHttpError(FailureReason.TRANSPORT, url, detail=str(e))
            else:
                status = response.status_code
                if status < 400:
                    return response
                if status == 429:
                    delay = min(retry_after_seconds(response.headers.get("Retry-After")), MAX_RETRY_AFTER)
                    failure = CatalogHttpError(FailureReason.RATE_LIMITED, url, status)
                elif status < 500:
                    raise CatalogHttpError(FailureReason.CLIENT_ERROR, url, status)
                else:
                    failure = CatalogHttpError(FailureReason.SERVER_ERROR, url, status)

            logger.warning(
                "catalog_request_retryable_failure",
                url=url,
                reason=failure.reason.value,
                status=failure.status_code,
                attempt=attempt,
            )
            if attempt < attempts:
                await asyncio.sleep(delay)

        logger.warning("catalog_request_gave_up", url=url, reason=failure.reason.value)
        raise failure


_http_client: Optional[RobustHttpClient] = None


def get_http_client() -> RobustHttpClient:
    """Get or create the process-wide catalog HTTP client."""
    global _http_client
    if _http_client is None:
        _http_client = RobustHttpClient(
            timeout=settings.http_timeout_seconds,
            max_retries=settings.http_max_retries,
            retry_delay=settings.http_retry_delay_seconds,
        )
    return _http_client


def reset_http_client() -> None:
    """Reset the global HTTP client (useful for testing)."""
    global _http_client
    _http_client = None
