"""Request logging middleware for the purchase API."""

import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from sweepbuy.logging import (
    clear_request_context,
    log_api_request,
    set_request_context,
)

REQUEST_ID_HEADER = "X-Request-ID"
SESSION_ID_HEADER = "X-Session-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and logs one line when it finishes.

    A caller-supplied ``X-Request-ID`` is reused so purchase logs can be
    correlated with the front-end that polled them.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        set_request_context(
            request_id=request_id,
            session_id=request.headers.get(SESSION_ID_HEADER),
        )

        started = time.perf_counter()
        status_code = 500
        error: Optional[str] = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except Exception as e:
            error = str(e)
            raise
        finally:
            log_api_request(
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=(time.perf_counter() - started) * 1000,
                user_agent=request.headers.get("User-Agent"),
                error=error,
            )
            clear_request_context()
