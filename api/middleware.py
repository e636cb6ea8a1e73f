"""Request context middleware for logging.

Takes the request id from the X-Request-ID header (or generates one),
stores it on ``request.state`` and in structlog's context (a ContextVar
under the hood) so that every log entry written while handling the request
carries it, and logs request start and completion with timing.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

log = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind request id, method and path to the logging context."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex

        request.state.request_id = request_id
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        log.info("request_started")
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            log.error(
                "request_failed",
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
                error_type=type(exc).__name__,
            )
            raise

        log.info(
            "request_completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
