"""Exception handlers producing the ``{"success": false, "message"}`` envelope.

- TaskboardError subclasses map to their own status code
- Request validation failures are 400
- Starlette HTTP errors (unknown route, wrong method) keep their status
- Anything else is a 500; the detail is included only in development
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import TaskboardError, UnexpectedError

log = structlog.get_logger(__name__)


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, **extra},
    )


def _describe_validation(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = err.get("msg", "invalid value").removeprefix("Value error, ")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request"


def register_error_handlers(app: FastAPI, debug: bool = False) -> None:
    """Install the envelope handlers on the app."""

    @app.exception_handler(TaskboardError)
    async def handle_taskboard_error(request: Request, exc: TaskboardError):
        log.info(
            "request_rejected",
            error_type=type(exc).__name__,
            status_code=exc.status_code,
            message=exc.message,
        )
        return error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        message = _describe_validation(exc)
        log.info("request_invalid", message=message)
        return error_response(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        message = "Route not found" if exc.status_code == 404 else str(exc.detail)
        return error_response(exc.status_code, message)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        log.error("request_error", error_type=type(exc).__name__, exc_info=exc)
        extra = {"requestId": getattr(request.state, "request_id", None)}
        if debug:
            extra["error"] = str(exc)
        return error_response(UnexpectedError.status_code, UnexpectedError.default_message, **extra)
