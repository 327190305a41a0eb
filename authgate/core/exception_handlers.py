"""Global exception handlers for consistent error responses.

Every rejection is a single plain-text line plus the matching status code.
The machine-readable error code travels in the ``X-Error-Code`` header so the
body stays human-readable.

Design:
- AppError subclasses → mapped status (400, 401, 422, 429, 503)
- FastAPI request validation errors → 400 Bad request
- Unexpected Exception → generic 400 with no detail (safety net)
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse

from authgate.core.errors import (
    AppError,
    ConfigurationAppError,
    MalformedRequestAppError,
    RateLimitedAppError,
    StorageUnavailableAppError,
    UnauthorizedAppError,
    ValidationAppError,
)
from authgate.core.logging import get_request_id

logger = logging.getLogger(__name__)

ERROR_CODE_HEADER = "X-Error-Code"

BAD_REQUEST_MESSAGE = "Bad request"

_STATUS_BY_ERROR: dict[type[AppError], int] = {
    ValidationAppError: 422,
    MalformedRequestAppError: 400,
    RateLimitedAppError: 429,
    UnauthorizedAppError: 401,
    StorageUnavailableAppError: 503,
    ConfigurationAppError: 500,
}

# Bodies served to clients; internal messages stay in logs.
_PUBLIC_MESSAGES: dict[int, str] = {
    503: "Service temporarily unavailable. Please try again later.",
    500: "Internal server error",
}


def status_for(exc: AppError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return 400


async def app_error_handler(request: Request, exc: AppError) -> PlainTextResponse:
    """Handle domain application errors with a plain-text body.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        PlainTextResponse with the mapped status code, the error code header
        and, for throttling, the Retry-After / X-RateLimit-* headers.
    """
    status_code = status_for(exc)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "details": exc.details or {},
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    headers = {ERROR_CODE_HEADER: exc.code}
    if isinstance(exc, RateLimitedAppError):
        headers.update(exc.headers)

    return PlainTextResponse(
        _PUBLIC_MESSAGES.get(status_code, exc.message),
        status_code=status_code,
        headers=headers,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> PlainTextResponse:
    """Map FastAPI's own parameter validation failures to 400 Bad request."""
    logger.info(
        "request_validation_failed",
        extra={
            "error_count": len(exc.errors()),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )
    return PlainTextResponse(
        BAD_REQUEST_MESSAGE,
        status_code=400,
        headers={ERROR_CODE_HEADER: "bad_request"},
    )


async def general_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure type for debugging while returning a generic message.
    Prevents information leakage (no stack traces or messages to the client).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return PlainTextResponse(
        BAD_REQUEST_MESSAGE,
        status_code=400,
        headers={ERROR_CODE_HEADER: "unhandled_fault"},
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.

    Example:
        >>> from fastapi import FastAPI
        >>> from authgate.core.exception_handlers import setup_exception_handlers
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
