"""Error Handlers — render every failure as the uniform JSON error envelope.

Invariants:
    - ChatError → its own envelope, status and headers (Retry-After on 429)
    - RequestValidationError → 400 VALIDATION_ERROR with per-field details
    - Any other exception → 500 INTERNAL_ERROR; the body never carries internals

Design Decisions:
    - Module-level handler coroutines registered with add_exception_handler,
      so tests and other apps can reuse them without the decorator closure
    - Client-side errors log at warning, server-side at error
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.errors import ChatError, ErrorCategory, ErrorSeverity

logger = logging.getLogger(__name__)

_GENERIC_MESSAGE = "Something went wrong. Please try again later."
_REQUEST_PARTS = {"body", "path", "query", "header"}


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ChatError, handle_chat_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


async def handle_chat_error(request: Request, exc: ChatError) -> JSONResponse:
    log = logger.warning if exc.http_status < 500 else logger.error
    log(
        f"{exc.code}: {exc.message}",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "session_id": exc.context.session_id,
        },
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_response(),
        headers=exc.response_headers(),
    )


async def handle_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [_field_detail(e) for e in exc.errors()]
    logger.warning(
        f"Rejected request: {len(details)} invalid field(s)",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    body = _envelope(
        "VALIDATION_ERROR", "Invalid request data",
        ErrorCategory.VALIDATION, ErrorSeverity.WARNING,
    )
    body["error"]["details"] = details
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__}: {exc}",
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", _GENERIC_MESSAGE,
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )


def _envelope(
    code: str, message: str, category: ErrorCategory, severity: ErrorSeverity,
) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category.value,
            "severity": severity.value,
        },
    }


def _field_detail(error: dict) -> dict:
    loc = [str(part) for part in error.get("loc", ())]
    if loc and loc[0] in _REQUEST_PARTS:
        loc = loc[1:]
    return {
        "field": ".".join(loc) or "request",
        "message": error.get("msg", ""),
        "type": error.get("type", ""),
    }
