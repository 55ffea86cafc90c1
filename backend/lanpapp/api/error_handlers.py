"""Error Handlers — map every exception leaving a route onto the JSON error envelope.

Invariants:
    - Response body is always {"error": {code, message, category, severity, ...}}
    - LanpAppError: status from the error's kind (400/401/403/404/409/503)
    - Request body / query validation failures: 400 VALIDATION_ERROR with one
      entry per offending field
    - Anything else: 500 INTERNAL_ERROR, message never includes the exception text

Design Decisions:
    - Client-side failures (< 500) logged at WARNING, server-side at ERROR with
      the ids from ErrorContext as structured fields
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lanpapp.core.errors import ErrorCategory, ErrorSeverity, LanpAppError

logger = logging.getLogger(__name__)


def _envelope(code: str, message: str, category: ErrorCategory, **extra) -> dict:
    severity = (
        ErrorSeverity.CRITICAL if category == ErrorCategory.INTERNAL else ErrorSeverity.ERROR
    )
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category.value,
            "severity": severity.value,
            **extra,
        },
    }


async def handle_lanpapp_error(request: Request, exc: LanpAppError) -> JSONResponse:
    ctx = exc.context
    logger.log(
        logging.ERROR if exc.http_status >= 500 else logging.WARNING,
        f"{exc.code}: {exc.message}",
        extra={
            "error_code": exc.code,
            "path": request.url.path,
            "lanpa_id": ctx.lanpa_id,
            "nomination_id": ctx.nomination_id,
            "user_id": ctx.user_id,
        },
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def handle_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    fields = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning(
        f"Rejected request: {len(fields)} invalid field(s)",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data", ErrorCategory.VALIDATION,
            details=fields,
        ),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled {type(exc).__name__}",
        exc_info=exc,
        extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred", ErrorCategory.INTERNAL,
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LanpAppError, handle_lanpapp_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
