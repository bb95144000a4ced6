"""Error Handlers: map every failure to the same JSON error envelope.

Invariants:
    - EventDeskError -> its own http_status and to_response() body
    - AuthError additionally carries WWW-Authenticate: Basic so clients re-prompt
    - RequestValidationError -> 400 with one entry per offending field
    - Exception (catch-all) -> 500 that never leaks internal details
    - 5xx logged at ERROR, client mistakes at WARNING

Design Decisions:
    - Three layers registered in order: domain, validation, catch-all
    - Field paths drop the leading "body"/"query" location so clients see
      payload field names
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from eventdesk.core.errors import AuthError, ErrorCategory, ErrorSeverity, EventDeskError

logger = logging.getLogger(__name__)

_REQUEST_LOCATIONS = {"body", "query", "path", "header"}


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(EventDeskError, _handle_domain_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)


async def _handle_domain_error(request: Request, exc: EventDeskError) -> JSONResponse:
    if exc.context.operation is None:
        exc.context.operation = f"{request.method} {request.url.path}"
    log = logger.error if exc.http_status >= 500 else logger.warning
    log(
        f"{exc.code}: {exc.message}",
        extra={"error_code": exc.code, "path": request.url.path},
    )
    headers = {"WWW-Authenticate": "Basic"} if isinstance(exc, AuthError) else None
    return JSONResponse(
        status_code=exc.http_status, content=exc.to_response(), headers=headers,
    )


async def _handle_validation_error(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = [
        {"field": _field_path(e["loc"]), "message": e["msg"], "type": e["type"]}
        for e in exc.errors()
    ]
    logger.warning(
        f"Rejected request: {', '.join(d['field'] for d in details)}",
        extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION.value, ErrorSeverity.ERROR, details=details,
        ),
    )


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}",
        extra={"path": request.url.path}, exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred",
            "internal", ErrorSeverity.CRITICAL,
        ),
    )


def _field_path(loc: tuple) -> str:
    parts = [str(p) for p in loc]
    if len(parts) > 1 and parts[0] in _REQUEST_LOCATIONS:
        parts = parts[1:]
    return ".".join(parts)


def _envelope(
    code: str, message: str, category: str, severity: ErrorSeverity, **extra,
) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category,
            "severity": severity.value,
            **extra,
        },
    }
