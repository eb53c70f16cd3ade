"""
Exception Handlers.

Every failure leaving the API is rendered as an ErrorResponse envelope:

    ApplicationError        status from EXCEPTION_STATUS_MAP, code from the exception
    RequestValidationError  422 VAL_REQUEST_INVALID with per-location messages
    anything else           500 SYS_INTERNAL_ERROR, details only when
                            features.api_detailed_errors is on

Client errors (4xx) log at warning, server errors at error.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from notevault.backend.core.exceptions import (
    ApplicationError,
    AuthorizationError,
    BackendError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from notevault.backend.core.logging import get_logger
from notevault.backend.schemas.base import ErrorDetail, ErrorResponse, ResponseMetadata

logger = get_logger(__name__)

# Subclasses take the status of their nearest mapped ancestor.
EXCEPTION_STATUS_MAP: dict[type[ApplicationError], int] = {
    NotFoundError: 404,
    ValidationError: 400,
    AuthorizationError: 403,
    ConflictError: 409,
    DatabaseError: 503,
    BackendError: 500,
}


def status_for(exc: ApplicationError) -> int:
    """HTTP status for an application error, walking its class hierarchy."""
    for cls in type(exc).__mro__:
        status = EXCEPTION_STATUS_MAP.get(cls)
        if status is not None:
            return status
    return 500


def _detailed_errors_enabled() -> bool:
    from notevault.backend.core.config import get_app_config

    try:
        return get_app_config().features.api_detailed_errors
    except Exception:
        return False


def _get_request_id(request: Request) -> str | None:
    """Request ID bound by RequestContextMiddleware, else the inbound header."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return request.headers.get("x-request-id")


def _request_fields(request: Request, request_id: str | None) -> dict[str, Any]:
    fields: dict[str, Any] = {"path": request.url.path, "method": request.method}
    if request_id:
        fields["request_id"] = request_id
    return fields


def _respond(status_code: int, detail: ErrorDetail, request_id: str | None) -> JSONResponse:
    body = ErrorResponse(error=detail, metadata=ResponseMetadata(request_id=request_id))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def application_error_handler(
    request: Request,
    exc: ApplicationError,
) -> JSONResponse:
    """
    Render an ApplicationError.

    Only ValidationError carries details to the client; the other kinds are
    deliberately terse so a 404 or 403 reveals nothing about the note.
    """
    status_code = status_for(exc)
    request_id = _get_request_id(request)

    fields = _request_fields(request, request_id)
    fields.update(code=exc.code, status=status_code)
    if status_code >= 500:
        logger.error("Server error", extra={**fields, "message": exc.message})
    else:
        logger.warning("Client error", extra=fields)

    detail = ErrorDetail(code=exc.code, message=exc.message)
    if isinstance(exc, ValidationError) and exc.details:
        detail.details = exc.details

    return _respond(status_code, detail, request_id)


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Malformed request shape (missing body fields, wrong types)."""
    request_id = _get_request_id(request)
    errors = exc.errors()

    logger.warning(
        "Request validation failed",
        extra={**_request_fields(request, request_id), "error_count": len(errors)},
    )

    detail = ErrorDetail(
        code="VAL_REQUEST_INVALID",
        message="Request validation failed",
        details={
            "validation_errors": [
                {
                    "field": ".".join(str(part) for part in err.get("loc", [])),
                    "message": err.get("msg", "Validation error"),
                    "type": err.get("type", "unknown"),
                }
                for err in errors
            ]
        },
    )
    return _respond(422, detail, request_id)


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    request_id = _get_request_id(request)

    logger.exception(
        "Unhandled exception",
        extra={**_request_fields(request, request_id), "exception_type": type(exc).__name__},
    )

    detail = ErrorDetail(code="SYS_INTERNAL_ERROR", message="An unexpected error occurred")
    if _detailed_errors_enabled():
        detail.details = {"exception_type": type(exc).__name__, "error": str(exc)}

    return _respond(500, detail, request_id)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the three handlers on the application."""
    app.add_exception_handler(ApplicationError, application_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    logger.debug("Exception handlers registered")
