"""
Exception Handlers.

Turns exceptions raised while serving a request into the ErrorResponse
envelope.

Store failures get their own handler: they are logged with the failing
store operation and event id, and the body repeats both under
``error.details`` so a client can tell which write or read to retry.
Everything else in the ApplicationError tree maps to a status through
STATUS_BY_ERROR, walking the exception's MRO so subclasses inherit
their parent's status.

Usage:
    from event_mesh.core.exception_handlers import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from event_mesh.core.exceptions import (
    ApplicationError,
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from event_mesh.core.logging import get_logger, log_store_failure, log_with_source
from event_mesh.schemas.base import ErrorDetail, ErrorResponse, ResponseMetadata

logger = get_logger(__name__)

STATUS_BY_ERROR: dict[type[ApplicationError], int] = {
    NotFoundError: 404,
    ValidationError: 400,
    ConflictError: 409,
    StoreError: 503,
}

# Seconds a client should wait before retrying after a store failure
STORE_RETRY_AFTER = 5


def status_for(exc: ApplicationError) -> int:
    """HTTP status for an application error, 500 when nothing in its MRO is mapped."""
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 500


def _get_request_id(request: Request) -> str | None:
    """Request id set by the middleware, else the inbound header."""
    if hasattr(request.state, "request_id"):
        return request.state.request_id
    return request.headers.get("x-request-id")


def _request_fields(request: Request) -> dict[str, Any]:
    return {
        "path": request.url.path,
        "method": request.method,
        "request_id": _get_request_id(request),
    }


def _error_response(
    request: Request,
    status_code: int,
    detail: ErrorDetail,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    response = ErrorResponse(
        error=detail,
        metadata=ResponseMetadata(request_id=_get_request_id(request)),
    )
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json"),
        headers=headers,
    )


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """
    Handle a storage backend failure that was not absorbed by the fallback.

    Reads, outcome updates and narrative writes always end up here when the
    durable store fails. Publishes only do when no fallback is configured.
    """
    log_store_failure(logger, "Event store request failed", exc, **_request_fields(request))

    details = {"operation": exc.operation, "eventId": exc.event_id}
    detail = ErrorDetail(
        code=exc.code,
        message=exc.message,
        details={key: value for key, value in details.items() if value is not None} or None,
    )
    return _error_response(
        request, status_for(exc), detail, headers={"Retry-After": str(STORE_RETRY_AFTER)},
    )


async def application_error_handler(request: Request, exc: ApplicationError) -> JSONResponse:
    """Handle not-found, validation and conflict errors raised by the services."""
    status_code = status_for(exc)
    level = "error" if status_code >= 500 else "warning"
    log_with_source(
        logger,
        "api",
        level,
        "Request rejected",
        code=exc.code,
        error=exc.message,
        status=status_code,
        **_request_fields(request),
    )

    detail = ErrorDetail(code=exc.code, message=exc.message)
    if isinstance(exc, ValidationError) and exc.details:
        detail.details = exc.details
    return _error_response(request, status_code, detail)


async def validation_error_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Report malformed request bodies and query strings as 422 VAL_REQUEST_INVALID."""
    errors = exc.errors()
    log_with_source(
        logger,
        "api",
        "warning",
        "Request validation failed",
        error_count=len(errors),
        **_request_fields(request),
    )

    detail = ErrorDetail(
        code="VAL_REQUEST_INVALID",
        message="Request validation failed",
        details={
            "validation_errors": [
                {
                    "field": ".".join(str(loc) for loc in err.get("loc", [])),
                    "message": err.get("msg", "Validation error"),
                    "type": err.get("type", "unknown"),
                }
                for err in errors
            ]
        },
    )
    return _error_response(request, 422, detail)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback and return a generic 500 without internal details."""
    logger.exception(
        "Unhandled exception",
        extra={"exception_type": type(exc).__name__, **_request_fields(request)},
    )
    detail = ErrorDetail(code="SYS_INTERNAL_ERROR", message="An unexpected error occurred")
    return _error_response(request, 500, detail)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register the handlers on the app.

    Starlette resolves handlers by the exception's MRO, so StoreError
    takes precedence over the ApplicationError handler.
    """
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(ApplicationError, application_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    logger.debug("Exception handlers registered")
