import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from delivery_ledger.exceptions import BaseAPIException, ValidationException
from delivery_ledger.schemas.common import ErrorDetail, ErrorMeta, ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Optional[dict] = None,
) -> JSONResponse:
    error_response = ErrorResponse(
        error=ErrorDetail(code=code, message=message, details=details or None),
        meta=ErrorMeta(
            timestamp=datetime.now(timezone.utc).isoformat(), path=request.url.path
        ),
    )
    return JSONResponse(
        status_code=status_code, content=error_response.model_dump(exclude_none=True)
    )


async def api_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global handler for domain exceptions.

    Returns structured error response with status code and error details.
    """
    assert isinstance(exc, BaseAPIException)
    logger.warning(
        "API Exception: %s - %s",
        exc.error_code,
        exc.message,
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
        },
    )
    return _error_response(
        request, exc.status_code, exc.error_code, exc.message, exc.details
    )


async def integrity_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle constraint violations that escaped service-level checks.

    Foreign key violations mean a referenced user does not exist; everything
    else is reported as a conflict with current state.
    """
    assert isinstance(exc, IntegrityError)
    error_message = str(exc.orig).lower()

    if "foreign key" in error_message:
        api_exception = ValidationException(
            message="Referenced user does not exist",
            error_code="INVALID_REFERENCE",
        )
        return await api_exception_handler(request, api_exception)

    logger.warning(
        "Database integrity error",
        extra={
            "error": str(exc.orig),
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _error_response(
        request, 409, "INTEGRITY_ERROR", "Database constraint violation"
    )


async def database_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Storage failures are transient from the caller's point of view."""
    logger.error(
        "Database error: %s",
        type(exc).__name__,
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return _error_response(
        request,
        503,
        "DATABASE_UNAVAILABLE",
        "Database operation failed, please retry",
        {"retryable": True},
    )


async def unhandled_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Catch-all handler for unexpected errors.

    Returns generic 500 error without exposing internal details.
    """
    logger.error(
        "Unhandled exception: %s",
        type(exc).__name__,
        exc_info=exc,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )
    return _error_response(
        request, 500, "INTERNAL_ERROR", "An unexpected error occurred"
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all global exception handlers to the FastAPI application.

    Handlers are registered in order of specificity:
    1. Domain exceptions (BaseAPIException)
    2. Database integrity errors (IntegrityError)
    3. Other database errors (SQLAlchemyError)
    4. Unhandled exceptions (Exception)
    """
    app.add_exception_handler(BaseAPIException, api_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
