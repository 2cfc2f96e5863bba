"""Standardized error handling."""

from typing import Any

import asyncpg
from fastapi import FastAPI, Request, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.responses import JSONResponse
from structlog import get_logger

from offboard_api.core.config import settings
from offboard_api.core.errors import DomainError

logger = get_logger()

# Map domain error codes to HTTP status codes
ERROR_STATUS_MAP = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_ARGUMENT": status.HTTP_400_BAD_REQUEST,
    "AUTHENTICATION_REQUIRED": status.HTTP_401_UNAUTHORIZED,
    "CONFIGURATION_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "DOMAIN_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _error_body(request: Request, code: str, message: str) -> dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "request_id": getattr(request.state, "request_id", None),
        }
    }


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """
    Translate domain exceptions to HTTP responses.

    These are expected errors, logged at WARNING. Context is included in the
    response only when EXPOSE_ERROR_DETAILS is enabled.
    """
    http_status = ERROR_STATUS_MAP.get(exc.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    logger.warning(
        "domain_error_handled",
        error_code=exc.code,
        http_status=http_status,
        message=exc.message,
        context=exc.context,
    )

    content = _error_body(request, exc.code, exc.message)
    if settings.expose_error_details and exc.context:
        content["error"]["details"] = exc.context

    return JSONResponse(status_code=http_status, content=content)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException and return standardized error format.

    Error format:
    {
        "error": {
            "code": "HTTP_XXX",
            "message": "Error message",
            "request_id": "uuid"
        }
    }
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, f"HTTP_{exc.status_code}", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors; the body includes Pydantic's details."""
    content = _error_body(request, "VALIDATION_ERROR", "Invalid request data")
    content["error"]["details"] = jsonable_errors(exc)
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=content)


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    """Drop the non-serializable ctx/input values Pydantic may attach."""
    return [
        {key: value for key, value in error.items() if key in ("type", "loc", "msg")}
        for error in exc.errors()
    ]


async def storage_error_handler(request: Request, exc: asyncpg.PostgresError) -> JSONResponse:
    """Database errors surface as 500s; the SQLSTATE is logged, not returned."""
    logger.error(
        "storage_failure",
        error_type=type(exc).__name__,
        sqlstate=getattr(exc, "sqlstate", None),
        error=str(exc),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "STORAGE_FAILURE", "A database error occurred"),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected exceptions, logged with stack trace."""
    logger.exception("unhandled_exception", error_type=type(exc).__name__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "INTERNAL_ERROR", "An unexpected error occurred"),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Configure exception handlers for the application.

    Registers handlers for:
    - DomainError (domain-level exceptions)
    - HTTPException (FastAPI exceptions)
    - RequestValidationError (Pydantic validation)
    - asyncpg.PostgresError (storage failures)
    - Exception (catch-all for unexpected errors)
    """
    app.add_exception_handler(DomainError, domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(asyncpg.PostgresError, storage_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)  # type: ignore[arg-type]
