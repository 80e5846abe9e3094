"""Error handling and response standardization for the API."""

from datetime import datetime, UTC
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import structlog

from external_health.domain.exceptions import (
    HealthMonitorException,
    InvalidServiceConfigException,
    ServiceNotRegisteredException,
    StorageException,
)

logger = structlog.get_logger()


class ErrorResponse(BaseModel):
    """Standardized error response format."""

    error: bool = True
    code: str
    message: str
    details: dict[str, Any] | None = None
    correlation_id: str | None = None
    timestamp: str
    path: str


class ValidationErrorDetail(BaseModel):
    """Validation error detail."""

    field: str
    message: str
    value: Any


class ValidationErrorResponse(ErrorResponse):
    """Validation error response."""

    code: str = "validation_error"
    validation_errors: list[ValidationErrorDetail]


def get_correlation_id(request: Request) -> str:
    """Extract correlation ID from request."""
    return getattr(request.state, "correlation_id", "unknown")


def create_error_response(
    request: Request,
    code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Create standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            code=code,
            message=message,
            details=details,
            correlation_id=get_correlation_id(request),
            timestamp=datetime.now(UTC).isoformat(),
            path=str(request.url.path),
        ).model_dump(),
    )


async def validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handle request validation errors."""
    if not isinstance(exc, RequestValidationError):
        raise exc

    validation_errors = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            value=error.get("input"),
        )
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ValidationErrorResponse(
            message="Validation failed",
            validation_errors=validation_errors,
            correlation_id=get_correlation_id(request),
            timestamp=datetime.now(UTC).isoformat(),
            path=str(request.url.path),
        ).model_dump(mode="json"),
    )


async def service_not_registered_handler(
    request: Request, exc: ServiceNotRegisteredException
) -> JSONResponse:
    """Handle lookups of unregistered services."""
    return create_error_response(
        request=request,
        code=exc.error_code.value,
        message=str(exc),
        status_code=status.HTTP_404_NOT_FOUND,
        details=exc.details,
    )


async def invalid_config_exception_handler(
    request: Request, exc: InvalidServiceConfigException
) -> JSONResponse:
    """Handle invalid service configuration."""
    return create_error_response(
        request=request,
        code=exc.error_code.value,
        message=str(exc),
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details=exc.details,
    )


async def storage_exception_handler(
    request: Request, exc: StorageException
) -> JSONResponse:
    """Handle backing store failures."""
    logger.error(
        "Storage failure while handling request",
        operation=exc.operation,
        error_message=exc.error_message,
    )
    return create_error_response(
        request=request,
        code=exc.error_code.value,
        message=str(exc),
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        details={"operation": exc.operation},
    )


async def general_exception_handler(
    request: Request, exc: HealthMonitorException
) -> JSONResponse:
    """Handle general health monitor exceptions."""
    return create_error_response(
        request=request,
        code=exc.error_code.value,
        message=str(exc),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        details=exc.details,
    )


async def unexpected_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error", path=str(request.url.path))
    return create_error_response(
        request=request,
        code="internal_error",
        message="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        details={"exception_type": type(exc).__name__},
    )
