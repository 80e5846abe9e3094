"""Exception hierarchy for the external health monitor."""

from typing import Any

from .models import ErrorCode


class HealthMonitorException(Exception):
    """Base exception for the health monitor."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
        correlation_id: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.correlation_id = correlation_id


class InvalidServiceConfigException(HealthMonitorException):
    """Registration options failed validation."""

    def __init__(self, service_name: str, errors: list[dict[str, Any]]):
        super().__init__(
            f"Invalid configuration for service: {service_name}",
            ErrorCode.VALIDATION_ERROR,
            {"service_name": service_name, "errors": errors},
        )
        self.service_name = service_name
        self.errors = errors


class ServiceNotRegisteredException(HealthMonitorException):
    """Service name is not in the registry."""

    def __init__(self, service_name: str):
        super().__init__(
            f"Service not registered: {service_name}",
            ErrorCode.SERVICE_NOT_REGISTERED,
            {"service_name": service_name},
        )
        self.service_name = service_name


class StorageException(HealthMonitorException):
    """Backing key-value store operation failed."""

    def __init__(self, operation: str, key: str, error_message: str):
        super().__init__(
            f"Storage {operation} failed for key: {key}",
            ErrorCode.STORAGE_ERROR,
            {"operation": operation, "key": key, "error_message": error_message},
        )
        self.operation = operation
        self.key = key
        self.error_message = error_message
