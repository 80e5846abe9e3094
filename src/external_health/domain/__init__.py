"""Domain layer for the external health monitor.

This module contains the core entities, value objects and exceptions.
"""

from .exceptions import (
    HealthMonitorException,
    InvalidServiceConfigException,
    ServiceNotRegisteredException,
    StorageException,
)
from .models import (
    DependencyDescriptor,
    ErrorCode,
    FailureKind,
    HealthStatus,
    ProbeAttemptResult,
)

__all__ = [
    # Models
    "DependencyDescriptor",
    "ErrorCode",
    "FailureKind",
    "HealthStatus",
    "ProbeAttemptResult",
    # Exceptions
    "HealthMonitorException",
    "InvalidServiceConfigException",
    "ServiceNotRegisteredException",
    "StorageException",
]
