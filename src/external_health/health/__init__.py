"""External dependency health checks.

Probing, classification, caching and aggregation of dependency health.
"""

from .cache import ResultCache
from .checker import (
    LatencyThresholds,
    ProbeExecutor,
    classify_response,
    classify_transport_error,
)
from .factory import create_monitor, create_store
from .monitor import AggregateReport, ExternalHealthMonitor, HealthSummary
from .registry import ServiceRegistry

__all__ = [
    "ExternalHealthMonitor",
    "AggregateReport",
    "HealthSummary",
    "ServiceRegistry",
    "ResultCache",
    "ProbeExecutor",
    "LatencyThresholds",
    "classify_response",
    "classify_transport_error",
    "create_monitor",
    "create_store",
]
