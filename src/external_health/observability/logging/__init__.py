"""Structured logging configuration and utilities."""

from .config import (
    LogFormat,
    LogLevel,
    configure_from_settings,
    get_logger,
    setup_logging,
)
from .correlation import CorrelationIDMiddleware, get_correlation_id, set_correlation_id
from .formatters import ConsoleFormatter, JSONFormatter, StructuredFormatter

__all__ = [
    "setup_logging",
    "configure_from_settings",
    "LogLevel",
    "LogFormat",
    "get_logger",
    "JSONFormatter",
    "ConsoleFormatter",
    "StructuredFormatter",
    "CorrelationIDMiddleware",
    "get_correlation_id",
    "set_correlation_id",
]
