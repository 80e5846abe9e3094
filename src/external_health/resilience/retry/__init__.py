"""Retry of dependency probes with exponential backoff, built on tenacity."""

from .config import RetryConfig, RetrySettings
from .controller import RetryController, build_wait

__all__ = [
    "RetryConfig",
    "RetrySettings",
    "RetryController",
    "build_wait",
]
