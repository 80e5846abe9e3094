"""Resilience patterns for dependency probing.

This module provides bounded retries, a store-backed circuit breaker and the
key-value stores that hold breaker counters and cached results.
"""

from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig, CircuitState
from .retry import RetryConfig, RetryController
from .storage import InMemoryStore, KeyValueStore, RedisStore

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "RetryConfig",
    "RetryController",
    "KeyValueStore",
    "InMemoryStore",
    "RedisStore",
]
