"""Circuit breaker for dependency probes.

Stops probing a dependency after repeated failures so a known-failing
dependency does not consume probe resources.
"""

from .breaker import CircuitBreaker, CircuitState
from .config import CircuitBreakerConfig, CircuitBreakerSettings

__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "CircuitBreakerConfig",
    "CircuitBreakerSettings",
]
