"""External dependency health monitor.

Probes registered HTTP dependencies, protects them with retries and circuit
breakers, caches results and reports an aggregate status.
"""

__version__ = "0.1.0"
__description__ = (
    "Health monitoring for external HTTP dependencies with retries, "
    "circuit breakers and cached aggregate status"
)
