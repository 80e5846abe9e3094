"""
Factory for building the health monitor from application settings.

Selects the backing store from configuration and wires the monitor's
components with their configured parameters.
"""

import httpx
import structlog

from external_health.config.settings import ApplicationSettings
from external_health.resilience.storage import InMemoryStore, KeyValueStore, RedisStore

from .checker import LatencyThresholds
from .monitor import ExternalHealthMonitor

logger = structlog.get_logger()


def create_store(settings: ApplicationSettings) -> KeyValueStore:
    """
    Create the backing store based on configuration.

    Redis when ``use_redis`` is set, otherwise in-memory.
    """
    if settings.use_redis:
        store: KeyValueStore = RedisStore.from_url(
            settings.redis.url,
            max_connections=settings.redis.max_connections,
            retry_on_timeout=settings.redis.retry_on_timeout,
            health_check_interval=settings.redis.health_check_interval,
            decode_responses=True,
        )
        backend_type = "redis"
    else:
        store = InMemoryStore()
        backend_type = "memory"

    logger.info(
        "Created health monitor store",
        backend_type=backend_type,
        environment=settings.environment.value,
    )
    return store


def create_monitor(
    settings: ApplicationSettings,
    store: KeyValueStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ExternalHealthMonitor:
    """
    Create a monitor and register the configured services.

    Args:
        settings: Application settings
        store: Store to use instead of the configured one
        transport: httpx transport for probes

    Returns:
        Configured monitor
    """
    health = settings.health_check
    thresholds = None
    if health.degraded_latency_ms is not None or health.slow_latency_ms is not None:
        thresholds = LatencyThresholds(
            degraded_ms=health.degraded_latency_ms, slow_ms=health.slow_latency_ms
        )

    monitor = ExternalHealthMonitor(
        store or create_store(settings),
        default_timeout=health.timeout,
        cache_ttl=health.cache_ttl,
        breaker_config=settings.circuit_breaker.get_config(),
        retry_config=settings.retry.get_config(),
        transport=transport,
        latency_thresholds=thresholds,
        max_concurrency=health.max_concurrency,
        aggregate_timeout=health.aggregate_timeout,
    )
    monitor.configure_services(health.external_services)

    logger.info(
        "Health monitor configured",
        services=len(monitor.get_registered_services()),
    )
    return monitor
