"""External dependency health monitor.

Ties the registry, circuit breaker, retry controller, probe executor and
result cache together and rolls per-dependency results into an aggregate
status. One instance is created per process and shared by reference.
"""

import asyncio
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from external_health.domain.models import (
    DependencyDescriptor,
    FailureKind,
    HealthStatus,
    ProbeAttemptResult,
)
from external_health.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
)
from external_health.resilience.retry import RetryConfig, RetryController
from external_health.resilience.retry.controller import SleepFunc
from external_health.resilience.storage import InMemoryStore, KeyValueStore

from .cache import ResultCache
from .checker import LatencyThresholds, ProbeExecutor
from .registry import ServiceRegistry

logger = structlog.get_logger()


@dataclass
class AggregateReport:
    """Result of checking every registered dependency."""

    status: HealthStatus
    critical_failed: bool
    timestamp: datetime
    services: dict[str, ProbeAttemptResult] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "critical_failed": self.critical_failed,
            "timestamp": self.timestamp.isoformat(),
            "services": {
                name: result.to_dict() for name, result in self.services.items()
            },
        }


@dataclass
class HealthSummary:
    """Dashboard summary of the aggregate health."""

    overall_status: HealthStatus
    critical_failed: bool
    total_services: int
    counts: dict[str, int]
    services: dict[str, str]
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "overall_status": self.overall_status.value,
            "critical_failed": self.critical_failed,
            "total_services": self.total_services,
            "counts": dict(self.counts),
            "services": dict(self.services),
            "timestamp": self.timestamp.isoformat(),
        }


class ExternalHealthMonitor:
    """Monitors the health of registered external dependencies."""

    def __init__(
        self,
        store: KeyValueStore | None = None,
        *,
        default_timeout: float = 5.0,
        cache_ttl: int = 300,
        breaker_config: CircuitBreakerConfig | None = None,
        retry_config: RetryConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        latency_thresholds: LatencyThresholds | None = None,
        max_concurrency: int = 10,
        aggregate_timeout: float = 30.0,
        clock: Callable[[], float] = time.time,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize the monitor.

        Args:
            store: Backing store for cached results and breaker counters
            default_timeout: Probe timeout for services registered without one
            cache_ttl: Seconds a probe result stays cached
            breaker_config: Circuit breaker configuration
            retry_config: Backoff configuration between retries
            transport: httpx transport used by probes
            latency_thresholds: Optional latency limits for degraded status
            max_concurrency: Maximum probes in flight during aggregate checks
            aggregate_timeout: Deadline in seconds for aggregate checks
            clock: Returns the current time in epoch seconds
            sleep: Awaitable sleep used for retry backoff
        """
        self._clock = clock
        self.store = store or InMemoryStore(clock=clock)
        self.registry = ServiceRegistry(default_timeout)
        self.cache = ResultCache(self.store, cache_ttl)
        self.circuit_breaker = CircuitBreaker(self.store, breaker_config, clock)
        self.executor = ProbeExecutor(transport, latency_thresholds, now=self._now)
        self.retry = RetryController(self.executor.probe, retry_config, sleep)
        self.max_concurrency = max_concurrency
        self.aggregate_timeout = aggregate_timeout

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), UTC)

    # Registry

    def register_service(
        self, name: str, url: str, method: str = "GET", **options: Any
    ) -> DependencyDescriptor:
        """Register or replace an external service.

        Args:
            name: Unique service name
            url: Probe URL
            method: HTTP method
            **options: ``expected_status``, ``expected_body``, ``timeout``,
                ``retry_count``, ``critical``, ``circuit_breaker``, ``headers``

        Returns:
            The stored descriptor
        """
        return self.registry.register(name, url, method, **options)

    def configure_services(
        self, entries: Iterable[dict[str, Any]]
    ) -> list[DependencyDescriptor]:
        """Register services from configuration entries."""
        return [self.registry.register_from_config(entry) for entry in entries]

    async def unregister_service(self, name: str) -> None:
        """Remove a service together with its cached result and breaker state."""
        self.registry.unregister(name)
        await self.cache.invalidate(name)
        await self.circuit_breaker.reset(name)

    def has_service(self, name: str) -> bool:
        return name in self.registry

    def get_registered_services(self) -> dict[str, DependencyDescriptor]:
        return self.registry.all()

    def set_timeout(self, seconds: float) -> None:
        """Set the default timeout for services registered afterwards."""
        if seconds <= 0:
            raise ValueError("Timeout must be positive")
        self.registry.default_timeout = seconds

    def set_cache_ttl(self, seconds: int) -> None:
        """Set the TTL used for results stored afterwards."""
        if seconds <= 0:
            raise ValueError("Cache TTL must be positive")
        self.cache.ttl = seconds

    # Checks

    def _unknown_result(self, name: str) -> ProbeAttemptResult:
        return ProbeAttemptResult(
            name=name,
            status=HealthStatus.UNKNOWN,
            message="Service not registered",
            checked_at=self._now(),
            failure=FailureKind.UNKNOWN_DEPENDENCY,
        )

    def _synthetic_result(
        self,
        descriptor: DependencyDescriptor,
        message: str,
        failure: FailureKind,
    ) -> ProbeAttemptResult:
        return ProbeAttemptResult(
            name=descriptor.name,
            status=HealthStatus.UNHEALTHY,
            message=message,
            checked_at=self._now(),
            critical=descriptor.critical,
            url=descriptor.probe_url,
            failure=failure,
        )

    async def _check(
        self,
        descriptor: DependencyDescriptor,
        use_cache: bool,
        timeout: float | None = None,
    ) -> ProbeAttemptResult:
        name = descriptor.name

        if use_cache:
            cached = await self.cache.get(name)
            # A re-registered URL invalidates the old result
            if cached is not None and cached.url == descriptor.probe_url:
                return cached

        breaker_enabled = descriptor.circuit_breaker_enabled
        if breaker_enabled and not await self.circuit_breaker.allow_request(name):
            return self._synthetic_result(
                descriptor,
                "Circuit breaker open - too many failures",
                FailureKind.CIRCUIT_OPEN,
            )

        result = await self.retry.run(descriptor, timeout)

        if breaker_enabled:
            if result.status == HealthStatus.UNHEALTHY:
                await self.circuit_breaker.record_failure(name)
            else:
                await self.circuit_breaker.record_success(name)

        if self.registry.get(name) is descriptor:
            await self.cache.put(result)

        return result

    async def check_service(
        self, name: str, use_cache: bool = True
    ) -> ProbeAttemptResult:
        """Check a single service.

        Args:
            name: Service name
            use_cache: Return a fresh cached result instead of probing

        Returns:
            Health result; unregistered names yield an UNKNOWN result
        """
        descriptor = self.registry.get(name)
        if descriptor is None:
            return self._unknown_result(name)
        return await self._check(descriptor, use_cache)

    async def check_with_timeout(
        self, name: str, timeout_seconds: float
    ) -> ProbeAttemptResult:
        """Probe a service once with an overridden timeout, bypassing the cache."""
        if timeout_seconds <= 0:
            raise ValueError("Timeout must be positive")
        descriptor = self.registry.get(name)
        if descriptor is None:
            return self._unknown_result(name)
        return await self._check(descriptor, use_cache=False, timeout=timeout_seconds)

    async def check_all_services(self, use_cache: bool = True) -> AggregateReport:
        """Check every registered service concurrently.

        Services still running when the aggregate deadline expires are
        cancelled and reported unhealthy.
        """
        descriptors = list(self.registry)
        if not descriptors:
            return AggregateReport(
                status=HealthStatus.HEALTHY,
                critical_failed=False,
                timestamp=self._now(),
            )

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(descriptor: DependencyDescriptor) -> ProbeAttemptResult:
            async with semaphore:
                return await self._check(descriptor, use_cache)

        tasks = {d.name: asyncio.create_task(run(d)) for d in descriptors}
        _, pending = await asyncio.wait(
            tasks.values(), timeout=self.aggregate_timeout
        )
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                "Aggregate health check deadline exceeded",
                timeout=self.aggregate_timeout,
                services=[name for name, task in tasks.items() if task in pending],
            )

        results: dict[str, ProbeAttemptResult] = {}
        for descriptor in descriptors:
            task = tasks[descriptor.name]
            if task in pending:
                results[descriptor.name] = self._synthetic_result(
                    descriptor,
                    "Health check exceeded aggregate deadline",
                    FailureKind.DEADLINE,
                )
            elif (error := task.exception()) is not None:
                logger.error(
                    "Error checking service health",
                    service_name=descriptor.name,
                    error=str(error),
                )
                results[descriptor.name] = self._synthetic_result(
                    descriptor,
                    f"Health check failed: {error}",
                    FailureKind.TRANSPORT,
                )
            else:
                results[descriptor.name] = task.result()

        status = HealthStatus.aggregate([r.status for r in results.values()])
        critical_failed = any(
            d.critical and results[d.name].status != HealthStatus.HEALTHY
            for d in descriptors
        )

        logger.info(
            "Aggregate health check completed",
            status=status.value,
            total_services=len(results),
            critical_failed=critical_failed,
        )

        return AggregateReport(
            status=status,
            critical_failed=critical_failed,
            timestamp=self._now(),
            services=results,
        )

    async def get_summary(self) -> HealthSummary:
        """Get a health summary for dashboards."""
        report = await self.check_all_services(use_cache=True)

        counts = {status.value: 0 for status in HealthStatus}
        for result in report.services.values():
            counts[result.status.value] += 1

        return HealthSummary(
            overall_status=report.status,
            critical_failed=report.critical_failed,
            total_services=len(report.services),
            counts=counts,
            services={
                name: result.status.value for name, result in report.services.items()
            },
            timestamp=report.timestamp,
        )

    # Circuit breaker and cache

    async def get_circuit_breaker_status(self, name: str) -> dict[str, Any]:
        return await self.circuit_breaker.get_state_info(name)

    async def reset_circuit_breaker(self, name: str) -> None:
        await self.circuit_breaker.reset(name)

    async def clear_cache(self) -> None:
        """Remove every cached result; breaker counters are kept."""
        names = self.registry.names()
        await self.cache.invalidate(*names)
        logger.info("Cleared health check cache", services=len(names))

    async def close(self) -> None:
        await self.store.close()
