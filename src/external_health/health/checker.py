"""Probe execution and response classification for HTTP dependencies."""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
import structlog

from external_health.domain.models import (
    DependencyDescriptor,
    FailureKind,
    HealthStatus,
    ProbeAttemptResult,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class LatencyThresholds:
    """Optional latency limits (milliseconds) that downgrade a reachable service."""

    degraded_ms: float | None = None
    slow_ms: float | None = None


def classify_response(
    descriptor: DependencyDescriptor,
    status_code: int,
    body: str,
    latency_ms: float,
    checked_at: datetime,
    thresholds: LatencyThresholds | None = None,
) -> ProbeAttemptResult:
    """Classify a received response.

    Status is checked before content: a wrong status code is unhealthy, a
    right status code with missing expected content is degraded.
    """

    def build(
        status: HealthStatus, message: str, failure: FailureKind | None = None
    ) -> ProbeAttemptResult:
        return ProbeAttemptResult(
            name=descriptor.name,
            status=status,
            message=message,
            checked_at=checked_at,
            latency_ms=latency_ms,
            http_status=status_code,
            critical=descriptor.critical,
            url=descriptor.probe_url,
            failure=failure,
        )

    if status_code not in descriptor.expected_status:
        return build(
            HealthStatus.UNHEALTHY,
            f"Unexpected status code: {status_code}",
            FailureKind.PROTOCOL,
        )

    expected_body = descriptor.expected_body_substring
    if expected_body is not None and expected_body not in body:
        return build(
            HealthStatus.DEGRADED,
            "Response body does not contain expected content",
            FailureKind.CONTENT,
        )

    if thresholds is not None:
        if thresholds.slow_ms is not None and latency_ms > thresholds.slow_ms:
            return build(
                HealthStatus.DEGRADED,
                f"Service is slow (>{thresholds.slow_ms:g}ms latency)",
                FailureKind.LATENCY,
            )
        if thresholds.degraded_ms is not None and latency_ms > thresholds.degraded_ms:
            return build(
                HealthStatus.DEGRADED,
                "Service latency is higher than normal",
                FailureKind.LATENCY,
            )

    return build(HealthStatus.HEALTHY, "Service is healthy")


def classify_transport_error(
    descriptor: DependencyDescriptor,
    error: BaseException,
    latency_ms: float,
    checked_at: datetime,
    message: str | None = None,
) -> ProbeAttemptResult:
    """Classify a request that never produced a response."""
    return ProbeAttemptResult(
        name=descriptor.name,
        status=HealthStatus.UNHEALTHY,
        message=message or str(error) or type(error).__name__,
        checked_at=checked_at,
        latency_ms=latency_ms,
        critical=descriptor.critical,
        url=descriptor.probe_url,
        failure=FailureKind.TRANSPORT,
    )


class ProbeExecutor:
    """Issues one bounded HTTP request per probe."""

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        thresholds: LatencyThresholds | None = None,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        """Initialize probe executor.

        Args:
            transport: httpx transport, e.g. ``httpx.MockTransport`` in tests
            thresholds: Optional latency thresholds
            now: Returns the current UTC time for ``checked_at``
        """
        self.transport = transport
        self.thresholds = thresholds
        self._now = now

    async def probe(
        self, descriptor: DependencyDescriptor, timeout: float | None = None
    ) -> ProbeAttemptResult:
        """Probe a dependency once.

        Args:
            descriptor: Dependency to probe
            timeout: Overrides the descriptor's timeout for this attempt

        Returns:
            Classified result; transport failures are returned, not raised
        """
        timeout = timeout if timeout is not None else descriptor.timeout_seconds
        start_time = time.perf_counter()

        try:
            async with httpx.AsyncClient(
                timeout=timeout, transport=self.transport
            ) as client:
                response = await asyncio.wait_for(
                    client.request(
                        descriptor.method,
                        descriptor.probe_url,
                        headers=descriptor.headers,
                    ),
                    timeout=timeout,
                )
        except TimeoutError as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "Probe timed out", service_name=descriptor.name, timeout=timeout
            )
            return classify_transport_error(
                descriptor,
                e,
                round(latency_ms, 2),
                self._now(),
                message=f"Health check timed out after {timeout:g}s",
            )
        except (httpx.HTTPError, httpx.InvalidURL, OSError, ValueError) as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "Probe transport failure",
                service_name=descriptor.name,
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return classify_transport_error(
                descriptor, e, round(latency_ms, 2), self._now()
            )

        latency_ms = round((time.perf_counter() - start_time) * 1000, 2)
        return classify_response(
            descriptor,
            response.status_code,
            response.text,
            latency_ms,
            self._now(),
            self.thresholds,
        )
