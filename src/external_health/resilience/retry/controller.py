"""Bounded retry of dependency probes."""

import asyncio
from collections.abc import Awaitable, Callable

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
    wait_none,
    wait_random,
)
from tenacity.wait import wait_base

from external_health.domain.models import (
    DependencyDescriptor,
    HealthStatus,
    ProbeAttemptResult,
)

from .config import RetryConfig

logger = structlog.get_logger()

ProbeFunc = Callable[
    [DependencyDescriptor, float | None], Awaitable[ProbeAttemptResult]
]
SleepFunc = Callable[[float], Awaitable[None]]


def _is_retryable(result: ProbeAttemptResult) -> bool:
    """Only unreachable outcomes are retried; wrong content is not transient."""
    return result.status == HealthStatus.UNHEALTHY


def _last_result(retry_state: RetryCallState) -> ProbeAttemptResult:
    assert retry_state.outcome is not None
    return retry_state.outcome.result()  # type: ignore[no-any-return]


def build_wait(config: RetryConfig) -> wait_base:
    """Build the tenacity wait strategy for the configuration."""
    if config.base_delay <= 0:
        return wait_none()

    wait: wait_base = wait_exponential(
        multiplier=config.base_delay,
        exp_base=config.multiplier,
        min=config.base_delay,
        max=config.max_delay,
    )
    if config.jitter:
        wait = wait + wait_random(0, config.base_delay * 0.25)
    return wait


class RetryController:
    """Runs a probe up to ``retry_count + 1`` times.

    Stops on the first healthy or degraded result. When every attempt is
    unhealthy the last attempt's result is returned, never raised.
    """

    def __init__(
        self,
        probe: ProbeFunc,
        config: RetryConfig | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        """Initialize retry controller.

        Args:
            probe: Coroutine function performing one probe attempt
            config: Backoff configuration
            sleep: Awaitable sleep used between attempts
        """
        self.probe = probe
        self.config = config or RetryConfig()
        self._sleep = sleep

    async def run(
        self, descriptor: DependencyDescriptor, timeout: float | None = None
    ) -> ProbeAttemptResult:
        """Probe a dependency with retries.

        Args:
            descriptor: Dependency to probe
            timeout: Per-attempt timeout override

        Returns:
            The first reachable result, or the last failed one
        """
        attempts = 0

        async def attempt() -> ProbeAttemptResult:
            nonlocal attempts
            attempts += 1
            return await self.probe(descriptor, timeout)

        def log_retry(retry_state: RetryCallState) -> None:
            result = retry_state.outcome.result() if retry_state.outcome else None
            logger.warning(
                "Probe failed, retrying",
                service_name=descriptor.name,
                attempt=retry_state.attempt_number,
                max_attempts=descriptor.retry_count + 1,
                delay=retry_state.upcoming_sleep,
                error_message=result.message if result else None,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(descriptor.retry_count + 1),
            wait=build_wait(self.config),
            retry=retry_if_result(_is_retryable),
            before_sleep=log_retry,
            retry_error_callback=_last_result,
            sleep=self._sleep,
        )
        result: ProbeAttemptResult = await retrying(attempt)
        result.attempts = attempts

        if attempts > 1:
            log = logger.info if not _is_retryable(result) else logger.error
            log(
                "Probe finished after retries",
                service_name=descriptor.name,
                attempts=attempts,
                status=result.status.value,
            )

        return result
