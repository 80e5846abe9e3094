"""Store-backed circuit breaker for dependency probes."""

import time
from collections.abc import Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog

from ..storage import KeyValueStore
from .config import CircuitBreakerConfig

logger = structlog.get_logger()


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    """Per-dependency failure counting and gating.

    State lives in the key-value store under ``circuit:{name}:failures`` and
    ``circuit:{name}:opened_at`` so that every instance sharing the store
    sees the same circuit. The circuit is open once the failure count reaches
    the threshold; it closes on a healthy outcome or an explicit reset.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize circuit breaker.

        Args:
            store: Backing key-value store
            config: Circuit breaker configuration
            clock: Returns the current time in epoch seconds
        """
        self.store = store
        self.config = config or CircuitBreakerConfig()
        self._clock = clock

    @staticmethod
    def failures_key(name: str) -> str:
        return f"circuit:{name}:failures"

    @staticmethod
    def opened_at_key(name: str) -> str:
        return f"circuit:{name}:opened_at"

    @staticmethod
    def trial_key(name: str) -> str:
        return f"circuit:{name}:trial"

    async def get_failure_count(self, name: str) -> int:
        return int(await self.store.get(self.failures_key(name)) or 0)

    async def _opened_at(self, name: str) -> float | None:
        value = await self.store.get(self.opened_at_key(name))
        return float(value) if value is not None else None

    def _recovery_elapsed(self, opened_at: float | None) -> bool:
        if self.config.recovery_timeout is None or opened_at is None:
            return False
        return self._clock() - opened_at >= self.config.recovery_timeout

    async def allow_request(self, name: str) -> bool:
        """Check whether a probe may run for the dependency.

        With a recovery timeout configured, one trial probe is admitted per
        recovery window once the circuit has been open that long.
        """
        failures = await self.get_failure_count(name)
        if failures < self.config.failure_threshold:
            return True

        opened_at = await self._opened_at(name)
        if opened_at is None:
            await self.store.add(
                self.opened_at_key(name), self._clock(), self.config.failure_window
            )
            return False

        if self._recovery_elapsed(opened_at) and await self.store.add(
            self.trial_key(name), self._clock(), self.config.recovery_timeout
        ):
            logger.info(
                "Circuit breaker admitting trial probe",
                circuit_name=name,
                failure_count=failures,
                recovery_timeout=self.config.recovery_timeout,
            )
            return True

        logger.debug(
            "Circuit breaker is open, rejecting probe",
            circuit_name=name,
            failure_count=failures,
        )
        return False

    async def record_success(self, name: str) -> None:
        """Reset the failure count after a reachable outcome."""
        failures = await self.get_failure_count(name)
        await self.store.delete(
            self.failures_key(name), self.opened_at_key(name), self.trial_key(name)
        )
        if failures >= self.config.failure_threshold:
            logger.info(
                "Circuit breaker closing after successful probe", circuit_name=name
            )

    async def record_failure(self, name: str) -> int:
        """Count an unhealthy outcome.

        Returns:
            The new failure count
        """
        window = self.config.failure_window
        failures = await self.store.increment(self.failures_key(name), ttl=window)

        if failures >= self.config.failure_threshold:
            now = self._clock()
            if await self.store.add(self.opened_at_key(name), now, window):
                logger.warning(
                    "Circuit breaker opened due to failure threshold",
                    circuit_name=name,
                    failure_count=failures,
                    threshold=self.config.failure_threshold,
                )
            elif await self.store.get(self.trial_key(name)) is not None:
                # Failed trial probe: start a new recovery window
                await self.store.set(self.opened_at_key(name), now, window)
                await self.store.delete(self.trial_key(name))
                logger.warning(
                    "Circuit breaker returning to open state after failed trial",
                    circuit_name=name,
                    failure_count=failures,
                )

        return failures

    async def get_state(self, name: str) -> CircuitState:
        """Get the current state for a dependency."""
        failures = await self.get_failure_count(name)
        if failures < self.config.failure_threshold:
            return CircuitState.CLOSED
        if not self._recovery_elapsed(await self._opened_at(name)):
            return CircuitState.OPEN
        # An admitted trial keeps the circuit open until its outcome is recorded
        if await self.store.get(self.trial_key(name)) is not None:
            return CircuitState.OPEN
        return CircuitState.HALF_OPEN

    async def get_state_info(self, name: str) -> dict[str, Any]:
        """Get circuit breaker state information.

        Returns:
            Dictionary with ``status``, ``failures``, ``opened_at`` and
            ``recovers_in_seconds``
        """
        failures = await self.get_failure_count(name)
        opened_at = await self._opened_at(name)
        state = await self.get_state(name)

        recovers_in = None
        if (
            state != CircuitState.CLOSED
            and opened_at is not None
            and self.config.recovery_timeout is not None
        ):
            elapsed = self._clock() - opened_at
            recovers_in = max(0.0, self.config.recovery_timeout - elapsed)

        return {
            "status": state.value,
            "failures": failures,
            "opened_at": (
                datetime.fromtimestamp(opened_at, UTC).isoformat()
                if opened_at is not None and state != CircuitState.CLOSED
                else None
            ),
            "recovers_in_seconds": recovers_in,
        }

    async def reset(self, name: str) -> None:
        """Reset circuit breaker to the closed state."""
        await self.store.delete(
            self.failures_key(name), self.opened_at_key(name), self.trial_key(name)
        )
        logger.info("Circuit breaker reset", circuit_name=name)
