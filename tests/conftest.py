"""Test configuration and fixtures."""

import os
from collections import Counter
from typing import Any

import httpx
import pytest

# Set required environment variables for tests
os.environ["ENVIRONMENT"] = "testing"

from external_health.health.monitor import ExternalHealthMonitor  # noqa: E402
from external_health.resilience.storage import InMemoryStore  # noqa: E402


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeDependencies:
    """httpx.MockTransport handler answering per host with canned responses.

    Each host gets a queue of responses or exceptions; the last entry repeats
    once the queue is drained. Unknown hosts answer 200 "ok".
    """

    def __init__(self) -> None:
        self.responses: dict[str, list[Any]] = {}
        self.calls: Counter[str] = Counter()

    def respond(self, host: str, *responses: Any) -> None:
        self.responses[host] = list(responses)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        self.calls[host] += 1

        queue = self.responses.get(host)
        if not queue:
            return httpx.Response(200, text="ok")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item


class RecordingSleep:
    """Awaitable sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def clock():
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def fake_sleep():
    """Create a recording sleep."""
    return RecordingSleep()


@pytest.fixture
def dependencies():
    """Create fake dependency endpoints."""
    return FakeDependencies()


@pytest.fixture
def transport(dependencies):
    """Create a mock transport routed to the fake dependencies."""
    return httpx.MockTransport(dependencies)


@pytest.fixture
def store(clock):
    """Create an in-memory store on the fake clock."""
    return InMemoryStore(clock=clock)


@pytest.fixture
def monitor(store, transport, clock, fake_sleep):
    """Create a monitor wired to fakes."""
    return ExternalHealthMonitor(
        store,
        transport=transport,
        clock=clock,
        sleep=fake_sleep,
    )
