"""Tests for the probe executor."""

import asyncio
from datetime import UTC, datetime

import httpx
import pytest

from external_health.domain.models import (
    DependencyDescriptor,
    FailureKind,
    HealthStatus,
)
from external_health.health.checker import ProbeExecutor

CHECKED_AT = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def make_executor(handler) -> ProbeExecutor:
    return ProbeExecutor(httpx.MockTransport(handler), now=lambda: CHECKED_AT)


class TestProbeExecutor:
    """Test probe execution against a mock transport."""

    @pytest.fixture
    def descriptor(self):
        """Create descriptor with custom request options."""
        return DependencyDescriptor(
            name="payments",
            probe_url="https://payments.test/health",
            method="head",
            headers={"Authorization": "Bearer token"},
            timeout_seconds=0.5,
        )

    @pytest.mark.asyncio
    async def test_request_uses_descriptor(self, descriptor):
        """Test method, URL and headers come from the descriptor."""
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200)

        result = await make_executor(handler).probe(descriptor)

        assert result.status == HealthStatus.HEALTHY
        assert result.checked_at == CHECKED_AT
        assert result.url == "https://payments.test/health"
        assert result.latency_ms is not None and result.latency_ms >= 0
        assert seen[0].method == "HEAD"
        assert seen[0].headers["Authorization"] == "Bearer token"

    @pytest.mark.asyncio
    async def test_unexpected_status(self, descriptor):
        """Test non-expected status codes are unhealthy."""
        result = await make_executor(lambda request: httpx.Response(500)).probe(
            descriptor
        )

        assert result.status == HealthStatus.UNHEALTHY
        assert result.http_status == 500

    @pytest.mark.asyncio
    async def test_connection_error(self, descriptor):
        """Test transport errors are returned, not raised."""

        def handler(request):
            raise httpx.ConnectError("Connection refused")

        result = await make_executor(handler).probe(descriptor)

        assert result.status == HealthStatus.UNHEALTHY
        assert result.message == "Connection refused"
        assert result.failure == FailureKind.TRANSPORT

    @pytest.mark.asyncio
    async def test_timeout(self, descriptor):
        """Test slow dependencies time out."""

        async def handler(request):
            await asyncio.sleep(1)
            return httpx.Response(200)

        result = await make_executor(handler).probe(descriptor, timeout=0.05)

        assert result.status == HealthStatus.UNHEALTHY
        assert result.message == "Health check timed out after 0.05s"
        assert result.failure == FailureKind.TRANSPORT


    @pytest.mark.asyncio
    async def test_unencodable_header_is_a_result(self):
        """Test request build errors are returned, not raised."""
        descriptor = DependencyDescriptor.model_construct(
            name="sms",
            probe_url="https://sms.test/health",
            headers={"apikey": "clé"},
        )

        result = await make_executor(lambda request: httpx.Response(200)).probe(
            descriptor
        )

        assert result.status == HealthStatus.UNHEALTHY
        assert result.failure == FailureKind.TRANSPORT
        assert result.message
