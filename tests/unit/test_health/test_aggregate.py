"""Tests for aggregate health checks."""

import asyncio

import httpx
import pytest

from external_health.domain.models import FailureKind, HealthStatus
from external_health.health.monitor import ExternalHealthMonitor


def register_healthy(monitor: ExternalHealthMonitor, count: int) -> None:
    for index in range(count):
        monitor.register_service(f"service-{index}", f"https://service-{index}.test")


class TestCheckAllServices:
    """Test check_all_services aggregation."""

    @pytest.mark.asyncio
    async def test_empty_registry_is_healthy(self, monitor):
        """Test no dependencies aggregate to healthy."""
        report = await monitor.check_all_services()

        assert report.status == HealthStatus.HEALTHY
        assert report.critical_failed is False
        assert report.services == {}

    @pytest.mark.asyncio
    async def test_all_healthy(self, monitor):
        """Test healthy dependencies aggregate to healthy."""
        register_healthy(monitor, 3)

        report = await monitor.check_all_services()

        assert report.status == HealthStatus.HEALTHY
        assert set(report.services) == {"service-0", "service-1", "service-2"}

    @pytest.mark.asyncio
    async def test_one_unhealthy_non_critical(self, monitor, dependencies):
        """Test one unhealthy dependency makes the aggregate unhealthy."""
        register_healthy(monitor, 3)
        dependencies.respond("broken.test", httpx.Response(500))
        monitor.register_service("broken", "https://broken.test")

        report = await monitor.check_all_services()

        assert report.status == HealthStatus.UNHEALTHY
        assert report.critical_failed is False

    @pytest.mark.asyncio
    async def test_one_unhealthy_critical(self, monitor, dependencies):
        """Test critical failures set critical_failed."""
        register_healthy(monitor, 3)
        dependencies.respond("broken.test", httpx.Response(500))
        monitor.register_service("broken", "https://broken.test", critical=True)

        report = await monitor.check_all_services()

        assert report.status == HealthStatus.UNHEALTHY
        assert report.critical_failed is True

    @pytest.mark.asyncio
    async def test_degraded_critical_counts_as_failed(self, monitor, dependencies):
        """Test a degraded critical dependency sets critical_failed."""
        dependencies.respond("search.test", httpx.Response(200, text="maintenance"))
        monitor.register_service(
            "search", "https://search.test", expected_body="ok", critical=True
        )
        register_healthy(monitor, 1)

        report = await monitor.check_all_services()

        assert report.status == HealthStatus.DEGRADED
        assert report.critical_failed is True

    @pytest.mark.asyncio
    async def test_uses_cache(self, monitor, dependencies):
        """Test aggregate checks honor use_cache."""
        register_healthy(monitor, 2)

        await monitor.check_all_services()
        await monitor.check_all_services()
        assert dependencies.calls["service-0.test"] == 1

        await monitor.check_all_services(use_cache=False)
        assert dependencies.calls["service-0.test"] == 2

    @pytest.mark.asyncio
    async def test_to_dict(self, monitor):
        """Test the report serializes per-service results."""
        register_healthy(monitor, 1)

        data = (await monitor.check_all_services()).to_dict()

        assert data["status"] == "healthy"
        assert data["critical_failed"] is False
        assert data["services"]["service-0"]["status"] == "healthy"


class TestAggregateConcurrency:
    """Test concurrency bound and deadline."""

    @pytest.mark.asyncio
    async def test_max_concurrency(self, store, clock, fake_sleep):
        """Test no more than max_concurrency probes run at once."""
        in_flight = 0
        peak = 0

        async def handler(request):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return httpx.Response(200)

        monitor = ExternalHealthMonitor(
            store,
            transport=httpx.MockTransport(handler),
            max_concurrency=2,
            clock=clock,
            sleep=fake_sleep,
        )
        register_healthy(monitor, 6)

        report = await monitor.check_all_services()

        assert report.status == HealthStatus.HEALTHY
        assert peak == 2

    @pytest.mark.asyncio
    async def test_deadline_marks_slow_services_unhealthy(
        self, store, clock, fake_sleep
    ):
        """Test services still running at the deadline are unhealthy."""

        async def handler(request):
            if request.url.host == "slow.test":
                await asyncio.sleep(1)
            return httpx.Response(200)

        monitor = ExternalHealthMonitor(
            store,
            transport=httpx.MockTransport(handler),
            aggregate_timeout=0.1,
            clock=clock,
            sleep=fake_sleep,
        )
        register_healthy(monitor, 2)
        monitor.register_service("slow", "https://slow.test", critical=True)

        report = await monitor.check_all_services()

        slow = report.services["slow"]
        assert slow.status == HealthStatus.UNHEALTHY
        assert slow.message == "Health check exceeded aggregate deadline"
        assert slow.failure == FailureKind.DEADLINE
        assert report.services["service-0"].status == HealthStatus.HEALTHY
        assert report.status == HealthStatus.UNHEALTHY
        assert report.critical_failed is True


class TestSummary:
    """Test the dashboard summary."""

    @pytest.mark.asyncio
    async def test_summary_counts(self, monitor, dependencies):
        """Test counts per status."""
        register_healthy(monitor, 2)
        dependencies.respond("broken.test", httpx.Response(500))
        monitor.register_service("broken", "https://broken.test", critical=True)

        summary = await monitor.get_summary()

        assert summary.overall_status == HealthStatus.UNHEALTHY
        assert summary.critical_failed is True
        assert summary.total_services == 3
        assert summary.counts == {
            "healthy": 2,
            "degraded": 0,
            "unhealthy": 1,
            "unknown": 0,
        }
        assert summary.services["broken"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_summary_to_dict(self, monitor):
        """Test summary serialization."""
        register_healthy(monitor, 1)

        data = (await monitor.get_summary()).to_dict()

        assert data["overall_status"] == "healthy"
        assert data["total_services"] == 1
        assert data["services"] == {"service-0": "healthy"}
