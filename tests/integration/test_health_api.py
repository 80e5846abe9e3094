"""Integration tests for the health reporting API."""

import httpx
import pytest
from fastapi.testclient import TestClient

from external_health.config.settings import HealthCheckSettings, TestingSettings
from external_health.main import create_app

pytestmark = pytest.mark.integration


@pytest.fixture
def settings():
    """Create testing settings."""
    return TestingSettings()


@pytest.fixture
def client(settings, monitor):
    """Create test client around the shared monitor."""
    with TestClient(create_app(settings, monitor)) as test_client:
        yield test_client


class TestLiveness:
    """Test liveness endpoint."""

    def test_live(self, client):
        """Test the process reports alive."""
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_correlation_id_header(self, client):
        """Test correlation IDs are echoed or generated."""
        response = client.get("/health/live", headers={"X-Correlation-ID": "abc-123"})
        assert response.headers["X-Correlation-ID"] == "abc-123"

        response = client.get("/health/live")
        assert response.headers["X-Correlation-ID"]


class TestSummaryEndpoint:
    """Test the aggregate summary endpoint."""

    def test_healthy(self, client, monitor):
        """Test healthy dependencies map to 200."""
        monitor.register_service("payments", "https://payments.test/health")

        response = client.get("/health/external")

        assert response.status_code == 200
        assert "X-Health-Warning" not in response.headers
        data = response.json()
        assert data["overall_status"] == "healthy"
        assert data["total_services"] == 1
        assert data["counts"]["healthy"] == 1

    def test_degraded_adds_warning_header(self, client, monitor, dependencies):
        """Test degraded maps to 200 with a warning header."""
        dependencies.respond("search.test", httpx.Response(200, text="maintenance"))
        monitor.register_service("search", "https://search.test", expected_body="ok")

        response = client.get("/health/external")

        assert response.status_code == 200
        assert response.headers["X-Health-Warning"] == "degraded"
        assert response.json()["overall_status"] == "degraded"

    def test_unhealthy_is_503(self, client, monitor, dependencies):
        """Test unhealthy maps to 503."""
        dependencies.respond("payments.test", httpx.Response(500))
        monitor.register_service("payments", "https://payments.test", critical=True)

        response = client.get("/health/external")

        assert response.status_code == 503
        data = response.json()
        assert data["overall_status"] == "unhealthy"
        assert data["critical_failed"] is True

    def test_no_services(self, client):
        """Test an empty registry is healthy."""
        response = client.get("/health/external")

        assert response.status_code == 200
        assert response.json()["total_services"] == 0


class TestServicesEndpoints:
    """Test per-service endpoints."""

    def test_all_services(self, client, monitor, dependencies):
        """Test detailed results and refresh."""
        monitor.register_service("payments", "https://payments.test/health")

        response = client.get("/health/external/services")
        assert response.status_code == 200
        assert response.json()["services"]["payments"]["status"] == "healthy"

        client.get("/health/external/services")
        assert dependencies.calls["payments.test"] == 1

        client.get("/health/external/services", params={"refresh": "true"})
        assert dependencies.calls["payments.test"] == 2

    def test_single_service(self, client, monitor):
        """Test a single service result."""
        monitor.register_service("payments", "https://payments.test/health")

        response = client.get("/health/external/services/payments")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "payments"
        assert data["status"] == "healthy"
        assert data["url"] == "https://payments.test/health"

    def test_single_service_with_timeout(self, client, monitor, dependencies):
        """Test the timeout parameter forces a fresh probe."""
        monitor.register_service("payments", "https://payments.test/health")
        client.get("/health/external/services/payments")

        response = client.get(
            "/health/external/services/payments", params={"timeout": 1.5}
        )

        assert response.status_code == 200
        assert dependencies.calls["payments.test"] == 2

    def test_single_service_unhealthy(self, client, monitor, dependencies):
        """Test an unhealthy service maps to 503."""
        dependencies.respond("payments.test", httpx.ConnectError("Connection refused"))
        monitor.register_service("payments", "https://payments.test/health")

        response = client.get("/health/external/services/payments")

        assert response.status_code == 503
        assert response.json()["message"] == "Connection refused"

    def test_unregistered_service(self, client):
        """Test unknown services map to 404."""
        response = client.get("/health/external/services/missing")

        assert response.status_code == 404
        data = response.json()
        assert data["error"] is True
        assert data["code"] == "service_not_registered"
        assert data["details"] == {"service_name": "missing"}
        assert data["correlation_id"] == response.headers["X-Correlation-ID"]

    def test_invalid_timeout(self, client, monitor):
        """Test non-positive timeouts are rejected."""
        monitor.register_service("payments", "https://payments.test/health")

        response = client.get(
            "/health/external/services/payments", params={"timeout": 0}
        )

        assert response.status_code == 422
        assert response.json()["code"] == "validation_error"

    def test_registry(self, client, monitor):
        """Test the registry listing."""
        monitor.register_service(
            "payments", "https://payments.test/health", critical=True, retry_count=1
        )

        response = client.get("/health/external/registry")

        assert response.status_code == 200
        payments = response.json()["payments"]
        assert payments["url"] == "https://payments.test/health"
        assert payments["critical"] is True
        assert payments["retry_count"] == 1
        assert payments["expected_status"] == [200]


class TestCircuitEndpoints:
    """Test circuit breaker endpoints."""

    def test_status_and_reset(self, client, monitor, dependencies):
        """Test an open circuit can be inspected and reset."""
        dependencies.respond("payments.test", httpx.Response(503))
        monitor.register_service(
            "payments", "https://payments.test/health", circuit_breaker=True
        )
        for _ in range(5):
            client.get("/health/external/services/payments", params={"refresh": True})

        response = client.get("/health/external/circuits/payments")
        assert response.status_code == 200
        assert response.json()["status"] == "open"
        assert response.json()["failures"] == 5

        response = client.post("/health/external/circuits/payments/reset")
        assert response.status_code == 200
        assert response.json() == {
            "name": "payments",
            "status": "closed",
            "failures": 0,
            "opened_at": None,
            "recovers_in_seconds": None,
        }

    def test_unknown_circuit(self, client):
        """Test unknown circuits map to 404."""
        assert client.get("/health/external/circuits/missing").status_code == 404
        assert (
            client.post("/health/external/circuits/missing/reset").status_code == 404
        )


class TestCacheEndpoint:
    """Test cache clearing."""

    def test_clear_cache(self, client, monitor, dependencies):
        """Test clearing forces the next check to probe."""
        monitor.register_service("payments", "https://payments.test/health")
        client.get("/health/external/services/payments")

        response = client.delete("/health/external/cache")

        assert response.status_code == 204
        client.get("/health/external/services/payments")
        assert dependencies.calls["payments.test"] == 2


class TestApplicationLifespan:
    """Test monitor construction at startup."""

    def test_monitor_built_from_settings(self):
        """Test configured services are registered at startup."""
        settings = TestingSettings(
            health_check=HealthCheckSettings(
                external_services=[
                    {"name": "paymongo", "url": "https://api.paymongo.test"}
                ]
            )
        )
        app = create_app(settings)

        with TestClient(app) as client:
            response = client.get("/health/external/registry")
            assert list(response.json()) == ["paymongo"]

        assert app.state.health_monitor is None
