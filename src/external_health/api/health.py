"""Health check API endpoints."""

from datetime import datetime, UTC
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response, status

from external_health.api.dependencies import get_monitor
from external_health.domain.exceptions import ServiceNotRegisteredException
from external_health.domain.models import HealthStatus
from external_health.health.monitor import ExternalHealthMonitor

router = APIRouter(prefix="/health", tags=["health"])

MonitorDep = Annotated[ExternalHealthMonitor, Depends(get_monitor)]

WARNING_HEADER = "X-Health-Warning"


def apply_status(response: Response, health_status: HealthStatus) -> None:
    """Map a health status onto the HTTP response.

    Unhealthy is 503, degraded is 200 with a warning header, anything else
    is 200.
    """
    if health_status == HealthStatus.UNHEALTHY:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif health_status == HealthStatus.DEGRADED:
        response.headers[WARNING_HEADER] = "degraded"


def require_service(monitor: ExternalHealthMonitor, name: str) -> None:
    if not monitor.has_service(name):
        raise ServiceNotRegisteredException(name)


@router.get("/live", response_model=dict[str, str])
async def liveness_check() -> dict[str, str]:
    """Liveness check for Kubernetes."""
    return {
        "status": "alive",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/external", response_model=dict[str, Any])
async def external_health_summary(
    response: Response, monitor: MonitorDep
) -> dict[str, Any]:
    """Summary of all external dependencies."""
    summary = await monitor.get_summary()
    apply_status(response, summary.overall_status)
    return summary.to_dict()


@router.get("/external/services", response_model=dict[str, Any])
async def external_services_health(
    response: Response,
    monitor: MonitorDep,
    refresh: bool = Query(False, description="Bypass cached results"),
) -> dict[str, Any]:
    """Detailed results for all external dependencies."""
    report = await monitor.check_all_services(use_cache=not refresh)
    apply_status(response, report.status)
    return report.to_dict()


@router.get("/external/services/{name}", response_model=dict[str, Any])
async def external_service_health(
    name: str,
    response: Response,
    monitor: MonitorDep,
    refresh: bool = Query(False, description="Bypass the cached result"),
    timeout: float | None = Query(
        None, gt=0, description="One-off probe timeout in seconds"
    ),
) -> dict[str, Any]:
    """Health of a single external dependency."""
    require_service(monitor, name)

    if timeout is not None:
        result = await monitor.check_with_timeout(name, timeout)
    else:
        result = await monitor.check_service(name, use_cache=not refresh)

    apply_status(response, result.status)
    return result.to_dict()


@router.get("/external/registry", response_model=dict[str, Any])
async def external_service_registry(monitor: MonitorDep) -> dict[str, Any]:
    """Registered external dependencies."""
    return {
        name: descriptor.to_dict()
        for name, descriptor in monitor.get_registered_services().items()
    }


@router.get("/external/circuits/{name}", response_model=dict[str, Any])
async def circuit_breaker_status(name: str, monitor: MonitorDep) -> dict[str, Any]:
    """Circuit breaker state for a dependency."""
    require_service(monitor, name)
    return {"name": name, **await monitor.get_circuit_breaker_status(name)}


@router.post("/external/circuits/{name}/reset", response_model=dict[str, Any])
async def reset_circuit_breaker(name: str, monitor: MonitorDep) -> dict[str, Any]:
    """Close a dependency's circuit breaker."""
    require_service(monitor, name)
    await monitor.reset_circuit_breaker(name)
    return {"name": name, **await monitor.get_circuit_breaker_status(name)}


@router.delete(
    "/external/cache",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def clear_health_cache(monitor: MonitorDep) -> Response:
    """Drop all cached results."""
    await monitor.clear_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
