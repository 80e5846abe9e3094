"""Shared API dependencies."""

from fastapi import HTTPException, Request
import structlog

from external_health.health.monitor import ExternalHealthMonitor

logger = structlog.get_logger()


def get_monitor(request: Request) -> ExternalHealthMonitor:
    """Get the application's health monitor instance."""
    monitor = getattr(request.app.state, "health_monitor", None)
    if monitor is None:
        logger.error("Health monitor is not initialized")
        raise HTTPException(status_code=503, detail="Service unavailable")
    return monitor
