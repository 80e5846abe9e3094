"""Configuration for the external health monitor."""

from .settings import (
    ApplicationSettings,
    Environment,
    HealthCheckSettings,
    ObservabilitySettings,
    RedisSettings,
    get_settings,
)

__all__ = [
    "ApplicationSettings",
    "Environment",
    "HealthCheckSettings",
    "ObservabilitySettings",
    "RedisSettings",
    "get_settings",
]
