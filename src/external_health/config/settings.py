"""
Configuration management for the external health monitor.

This module implements environment-specific configuration with validation
and a factory for configuration selection.
"""

import os
from enum import Enum
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from external_health.observability.logging.config import LogLevel
from external_health.resilience.circuit_breaker.config import CircuitBreakerSettings
from external_health.resilience.retry.config import RetrySettings


class Environment(str, Enum):
    """Deployment environments."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class HealthCheckSettings(BaseSettings):
    """Probe, cache and aggregation configuration."""

    model_config = SettingsConfigDict(
        env_prefix="HEALTH_CHECK_", env_file=".env", extra="ignore"
    )

    # Default per-probe timeout for newly registered services
    timeout: float = Field(default=5.0, gt=0)

    # TTL for cached results
    cache_ttl: int = Field(default=300, ge=1)

    # Aggregate checks
    max_concurrency: int = Field(default=10, ge=1)
    aggregate_timeout: float = Field(default=30.0, gt=0)

    # Optional latency thresholds (milliseconds) for degraded status
    degraded_latency_ms: float | None = None
    slow_latency_ms: float | None = None

    # Services registered at startup, as a JSON list in
    # HEALTH_CHECK_EXTERNAL_SERVICES, e.g. [{"name": "paymongo", "url": "..."}]
    external_services: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("slow_latency_ms")
    @classmethod
    def validate_slow_latency(cls, v: float | None, info: Any) -> float | None:
        degraded = info.data.get("degraded_latency_ms")
        if v is not None and degraded is not None and v < degraded:
            raise ValueError(
                "slow_latency_ms must not be lower than degraded_latency_ms"
            )
        return v


class RedisSettings(BaseSettings):
    """Redis configuration."""

    model_config = SettingsConfigDict(
        env_prefix="REDIS_", env_file=".env", extra="ignore"
    )

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: str | None = None

    # Connection pool settings
    max_connections: int = 20
    retry_on_timeout: bool = True
    health_check_interval: int = 30

    @property
    def url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.password}@" if self.password else ""
        return f"redis://{auth}{self.host}:{self.port}/{self.db}"


class ObservabilitySettings(BaseSettings):
    """Observability configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OBSERVABILITY_", env_file=".env", extra="ignore"
    )

    log_level: LogLevel = LogLevel.INFO
    log_format: str = "json"
    log_file: str | None = None


class ApplicationSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Application info
    app_name: str = "External Health Monitor"
    app_version: str = "0.1.0"

    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Backing store selection; in-memory unless use_redis is set
    use_redis: bool = False

    # Component settings
    health_check: HealthCheckSettings = Field(default_factory=HealthCheckSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    circuit_breaker: CircuitBreakerSettings = Field(
        default_factory=CircuitBreakerSettings
    )
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == Environment.PRODUCTION


# Environment-specific configurations
class DevelopmentSettings(ApplicationSettings):
    """Development environment settings."""

    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True

    observability: ObservabilitySettings = Field(
        default_factory=lambda: ObservabilitySettings(
            log_level=LogLevel.DEBUG, log_format="console"
        )
    )


class TestingSettings(ApplicationSettings):
    """Testing environment settings."""

    environment: Environment = Environment.TESTING
    debug: bool = True
    use_redis: bool = False

    # Minimal logging for testing
    observability: ObservabilitySettings = Field(
        default_factory=lambda: ObservabilitySettings(
            log_level=LogLevel.WARNING, log_format="structured"
        )
    )


class ProductionSettings(ApplicationSettings):
    """Production environment settings."""

    environment: Environment = Environment.PRODUCTION
    debug: bool = False
    use_redis: bool = True


def get_settings() -> ApplicationSettings:
    """Get application settings based on environment."""
    environment = os.getenv("ENVIRONMENT", "development").lower()

    if environment == "development":
        return DevelopmentSettings()
    elif environment == "production":
        return ProductionSettings()
    elif environment == "testing":
        return TestingSettings()
    else:
        return ApplicationSettings()
