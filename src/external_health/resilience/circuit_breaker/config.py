"""Circuit breaker configuration models and settings."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CircuitBreakerConfig(BaseModel):
    """Circuit breaker configuration shared by all dependencies."""

    failure_threshold: int = Field(
        default=5, ge=1, le=100, description="Number of failures before opening circuit"
    )
    recovery_timeout: float | None = Field(
        default=None,
        gt=0,
        le=3600.0,
        description="Seconds after opening before one trial probe is admitted; "
        "None keeps the circuit open until it is reset",
    )
    failure_window: int | None = Field(
        default=None,
        ge=1,
        description="Seconds a failure counter survives without new failures",
    )


class CircuitBreakerSettings(BaseSettings):
    """Circuit breaker configuration loaded from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="CIRCUIT_", env_file=".env", extra="ignore"
    )

    failure_threshold: int = 5
    recovery_timeout: float | None = None
    failure_window: int | None = None

    def get_config(self) -> CircuitBreakerConfig:
        """Build the circuit breaker configuration."""
        return CircuitBreakerConfig(
            failure_threshold=self.failure_threshold,
            recovery_timeout=self.recovery_timeout,
            failure_window=self.failure_window,
        )
