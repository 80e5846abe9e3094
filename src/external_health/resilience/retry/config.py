"""Retry configuration models and settings."""

from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RetryConfig(BaseModel):
    """Backoff configuration for probe retries.

    The number of attempts is not configured here; it comes from each
    dependency's ``retry_count``.
    """

    base_delay: float = Field(
        default=0.5, ge=0.0, le=60.0, description="Base delay in seconds"
    )
    multiplier: float = Field(
        default=2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier"
    )
    max_delay: float = Field(
        default=5.0, ge=0.0, le=300.0, description="Maximum delay in seconds"
    )
    jitter: bool = Field(
        default=False, description="Add up to 25% random delay between attempts"
    )

    @field_validator("max_delay")
    @classmethod
    def validate_max_delay(cls, v: float, info: Any) -> float:
        """Ensure max_delay is not below base_delay."""
        if info.data.get("base_delay") and v < info.data["base_delay"]:
            raise ValueError("max_delay must not be lower than base_delay")
        return v


class RetrySettings(BaseSettings):
    """Retry configuration loaded from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="RETRY_", env_file=".env", extra="ignore"
    )

    base_delay: float = 0.5
    multiplier: float = 2.0
    max_delay: float = 5.0
    jitter: bool = False

    def get_config(self) -> RetryConfig:
        """Build the retry configuration."""
        return RetryConfig(
            base_delay=self.base_delay,
            multiplier=self.multiplier,
            max_delay=self.max_delay,
            jitter=self.jitter,
        )
