"""Core domain models for external dependency health monitoring."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HealthStatus(str, Enum):
    """Health status of a monitored dependency."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"

    @property
    def severity(self) -> int:
        """Rank used for worst-wins aggregation."""
        return _SEVERITY[self]

    @classmethod
    def aggregate(cls, statuses: list["HealthStatus"]) -> "HealthStatus":
        """Aggregate multiple statuses (worst wins)."""
        if not statuses:
            return cls.HEALTHY
        return max(statuses, key=lambda status: status.severity)


_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.UNKNOWN: 1,
    HealthStatus.DEGRADED: 2,
    HealthStatus.UNHEALTHY: 3,
}


class FailureKind(str, Enum):
    """Why a result is not healthy."""

    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    CONTENT = "content"
    LATENCY = "latency"
    UNKNOWN_DEPENDENCY = "unknown_dependency"
    CIRCUIT_OPEN = "circuit_open"
    DEADLINE = "deadline"


class ErrorCode(str, Enum):
    """Standardized error codes."""

    VALIDATION_ERROR = "validation_error"
    SERVICE_NOT_REGISTERED = "service_not_registered"
    STORAGE_ERROR = "storage_error"
    INTERNAL_ERROR = "internal_error"


class DependencyDescriptor(BaseModel):
    """A registered external dependency and its probe policy."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    probe_url: str = Field(min_length=1)
    method: str = "GET"
    headers: dict[str, str] = Field(default_factory=dict)
    expected_status: frozenset[int] = Field(default_factory=lambda: frozenset({200}))
    expected_body_substring: str | None = None
    timeout_seconds: float = Field(default=5.0, gt=0)
    retry_count: int = Field(default=0, ge=0, le=10)
    critical: bool = False
    circuit_breaker_enabled: bool = False

    @field_validator("method")
    @classmethod
    def normalize_method(cls, v: str) -> str:
        return v.upper()

    @field_validator("headers")
    @classmethod
    def validate_headers(cls, v: dict[str, str]) -> dict[str, str]:
        # Header names and values go on the wire as ASCII
        for key, value in v.items():
            if not key.isascii() or not value.isascii():
                raise ValueError(f"Header {key!r} must contain only ASCII characters")
        return v

    @field_validator("expected_status", mode="before")
    @classmethod
    def coerce_expected_status(cls, v: Any) -> Any:
        if v is None:
            return frozenset({200})
        if isinstance(v, int):
            return frozenset({v})
        return v

    @field_validator("expected_status")
    @classmethod
    def validate_expected_status(cls, v: frozenset[int]) -> frozenset[int]:
        if not v:
            raise ValueError("expected_status must contain at least one status code")
        for code in v:
            if not 100 <= code <= 599:
                raise ValueError(f"Invalid HTTP status code: {code}")
        return v

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        return {
            "name": self.name,
            "url": self.probe_url,
            "method": self.method,
            "headers": dict(self.headers),
            "expected_status": sorted(self.expected_status),
            "expected_body": self.expected_body_substring,
            "timeout": self.timeout_seconds,
            "retry_count": self.retry_count,
            "critical": self.critical,
            "circuit_breaker": self.circuit_breaker_enabled,
        }


@dataclass
class ProbeAttemptResult:
    """Outcome of probing one dependency."""

    name: str
    status: HealthStatus
    message: str
    checked_at: datetime
    latency_ms: float | None = None
    http_status: int | None = None
    critical: bool = False
    url: str | None = None
    attempts: int = 0
    failure: FailureKind | None = None

    @property
    def is_healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "http_status": self.http_status,
            "latency_ms": self.latency_ms,
            "critical": self.critical,
            "url": self.url,
            "attempts": self.attempts,
            "failure": self.failure.value if self.failure else None,
            "checked_at": self.checked_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProbeAttemptResult":
        """Rebuild a result from :meth:`to_dict` output."""
        checked_at = datetime.fromisoformat(data["checked_at"])
        if checked_at.tzinfo is None:
            checked_at = checked_at.replace(tzinfo=UTC)

        return cls(
            name=data["name"],
            status=HealthStatus(data["status"]),
            message=data["message"],
            checked_at=checked_at,
            latency_ms=data.get("latency_ms"),
            http_status=data.get("http_status"),
            critical=data.get("critical", False),
            url=data.get("url"),
            attempts=data.get("attempts", 0),
            failure=FailureKind(data["failure"]) if data.get("failure") else None,
        )
