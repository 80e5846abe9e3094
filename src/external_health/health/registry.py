"""Registry of monitored external dependencies."""

from collections.abc import Iterator
from typing import Any

import structlog
from pydantic import ValidationError

from external_health.domain.exceptions import InvalidServiceConfigException
from external_health.domain.models import DependencyDescriptor

logger = structlog.get_logger()

_OPTION_NAMES = frozenset(
    {
        "expected_status",
        "expected_body",
        "timeout",
        "retry_count",
        "critical",
        "circuit_breaker",
        "headers",
    }
)


class ServiceRegistry:
    """Name-keyed catalog of dependency descriptors.

    Registering an existing name replaces its descriptor.
    """

    def __init__(self, default_timeout: float = 5.0):
        self.default_timeout = default_timeout
        self._services: dict[str, DependencyDescriptor] = {}

    def register(
        self,
        name: str,
        url: str,
        method: str = "GET",
        *,
        expected_status: int | list[int] | set[int] | None = None,
        expected_body: str | None = None,
        timeout: float | None = None,
        retry_count: int = 0,
        critical: bool = False,
        circuit_breaker: bool = False,
        headers: dict[str, str] | None = None,
    ) -> DependencyDescriptor:
        """Register or replace a dependency.

        Raises:
            InvalidServiceConfigException: If the options fail validation
        """
        try:
            descriptor = DependencyDescriptor(
                name=name,
                probe_url=url,
                method=method,
                headers=headers or {},
                expected_status=expected_status,
                expected_body_substring=expected_body,
                timeout_seconds=(
                    timeout if timeout is not None else self.default_timeout
                ),
                retry_count=retry_count,
                critical=critical,
                circuit_breaker_enabled=circuit_breaker,
            )
        except ValidationError as e:
            errors = e.errors(
                include_url=False, include_context=False, include_input=False
            )
            raise InvalidServiceConfigException(name, list(errors)) from e

        replaced = name in self._services
        self._services[name] = descriptor
        logger.info(
            "Registered external service",
            service_name=name,
            url=url,
            method=descriptor.method,
            critical=descriptor.critical,
            replaced=replaced,
        )
        return descriptor

    def register_from_config(self, entry: dict[str, Any]) -> DependencyDescriptor:
        """Register a dependency from a configuration mapping."""
        options = dict(entry)
        name = options.pop("name", None)
        url = options.pop("url", None)
        if not name or not url:
            raise InvalidServiceConfigException(
                str(name or "<unnamed>"),
                [{"msg": "Service entries require 'name' and 'url'"}],
            )
        method = options.pop("method", "GET")
        unknown = sorted(set(options) - _OPTION_NAMES)
        if unknown:
            raise InvalidServiceConfigException(
                name, [{"msg": f"Unknown service options: {', '.join(unknown)}"}]
            )
        return self.register(name, url, method, **options)

    def unregister(self, name: str) -> bool:
        """Remove a dependency.

        Returns:
            True if the dependency was registered
        """
        removed = self._services.pop(name, None) is not None
        if removed:
            logger.info("Unregistered external service", service_name=name)
        return removed

    def get(self, name: str) -> DependencyDescriptor | None:
        return self._services.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._services

    def __iter__(self) -> Iterator[DependencyDescriptor]:
        return iter(list(self._services.values()))

    def __len__(self) -> int:
        return len(self._services)

    def names(self) -> list[str]:
        return list(self._services)

    def all(self) -> dict[str, DependencyDescriptor]:
        """Copy of the registry contents."""
        return dict(self._services)
