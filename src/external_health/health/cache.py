"""Short-TTL cache of the last probe result per dependency."""

import structlog

from external_health.domain.models import ProbeAttemptResult
from external_health.resilience.storage import KeyValueStore

logger = structlog.get_logger()


class ResultCache:
    """Stores serialized results under ``external_health:{name}``."""

    def __init__(self, store: KeyValueStore, ttl: int = 300):
        self.store = store
        self.ttl = ttl

    @staticmethod
    def key(name: str) -> str:
        return f"external_health:{name}"

    async def get(self, name: str) -> ProbeAttemptResult | None:
        """Get the cached result, or None when absent or expired."""
        data = await self.store.get(self.key(name))
        if data is None:
            return None
        try:
            return ProbeAttemptResult.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Discarding unreadable cache entry", service_name=name, error=str(e)
            )
            await self.store.delete(self.key(name))
            return None

    async def put(self, result: ProbeAttemptResult) -> None:
        await self.store.set(self.key(result.name), result.to_dict(), self.ttl)

    async def invalidate(self, *names: str) -> None:
        await self.store.delete(*(self.key(name) for name in names))
