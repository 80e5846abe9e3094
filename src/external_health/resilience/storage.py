"""Key-value storage for cached results and circuit breaker counters.

Breaker counters and cached results are keyed by dependency name. The
in-memory store serves a single process; the Redis store lets several
instances share state.
"""

import asyncio
import json
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Callable
from typing import Any

import structlog

from external_health.domain.exceptions import StorageException

logger = structlog.get_logger()


class KeyValueStore(ABC):
    """Minimal key-value interface shared by all backends."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Get the value for key, or None when absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Set value for key, expiring after ttl seconds when given."""

    @abstractmethod
    async def add(self, key: str, value: Any, ttl: float | None = None) -> bool:
        """Set value only if key is absent.

        Returns:
            True if the value was stored
        """

    @abstractmethod
    async def increment(
        self, key: str, amount: int = 1, ttl: float | None = None
    ) -> int:
        """Atomically increment the integer at key.

        Args:
            key: Storage key
            amount: Amount to increment by
            ttl: Optional time to live applied after the increment

        Returns:
            New counter value
        """

    @abstractmethod
    async def delete(self, *keys: str) -> None:
        """Delete keys; missing keys are ignored."""

    async def close(self) -> None:
        """Release backend resources."""


class InMemoryStore(KeyValueStore):
    """Process-local store with TTL support and per-key locking."""

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: dict[str, Any] = {}
        self._expires_at: dict[str, float] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def _expired(self, key: str) -> bool:
        expires_at = self._expires_at.get(key)
        if expires_at is not None and self._clock() >= expires_at:
            self._data.pop(key, None)
            self._expires_at.pop(key, None)
            return True
        return False

    def _store(self, key: str, value: Any, ttl: float | None) -> None:
        self._data[key] = value
        if ttl:
            self._expires_at[key] = self._clock() + ttl
        else:
            self._expires_at.pop(key, None)

    async def get(self, key: str) -> Any | None:
        async with self._locks[key]:
            if self._expired(key):
                return None
            return self._data.get(key)

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        async with self._locks[key]:
            self._store(key, value, ttl)

    async def add(self, key: str, value: Any, ttl: float | None = None) -> bool:
        async with self._locks[key]:
            if not self._expired(key) and key in self._data:
                return False
            self._store(key, value, ttl)
            return True

    async def increment(
        self, key: str, amount: int = 1, ttl: float | None = None
    ) -> int:
        async with self._locks[key]:
            current = 0 if self._expired(key) else int(self._data.get(key, 0))
            new_value = current + amount
            if ttl:
                self._store(key, new_value, ttl)
            else:
                # Keep any existing expiry, like Redis INCRBY
                self._data[key] = new_value
            return new_value

    async def delete(self, *keys: str) -> None:
        for key in keys:
            async with self._locks[key]:
                self._data.pop(key, None)
                self._expires_at.pop(key, None)
            lock = self._locks.get(key)
            if lock is not None and not lock.locked():
                del self._locks[key]

    def keys(self) -> list[str]:
        """Live keys, for diagnostics and tests."""
        return [key for key in list(self._data) if not self._expired(key)]


class RedisStore(KeyValueStore):
    """Redis-backed store shared across processes.

    Values are JSON-encoded. Read failures degrade to cache misses and are
    logged; the monitor keeps answering with fresh probes.
    """

    def __init__(self, redis_client: Any, key_prefix: str = ""):
        self.redis = redis_client
        self.key_prefix = key_prefix
        self.logger = logger.bind(storage="redis")

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisStore":
        """Create a store with a pooled ``redis.asyncio`` client."""
        import redis.asyncio as redis

        return cls(redis.from_url(url, **kwargs))

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def connect(self) -> None:
        """Verify the connection."""
        try:
            await self.redis.ping()
        except Exception as e:
            raise StorageException("connect", "*", str(e)) from e

    async def get(self, key: str) -> Any | None:
        try:
            data = await self.redis.get(self._key(key))
        except Exception as e:
            self.logger.error("Failed to read key", key=key, error=str(e))
            return None
        if data is None:
            return None
        try:
            return json.loads(data)
        except ValueError as e:
            self.logger.error("Failed to decode key", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        serialized = json.dumps(value, default=str)
        try:
            if ttl:
                await self.redis.set(self._key(key), serialized, px=int(ttl * 1000))
            else:
                await self.redis.set(self._key(key), serialized)
        except Exception as e:
            self.logger.error("Failed to write key", key=key, error=str(e))

    async def add(self, key: str, value: Any, ttl: float | None = None) -> bool:
        serialized = json.dumps(value, default=str)
        try:
            stored = await self.redis.set(
                self._key(key),
                serialized,
                nx=True,
                px=int(ttl * 1000) if ttl else None,
            )
        except Exception as e:
            self.logger.error("Failed to add key", key=key, error=str(e))
            return False
        return bool(stored)

    async def increment(
        self, key: str, amount: int = 1, ttl: float | None = None
    ) -> int:
        try:
            if ttl:
                pipe = self.redis.pipeline()
                pipe.incrby(self._key(key), amount)
                pipe.pexpire(self._key(key), int(ttl * 1000))
                results = await pipe.execute()
                return int(results[0])
            return int(await self.redis.incrby(self._key(key), amount))
        except Exception as e:
            self.logger.error("Failed to increment counter", key=key, error=str(e))
            return 0

    async def delete(self, *keys: str) -> None:
        if not keys:
            return
        try:
            await self.redis.delete(*(self._key(key) for key in keys))
        except Exception as e:
            self.logger.error("Failed to delete keys", keys=list(keys), error=str(e))

    async def close(self) -> None:
        await self.redis.aclose()
