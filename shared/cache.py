"""TTL cache with pluggable storage.

Entries are stored as ``{"data": ..., "timestamp": ...}`` JSON so any
key/value medium works. Backend failures are logged and read as a miss.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

logger = structlog.get_logger()


class CacheBackend(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryBackend:
    """Process-local backend, used by the sharing client."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisBackend:
    """Redis backend. ``max_ttl`` bounds how long Redis keeps an entry."""

    def __init__(self, redis_client, max_ttl: int = 86400) -> None:
        self._redis = redis_client
        self._max_ttl = max_ttl

    async def get(self, key: str) -> str | None:
        return await self._redis.get(key)

    async def set(self, key: str, value: str) -> None:
        await self._redis.set(key, value, ex=self._max_ttl)

    async def delete(self, key: str) -> None:
        await self._redis.delete(key)


@dataclass(frozen=True)
class CacheHit:
    value: Any
    age_seconds: float


class TTLCache:
    """Key/value cache where freshness is decided by the reader."""

    def __init__(self, backend: CacheBackend, namespace: str = "radar", clock=time.time):
        self._backend = backend
        self._namespace = namespace
        self._clock = clock

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def get(self, key: str, ttl: float) -> CacheHit | None:
        """Return the entry and its age, or None if absent or older than ``ttl``.

        Expired entries are left in place so a caller can still read them
        with a longer ``ttl`` when live data is unavailable.
        """
        full_key = self._key(key)
        try:
            raw = await self._backend.get(full_key)
        except Exception as e:
            logger.warning("cache_get_error", key=full_key, error=str(e))
            return None
        if raw is None:
            return None

        try:
            entry = json.loads(raw)
            data = entry["data"]
            age = self._clock() - float(entry["timestamp"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("cache_entry_unreadable", key=full_key, error=str(e))
            await self.delete(key)
            return None

        if age > ttl:
            logger.debug("cache_expired", key=full_key, age_seconds=age, ttl=ttl)
            return None

        logger.debug("cache_hit", key=full_key, age_seconds=age)
        return CacheHit(value=data, age_seconds=max(0.0, age))

    async def put(self, key: str, value: Any) -> None:
        """Store a JSON-serialisable value stamped with the current time."""
        full_key = self._key(key)
        payload = json.dumps({"data": value, "timestamp": self._clock()})
        try:
            await self._backend.set(full_key, payload)
            logger.debug("cache_set", key=full_key)
        except Exception as e:
            logger.warning("cache_set_error", key=full_key, error=str(e))

    async def delete(self, key: str) -> None:
        full_key = self._key(key)
        try:
            await self._backend.delete(full_key)
        except Exception as e:
            logger.warning("cache_delete_error", key=full_key, error=str(e))
