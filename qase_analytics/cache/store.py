"""
Cache stores for Qase API payloads

Two backends share one async interface:
- InMemoryCacheStore: process-local dict with per-entry TTL (default)
- RedisCacheStore: redis.asyncio, used when REDIS_URL is configured

Backend failures are logged and reported as a miss so a broken cache never
breaks a request.
"""

import asyncio
import fnmatch
import json
import time
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

import redis.asyncio as aioredis
from loguru import logger
from redis.exceptions import RedisError

from qase_analytics.config.settings import settings


@runtime_checkable
class CacheStore(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def delete_pattern(self, pattern: str) -> int: ...


class InMemoryCacheStore:
    """In-memory cache store with TTL support"""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        async with self._lock:
            self._entries[key] = {
                "value": value,
                "expires_at": self._clock() + ttl_seconds,
            }

    async def get(self, key: str) -> Optional[Any]:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry["expires_at"]:
                del self._entries[key]
                return None
            return entry["value"]

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def delete_pattern(self, pattern: str) -> int:
        async with self._lock:
            matched = [key for key in self._entries if fnmatch.fnmatchcase(key, pattern)]
            for key in matched:
                del self._entries[key]
            return len(matched)

    async def clear_expired(self) -> int:
        """Clear expired entries and return count"""
        async with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if now >= entry["expires_at"]]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def __len__(self) -> int:
        return len(self._entries)


class RedisCacheStore:
    """Redis-backed cache store; values are stored as JSON."""

    def __init__(self, client: aioredis.Redis):
        self._redis = client

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheStore":
        return cls(aioredis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._redis.get(key)
        except RedisError as e:
            logger.warning(f"Redis GET failed for {key}: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"Discarding undecodable cache entry {key}")
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            await self._redis.setex(key, ttl_seconds, json.dumps(value, default=str))
        except RedisError as e:
            logger.warning(f"Redis SETEX failed for {key}: {e}")

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self._redis.delete(key))
        except RedisError as e:
            logger.warning(f"Redis DEL failed for {key}: {e}")
            return False

    async def delete_pattern(self, pattern: str) -> int:
        deleted = 0
        try:
            async for key in self._redis.scan_iter(match=pattern, count=100):
                deleted += await self._redis.delete(key)
        except RedisError as e:
            logger.warning(f"Redis pattern delete failed for {pattern}: {e}")
        return deleted

    async def aclose(self) -> None:
        await self._redis.aclose()


_shared_cache: Optional[CacheStore] = None


def get_cache_store() -> CacheStore:
    """Get the process-wide cache store (Redis when configured, otherwise in-memory)."""
    global _shared_cache
    if _shared_cache is None:
        if settings.redis_url:
            logger.info("Using Redis cache store")
            _shared_cache = RedisCacheStore.from_url(settings.redis_url)
        else:
            logger.info("Using in-memory cache store")
            _shared_cache = InMemoryCacheStore()
    return _shared_cache


def reset_cache_store() -> None:
    """Drop the shared cache store (tests and admin tooling)."""
    global _shared_cache
    _shared_cache = None
