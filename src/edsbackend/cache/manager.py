"""Cache Manager — Redis-backed key/value store shared by every backend instance.

Holds process-wide state such as the EDS authentication token. Redis makes
the entries visible across worker processes; the memory backend covers the
single-process case and tests.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as aioredis

from edsbackend.config.settings import CacheSettings

logger = logging.getLogger(__name__)


class CacheManager:
    """Async key/value cache with Redis and in-memory backends.

    Every get/set/delete is a single command against the backend, so each
    entry is read and written atomically. Backend failures are logged and
    degrade to a cache miss.

    Attributes:
        settings: Cache configuration.
    """

    def __init__(self, settings: CacheSettings) -> None:
        self.settings = settings
        self._client: Any = None
        self._memory_cache: dict[str, Any] = {}

    async def initialize(self) -> None:
        """Initialize the cache backend."""
        if self.settings.backend == "redis":
            try:
                self._client = aioredis.from_url(
                    self.settings.redis_url,
                    decode_responses=True,
                )
                await self._client.ping()
                logger.info("Connected to Redis cache at %s", self.settings.redis_url)
            except Exception:
                logger.warning("Failed to connect to Redis, falling back to memory cache", exc_info=True)
                self._client = None
                self.settings.backend = "memory"
        else:
            logger.info("Using in-memory cache backend")

    async def shutdown(self) -> None:
        """Close cache connections."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _key(self, key: str) -> str:
        return f"{self.settings.key_prefix}{key}"

    async def get(self, key: str) -> Any | None:
        """Retrieve a value from cache.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found.
        """
        try:
            if self.settings.backend == "redis" and self._client:
                value = await self._client.get(self._key(key))
                return json.loads(value) if value else None
            return self._memory_cache.get(self._key(key))
        except Exception:
            logger.debug("Cache get failed for key: %s", key, exc_info=True)
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store a value in cache.

        Args:
            key: Cache key.
            value: Value to cache (must be JSON-serializable for Redis).
            ttl: Time-to-live in seconds (None = no expiry). Ignored by the
                memory backend.
        """
        try:
            if self.settings.backend == "redis" and self._client:
                serialized = json.dumps(value, default=str)
                if ttl:
                    await self._client.setex(self._key(key), ttl, serialized)
                else:
                    await self._client.set(self._key(key), serialized)
            else:
                self._memory_cache[self._key(key)] = value
        except Exception:
            logger.debug("Cache set failed for key: %s", key, exc_info=True)

    async def delete(self, key: str) -> None:
        """Delete a value from cache.

        Args:
            key: Cache key to delete.
        """
        try:
            if self.settings.backend == "redis" and self._client:
                await self._client.delete(self._key(key))
            else:
                self._memory_cache.pop(self._key(key), None)
        except Exception:
            logger.debug("Cache delete failed for key: %s", key, exc_info=True)
