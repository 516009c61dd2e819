"""Credential cache — process-wide storage for the EDS authentication token."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

from edsbackend.cache.manager import CacheManager

logger = logging.getLogger(__name__)

AUTH_TOKEN_CACHE_KEY = "edsAuthenticationToken"
DEFAULT_SAFETY_MARGIN = 300


class AuthenticationToken(BaseModel):
    """An account authentication token and its absolute expiry."""

    token: str = Field(default="", description="Opaque token value")
    expires_at: float = Field(default=0.0, description="Expiry as epoch seconds")

    def is_usable(self, now: float, margin: int = DEFAULT_SAFETY_MARGIN) -> bool:
        """True if the token is non-empty and not within *margin* seconds of expiry."""
        return bool(self.token) and now <= self.expires_at - margin

    def to_cache(self) -> dict[str, Any]:
        return {"token": self.token, "expiration": self.expires_at}

    @classmethod
    def from_cache(cls, data: Any) -> AuthenticationToken | None:
        if not isinstance(data, dict):
            return None
        return cls(token=data.get("token") or "", expires_at=float(data.get("expiration") or 0))


class CredentialCache:
    """Keyed singleton entry for the authentication token.

    Shared by every backend instance using the same ``CacheManager``. Each
    read and write is a single cache operation; concurrent refreshes simply
    overwrite one another.

    Args:
        cache: The shared cache manager.
        clock: Source of "now" in epoch seconds.
        key: Cache key of the token entry.
    """

    def __init__(
        self,
        cache: CacheManager,
        clock: Callable[[], float] = time.time,
        key: str = AUTH_TOKEN_CACHE_KEY,
    ) -> None:
        self._cache = cache
        self._clock = clock
        self._key = key

    def now(self) -> float:
        return self._clock()

    async def get(self) -> AuthenticationToken | None:
        return AuthenticationToken.from_cache(await self._cache.get(self._key))

    async def store(self, token: str, timeout_seconds: float) -> AuthenticationToken:
        """Store *token* as expiring *timeout_seconds* from now."""
        entry = AuthenticationToken(token=token, expires_at=self.now() + float(timeout_seconds))
        await self._cache.set(self._key, entry.to_cache())
        return entry

    async def clear(self) -> None:
        await self._cache.delete(self._key)
        logger.debug("Cleared cached authentication token")
