"""
Two-level cache: in-process `LocalCache` in front of Redis.

Remote failures never break a request. Reads degrade to misses, writes
report False, and rate limiting fails open.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

import httpx

from core.errors import ConfigurationError, UpstreamError

from . import policy
from .local import LocalCache
from .remote import RateLimitResult, RemoteCache

logger = logging.getLogger(__name__)

T = TypeVar("T")

_REMOTE_ERRORS = (ConfigurationError, UpstreamError, httpx.HTTPError, ValueError)


class TieredCache:
    def __init__(self, local: LocalCache | None = None, remote: RemoteCache | None = None) -> None:
        self.local = local or LocalCache()
        self.remote = remote or RemoteCache()
        self.hits = 0
        self.misses = 0
        self.sets = 0

    async def get(self, key: str) -> Any | None:
        value = self.local.get(key)
        if value is not None:
            self.hits += 1
            return value
        self.misses += 1

        if not self.remote.configured:
            return None
        try:
            value = await self.remote.get(key)
        except _REMOTE_ERRORS as exc:
            logger.warning("cache_get_failed key=%s error=%s", key, exc)
            return None

        if value is not None:
            self.local.set(key, value, policy.LOCAL_TTL_AFTER_REMOTE_HIT)
        return value

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        # Local first so the value is visible immediately.
        self.local.set(key, value, ttl_seconds)
        self.sets += 1

        if not self.remote.configured:
            return False
        try:
            await self.remote.set(key, value, ttl_seconds)
        except _REMOTE_ERRORS as exc:
            logger.warning("cache_set_failed key=%s error=%s", key, exc)
            return False
        return True

    async def delete(self, key: str) -> bool:
        self.local.delete(key)
        if not self.remote.configured:
            return False
        try:
            await self.remote.delete(key)
        except _REMOTE_ERRORS as exc:
            logger.warning("cache_delete_failed key=%s error=%s", key, exc)
            return False
        return True

    async def get_or_fetch(self, key: str, fetcher: Callable[[], Awaitable[T]], ttl_seconds: int) -> T:
        cached = await self.get(key)
        if cached is not None:
            return cached
        data = await fetcher()
        await self.set(key, data, ttl_seconds)
        return data

    async def check_rate_limit(
        self,
        identifier: str,
        endpoint: str,
        max_requests: int,
        window_seconds: int,
    ) -> RateLimitResult:
        fail_open = RateLimitResult(
            allowed=True,
            remaining=max_requests,
            reset_at=int(time.time() * 1000) + window_seconds * 1000,
        )
        if not self.remote.configured:
            return fail_open
        try:
            return await self.remote.rate_limit(
                policy.rate_limit(identifier, endpoint),
                max_requests,
                window_seconds,
            )
        except _REMOTE_ERRORS as exc:
            logger.warning("rate_limit_check_failed endpoint=%s error=%s", endpoint, exc)
            return fail_open

    def invalidate_pattern(self, pattern: str) -> int:
        # Remote pattern deletes need SCAN; only the local tier is swept.
        return self.local.delete_prefix(pattern)

    def cleanup_local(self) -> int:
        return self.local.cleanup()

    def stats(self) -> dict[str, Any]:
        total = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "hit_rate": self.hits / total if total > 0 else 0,
            "local_size": len(self.local),
        }

    def reset_stats(self) -> None:
        self.hits = 0
        self.misses = 0
        self.sets = 0


_cache: TieredCache | None = None


def get_cache() -> TieredCache:
    global _cache
    if _cache is None:
        _cache = TieredCache()
    return _cache


def set_cache(cache: TieredCache | None) -> None:
    global _cache
    _cache = cache
