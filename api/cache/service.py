"""
Cached aggregate reads and raw cache operations.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Awaitable, Callable

from fastapi import HTTPException, status

from core.errors import ConfigurationError

from . import policy, repository
from .dedup import RequestDeduplicator
from .remote import RemoteCache
from .tiered import get_cache

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 1000

_dedup = RequestDeduplicator()


def generate_request_id() -> str:
    millis = policy.to_base36(int(time.time() * 1000))
    suffix = "".join(random.choices(policy.BASE36_DIGITS, k=7))
    return f"req_{millis}_{suffix}"


class RequestTimer:
    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._start = clock()
        self.request_id = generate_request_id()
        self.checkpoints: dict[str, int] = {}

    def elapsed_ms(self) -> int:
        return int((self._clock() - self._start) * 1000)

    def checkpoint(self, name: str) -> None:
        self.checkpoints[name] = self.elapsed_ms()

    def log(self, data_type: str, outcome: str = "success") -> int:
        duration = self.elapsed_ms()
        logger.info(
            "cached_data request_id=%s data_type=%s status=%s duration_ms=%s checkpoints=%s",
            self.request_id,
            data_type,
            outcome,
            duration,
            self.checkpoints,
        )
        if duration > SLOW_REQUEST_MS:
            logger.warning(
                "slow_request request_id=%s data_type=%s duration_ms=%s checkpoints=%s",
                self.request_id,
                data_type,
                duration,
                self.checkpoints,
            )
        return duration


def _param(params: dict[str, Any], name: str, default: Any = None) -> Any:
    # Falsy values count as unset, the same way the web client sends them.
    value = params.get(name)
    return value if value not in (None, "", 0) else default


async def _property_counts(_: dict[str, Any]) -> Any:
    return await repository.property_counts()


async def _area_benchmarks(_: dict[str, Any]) -> Any:
    return await repository.area_benchmarks()


async def _status_counts(params: dict[str, Any]) -> Any:
    listing_type = "rent" if params.get("listingType") == "rent" else "sale"
    return await repository.status_counts(listing_type)


async def _listing_counts(_: dict[str, Any]) -> Any:
    return await repository.listing_counts()


async def _active_agents(_: dict[str, Any]) -> Any:
    return await repository.active_agents()


async def _market_stats(params: dict[str, Any]) -> Any:
    rows = await repository.market_stats()
    area = params.get("area")
    if not area:
        return rows
    return next((row for row in rows if row.get("area_name") == area), None)


async def _properties_with_counts(params: dict[str, Any]) -> Any:
    bedrooms = _param(params, "bedrooms")
    return await repository.properties_with_counts(
        listing_type=_param(params, "listingType"),
        status=_param(params, "status", "available"),
        area=_param(params, "area"),
        property_type=_param(params, "propertyType"),
        min_price=_param(params, "minPrice"),
        max_price=_param(params, "maxPrice"),
        bedrooms=int(bedrooms) if bedrooms is not None else None,
        developer=_param(params, "developer"),
        limit=int(_param(params, "limit", 20)),
        offset=int(_param(params, "offset", 0)),
        sort_by=str(_param(params, "sortBy", "newest")),
    )


_FETCHERS: dict[str, Callable[[dict[str, Any]], Awaitable[Any]]] = {
    "propertyCounts": _property_counts,
    "areaBenchmarks": _area_benchmarks,
    "statusCounts": _status_counts,
    "listingCounts": _listing_counts,
    "activeAgents": _active_agents,
    "marketStats": _market_stats,
    "propertiesWithCounts": _properties_with_counts,
}


async def cached_data(
    data_type: str,
    params: dict[str, Any] | None = None,
    *,
    timer: RequestTimer | None = None,
) -> tuple[Any, bool, int]:
    """
    Return `(data, from_cache, ttl_seconds)` for one of the cached aggregates.

    Misses for the same key are deduplicated, so a burst of identical
    requests after expiry reaches the database once.
    """
    timer = timer or RequestTimer()
    params = params or {}

    fetcher = _FETCHERS.get(data_type)
    if fetcher is None:
        timer.log(data_type, "error")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown data type: {data_type}",
        )

    ttl = policy.policy_for(data_type).server_ttl
    key = policy.cached_data_key(data_type, params)
    timer.checkpoint("parse_request")

    cache = get_cache()
    cached = await cache.get(key)
    timer.checkpoint("cache_check")
    if cached is not None:
        timer.log(data_type, "cache_hit")
        return cached, True, ttl

    async def _load() -> Any:
        data = await fetcher(params)
        timer.checkpoint("db_query")
        await cache.set(key, data, ttl)
        timer.checkpoint("cache_set")
        return data

    data = await _dedup.run(key, _load)
    timer.log(data_type, "success")
    return data, False, ttl


async def cache_operation(
    operation: str | None,
    key: str | None,
    *,
    value: Any = None,
    ttl: int | None = None,
    max_requests: int | None = None,
    window_seconds: int | None = None,
    remote: RemoteCache | None = None,
) -> dict[str, Any]:
    if not operation or not key:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing operation or key",
        )

    remote = remote or get_cache().remote
    if not remote.configured:
        raise ConfigurationError("Redis not configured")

    logger.info("cache_operation operation=%s key=%s", operation, key)

    if operation == "get":
        return {"value": await remote.get(key)}

    if operation == "set":
        await remote.set(key, value, ttl)
        return {"success": True}

    if operation == "delete":
        await remote.delete(key)
        return {"success": True}

    if operation == "rateLimit":
        if not max_requests or not window_seconds:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing maxRequests or windowSeconds",
            )
        result = await remote.rate_limit(key, max_requests, window_seconds)
        return result.as_dict()

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Unknown operation",
    )
