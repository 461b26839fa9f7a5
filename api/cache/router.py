"""
Cache API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from auth import dependencies as auth_dependencies

from . import schemas, service
from .tiered import get_cache

router = APIRouter()


def _cache_headers(ttl: int, data_type: str, request_id: str) -> dict[str, str]:
    return {
        "Cache-Control": f"public, max-age={ttl}, s-maxage={ttl * 2}, stale-while-revalidate={ttl}",
        # Different users may see different data for the same body.
        "Vary": "Authorization",
        "X-Cache-TTL": str(ttl),
        "X-Data-Type": data_type,
        "X-Request-ID": request_id,
    }


@router.post("/cached-data")
async def cached_data(request: schemas.CachedDataRequest, response: Response) -> dict:
    timer = service.RequestTimer()
    data, from_cache, ttl = await service.cached_data(request.dataType, request.params, timer=timer)
    response.headers.update(_cache_headers(ttl, request.dataType, timer.request_id))
    return {"data": data, "fromCache": from_cache}


@router.post("/cache")
async def cache_operation(
    request: schemas.CacheOperationRequest,
    _: dict = Depends(auth_dependencies.require_admin),
) -> dict:
    return await service.cache_operation(
        request.operation,
        request.key,
        value=request.value,
        ttl=request.ttl,
        max_requests=request.maxRequests,
        window_seconds=request.windowSeconds,
    )


@router.get("/cache/stats")
async def cache_stats(
    _: dict = Depends(auth_dependencies.require_admin),
) -> dict:
    return get_cache().stats()
