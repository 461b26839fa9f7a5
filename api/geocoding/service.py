"""
Forward and reverse geocoding through the Mapbox Geocoding REST API.

Forward lookups are cached for a day in the tiered cache and concurrent
identical lookups share one provider call.
"""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx
from fastapi import HTTPException, status

from cache import policy
from cache.dedup import RequestDeduplicator
from cache.tiered import get_cache
from core import config
from core.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 256
MAX_LIMIT = 10

_dedup = RequestDeduplicator()


def mapbox_api_url() -> str:
    return config.env_str("MAPBOX_API_URL", "https://api.mapbox.com").rstrip("/")


def mapbox_token() -> str:
    token = config.env_str("MAPBOX_ACCESS_TOKEN")
    if not token:
        raise ConfigurationError("Mapbox is not configured.")
    return token


def _to_place(feature: dict) -> dict:
    center = feature.get("center") or [None, None]
    return {
        "place_name": feature.get("place_name"),
        "latitude": center[1],
        "longitude": center[0],
        "relevance": feature.get("relevance"),
    }


async def _request_places(path: str, params: dict) -> list[dict]:
    async with httpx.AsyncClient(base_url=mapbox_api_url(), timeout=10.0) as client:
        resp = await client.get(path, params={**params, "access_token": mapbox_token()})
    if resp.status_code != 200:
        raise UpstreamError("mapbox", f"Mapbox error {resp.status_code}: {resp.text[:500]}", status_code=resp.status_code)
    features = resp.json().get("features") or []
    return [_to_place(feature) for feature in features]


async def geocode(query: str, limit: int = 1, country: str | None = "ae") -> list[dict]:
    cleaned = (query or "").strip()
    if not cleaned:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query is required.")
    if len(cleaned) > MAX_QUERY_LENGTH:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query is too long.")
    limit = max(1, min(limit, MAX_LIMIT))

    key = policy.geocode(f"{cleaned.lower()}|{limit}|{country or ''}")
    cache = get_cache()
    cached = await cache.get(key)
    if cached is not None:
        return cached

    async def _load() -> list[dict]:
        params: dict = {"limit": limit}
        if country:
            params["country"] = country
        places = await _request_places(f"/geocoding/v5/mapbox.places/{quote(cleaned, safe='')}.json", params)
        await cache.set(key, places, policy.CacheTTL.DAY)
        logger.info("geocode_fetched results=%s", len(places))
        return places

    return await _dedup.run(key, _load)


async def reverse_geocode(latitude: float, longitude: float) -> dict | None:
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Coordinates out of range.")
    places = await _request_places(f"/geocoding/v5/mapbox.places/{longitude},{latitude}.json", {"limit": 1})
    return places[0] if places else None
