"""
Geocoding API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Query

from . import service

router = APIRouter(prefix="/geocode")


@router.get("")
async def geocode(
    q: str = Query(..., max_length=256),
    limit: int = Query(default=1, ge=1, le=10),
) -> dict:
    return {"results": await service.geocode(q, limit=limit)}


@router.get("/reverse")
async def reverse_geocode(lat: float = Query(...), lng: float = Query(...)) -> dict:
    return {"result": await service.reverse_geocode(lat, lng)}
