"""
Content generation API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from auth import dependencies as auth_dependencies

from . import schemas, service

router = APIRouter(prefix="/content")


@router.post("/neighborhood")
async def neighborhood_content(
    payload: schemas.NeighborhoodContentRequest,
    current_user: dict = Depends(auth_dependencies.require_tier("elite")),
) -> dict:
    await service.enforce_ai_rate_limit(current_user["id"])
    return await service.neighborhood_content(
        payload.neighborhoodName,
        payload.lifestyleType,
        is_freehold=payload.isFreehold,
        has_metro=payload.hasMetro,
        has_beach=payload.hasBeach,
    )


@router.post("/property")
async def property_description(
    payload: schemas.PropertyDescriptionRequest,
    current_user: dict = Depends(auth_dependencies.require_admin),
) -> dict:
    await service.enforce_ai_rate_limit(current_user["id"])
    return await service.property_description(**payload.model_dump())
