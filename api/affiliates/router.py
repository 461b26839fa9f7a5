"""
Affiliate API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from auth import dependencies as auth_dependencies

from . import schemas, service

router = APIRouter(prefix="/affiliates")


@router.post("/click")
async def track_click(payload: schemas.ClickRequest, request: Request) -> dict:
    return await service.track_click(
        payload.referral_code,
        landing_page=payload.landing_page,
        referrer_url=payload.referrer_url,
        user_agent=payload.user_agent or request.headers.get("user-agent"),
        ip=service.client_ip(request.headers),
        country_code=request.headers.get("cf-ipcountry"),
    )


@router.get("/me")
async def my_stats(current_user: dict = Depends(auth_dependencies.get_current_user)) -> dict:
    return await service.stats(int(current_user["id"]))
