"""
Community API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from auth import dependencies as auth_dependencies

from . import badges, service

router = APIRouter(prefix="/community")


@router.get("/streak")
async def my_streak(current_user: dict = Depends(auth_dependencies.get_current_user)) -> dict:
    streak = await service.get_streak(int(current_user["id"]))
    return streak.as_dict()


@router.post("/activity")
async def record_activity(current_user: dict = Depends(auth_dependencies.get_current_user)) -> dict:
    return await service.record_activity(int(current_user["id"]))


@router.get("/badges")
async def badge_catalogue() -> dict:
    return {"badges": [badge.as_dict() for badge in badges.BADGE_DEFINITIONS]}


@router.get("/badges/{user_id}")
async def user_badges(
    user_id: int,
    _: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return {"badges": await service.user_badges(user_id)}
