"""
Notification API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from auth import dependencies as auth_dependencies

from . import schemas, service

router = APIRouter(prefix="/notifications")


@router.post("")
async def create_notification(
    payload: schemas.NotificationCreate,
    _: dict = Depends(auth_dependencies.require_admin),
) -> dict:
    return await service.send_notification(
        payload.user_id,
        payload.type,
        payload.title,
        payload.body,
        payload.link,
        payload.metadata,
    )


@router.get("")
async def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    items = await service.list_notifications(int(current_user["id"]), unread_only=unread_only, limit=limit)
    return {"notifications": items}


@router.get("/unread-count")
async def unread_count(current_user: dict = Depends(auth_dependencies.get_current_user)) -> dict:
    return {"count": await service.unread_count(int(current_user["id"]))}


@router.post("/read")
async def mark_read(
    payload: schemas.MarkReadRequest,
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> dict:
    return await service.mark_read(int(current_user["id"]), payload.ids)
