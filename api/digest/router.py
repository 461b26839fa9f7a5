"""
Daily digest API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from auth import dependencies as auth_dependencies

from . import service

router = APIRouter(prefix="/digests")


@router.get("/latest")
async def latest_digest() -> dict:
    digest = await service.latest_digest()
    if digest is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No digest published yet.")
    return digest


@router.post("/generate")
async def generate_digest(_: dict = Depends(auth_dependencies.require_admin)) -> dict:
    return await service.generate_daily_digest()


@router.get("/{digest_date}")
async def digest_by_date(digest_date: str) -> dict:
    return await service.digest_by_date(service.parse_digest_date(digest_date))


@router.post("/{digest_date}/publish")
async def publish_digest(
    digest_date: str,
    _: dict = Depends(auth_dependencies.require_admin),
) -> dict:
    return await service.publish_digest(service.parse_digest_date(digest_date))
