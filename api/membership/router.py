"""
Membership API endpoints.
"""

from __future__ import annotations

import hashlib

from fastapi import APIRouter, Depends, Path, Request

from affiliates.service import client_ip
from auth import dependencies as auth_dependencies

from . import tiers, view_limits

router = APIRouter()


def _fingerprint(request: Request) -> str:
    explicit = (request.headers.get("x-client-fingerprint") or "").strip()
    if explicit:
        return explicit[:64]
    raw = f"{client_ip(request.headers)}|{request.headers.get('user-agent') or ''}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]


@router.get("/membership/tiers")
async def list_tiers() -> dict:
    return {"tiers": [plan.as_dict() for plan in tiers.PLANS.values()]}


@router.get("/membership/features")
async def list_features(
    current_user: dict | None = Depends(auth_dependencies.get_optional_user),
) -> dict:
    tier = tiers.normalize_tier(current_user.get("membership_tier") if current_user else None)
    return {
        "tier": tier,
        "features": tiers.features_for(tier),
        "requirements": dict(tiers.FEATURES),
    }


@router.post("/properties/{property_id}/view")
async def track_property_view(
    request: Request,
    property_id: str = Path(..., min_length=1, max_length=100),
    current_user: dict | None = Depends(auth_dependencies.get_optional_user),
) -> dict:
    tracker = view_limits.get_tracker()
    tier = view_limits.viewer_tier(current_user)
    key = tracker.storage_key(
        tier,
        user_id=current_user["id"] if current_user else None,
        fingerprint=_fingerprint(request),
    )
    level = tracker.track_view(tier, key, property_id)
    return {
        **tracker.summary(tier, key),
        "property_id": property_id,
        "access_level": level,
    }
