"""
Meeting API endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from auth import dependencies as auth_dependencies

from . import schemas, signature

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meetings")


@router.post("/signature")
async def meeting_signature(
    payload: schemas.SignatureRequest,
    current_user: dict = Depends(auth_dependencies.require_tier("investor")),
) -> schemas.SignatureResponse:
    if payload.role == signature.HOST_ROLE and not auth_dependencies.is_admin(current_user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can host meetings.")

    sdk_key, sdk_secret = signature.sdk_credentials()
    try:
        token = signature.generate_signature(sdk_key, sdk_secret, payload.meeting_number, payload.role)
    except signature.InvalidMeetingNumber as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    logger.info("meeting_signature_issued user_id=%s role=%s", current_user["id"], payload.role)
    return schemas.SignatureResponse(signature=token, sdkKey=sdk_key)
