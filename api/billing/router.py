"""
Billing API endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from auth import dependencies as auth_dependencies

from . import schemas, service, webhooks

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing")


@router.post("/checkout")
async def create_checkout(
    payload: schemas.CheckoutRequest,
    origin: str | None = Header(default=None),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> schemas.UrlResponse:
    result = await service.create_checkout(current_user, payload.tier, origin, annual=payload.annual)
    return schemas.UrlResponse(**result)


@router.post("/subscription")
async def check_subscription(
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> schemas.SubscriptionResponse:
    return schemas.SubscriptionResponse(**await service.check_subscription(current_user))


@router.post("/portal")
async def customer_portal(
    origin: str | None = Header(default=None),
    current_user: dict = Depends(auth_dependencies.get_current_user),
) -> schemas.UrlResponse:
    return schemas.UrlResponse(**await service.customer_portal(current_user, origin))


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None),
) -> dict:
    secret = webhooks.webhook_secret()
    if not stripe_signature or not secret:
        logger.warning("stripe_webhook_missing_signature has_secret=%s", bool(secret))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing signature")

    payload = await request.body()
    try:
        event = webhooks.construct_event(payload, stripe_signature, secret)
    except webhooks.SignatureVerificationError as exc:
        logger.warning("stripe_webhook_invalid_signature error=%s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature") from exc

    await service.handle_event(event)
    return {"received": True}
