"""
Email API endpoints.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from affiliates.service import client_ip
from auth import dependencies as auth_dependencies
from cache.tiered import get_cache
from core import config

from . import drip, resend_client, schemas, templates

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/emails")

CONTACT_MAX_REQUESTS = 5
CONTACT_WINDOW_S = 60


def contact_inbox() -> str:
    return config.env_str("CONTACT_INBOX", "hello@dubaiwealthhub.com")


@router.post("/drip/process")
async def process_drip_queue(
    limit: int = Query(default=50, ge=1, le=500),
    _: dict = Depends(auth_dependencies.require_admin),
) -> dict:
    return await drip.process_due(limit)


@router.post("/drip/{queue_id}")
async def send_drip_email(
    queue_id: int,
    _: dict = Depends(auth_dependencies.require_admin),
) -> dict:
    return await drip.send_drip_email(queue_id)


@router.post("/contact")
async def send_contact_email(payload: schemas.ContactRequest, request: Request) -> dict:
    ip = client_ip(request.headers)
    limit = await get_cache().check_rate_limit(ip, "send-contact-email", CONTACT_MAX_REQUESTS, CONTACT_WINDOW_S)
    if not limit.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
            headers={"Retry-After": str(limit.retry_after or CONTACT_WINDOW_S)},
        )

    base_url = config.site_url()
    subject, html = templates.contact_email(
        name=payload.name,
        email=payload.email,
        phone=payload.phone,
        subject=payload.subject,
        message=payload.message,
        base_url=base_url,
    )
    email_id = await resend_client.send_email(contact_inbox(), subject, html, reply_to=payload.email)

    # The inquiry is already delivered; a failed receipt is only logged.
    confirm_subject, confirm_html = templates.contact_confirmation_email(
        name=templates.first_name(payload.name, default="there"),
        base_url=base_url,
    )
    try:
        await resend_client.send_email(payload.email, confirm_subject, confirm_html)
    except resend_client.ResendError as exc:
        logger.warning("contact_confirmation_failed error=%s", exc.message)

    logger.info("contact_form_sent id=%s", email_id)
    return {"success": True, "id": email_id}
