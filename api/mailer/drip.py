"""
Drip email sequences.

A sequence step (`email_drip_sequences`) names a template (`email_key`), the
audience (`email_type`, `target_tier`) and a delay. Enrolling a user inserts
one `email_drip_queue` row per step; the scheduler sends rows once their
`scheduled_for` has passed.

Queue row outcomes: `sent`, `skipped` (profile gone, unsubscribed, already
upgraded) or `failed` (unknown template, provider error).
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from fastapi import HTTPException, status

from core import config

from . import repository, resend_client, templates

logger = logging.getLogger(__name__)

TEST_MODE_NOTE = "Test mode - would send in prod"


async def send_drip_email(queue_id: int) -> dict[str, Any]:
    entry = await repository.get_queue_entry(queue_id)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Queue entry not found",
        )

    profile = await repository.get_recipient(int(entry["user_id"]))
    if profile is None:
        await repository.mark_entry(queue_id, status="skipped", error_message="Profile not found")
        return {"success": False, "reason": "profile_not_found"}

    if profile.get("notify_email_digest") is False:
        logger.info("drip_skipped_unsubscribed queue_id=%s user_id=%s", queue_id, entry["user_id"])
        await repository.mark_entry(queue_id, status="skipped", error_message="User unsubscribed")
        return {"success": False, "reason": "unsubscribed"}

    if entry.get("email_type") == "upgrade" and entry.get("target_tier") == "free":
        if (profile.get("membership_tier") or "free") != "free":
            logger.info("drip_skipped_upgraded queue_id=%s tier=%s", queue_id, profile.get("membership_tier"))
            await repository.mark_entry(queue_id, status="skipped", error_message="User already upgraded")
            return {"success": False, "reason": "already_upgraded"}

    email_key = str(entry.get("email_key") or "")
    rendered = templates.render_drip(email_key, templates.first_name(profile.get("full_name")), config.site_url())
    if rendered is None:
        logger.error("drip_template_missing queue_id=%s email_key=%s", queue_id, email_key)
        await repository.mark_entry(queue_id, status="failed", error_message="Template not found")
        return {"success": False, "reason": "template_not_found"}

    subject, html = rendered
    try:
        await resend_client.send_email(str(profile["email"]), subject, html)
    except resend_client.ResendError as exc:
        if exc.is_test_mode_rejection:
            await repository.mark_entry(queue_id, status="sent", error_message=TEST_MODE_NOTE, sent=True)
            return {"success": True, "test_mode": True}
        await repository.mark_entry(queue_id, status="failed", error_message=exc.message)
        raise

    await repository.mark_entry(queue_id, status="sent", sent=True)
    logger.info("drip_sent queue_id=%s email_key=%s", queue_id, email_key)
    return {"success": True, "email_key": email_key}


async def process_due(limit: int = 50) -> dict[str, int]:
    """
    Send every pending entry that is due, oldest first.
    One failing entry does not stop the batch.
    """
    outcomes: Counter[str] = Counter()
    for queue_id in await repository.due_entry_ids(limit):
        try:
            result = await send_drip_email(queue_id)
        except Exception:
            logger.exception("drip_send_failed queue_id=%s", queue_id)
            outcomes["failed"] += 1
            continue
        if result.get("success"):
            outcomes["sent"] += 1
        elif result.get("reason") == "template_not_found":
            outcomes["failed"] += 1
        else:
            outcomes["skipped"] += 1
    return {"processed": sum(outcomes.values()), **{key: outcomes[key] for key in ("sent", "skipped", "failed")}}


async def enqueue_sequence(user_id: int, email_type: str, target_tier: str) -> int:
    steps = await repository.active_sequences(email_type, target_tier)
    queued = 0
    for step in steps:
        if await repository.enqueue(user_id, int(step["id"]), int(step["delay_days"] or 0)):
            queued += 1
    logger.info(
        "drip_enqueued user_id=%s email_type=%s target_tier=%s queued=%s",
        user_id,
        email_type,
        target_tier,
        queued,
    )
    return queued
