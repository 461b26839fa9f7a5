"""
In-app and email notifications.

Each notification type maps to a preference group. A missing preference
counts as enabled, and so does a type with no group.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, status

from cache.query import get_query_client
from core import config
from core.errors import ConfigurationError, UpstreamError
from mailer import resend_client, templates
from realtime.hub import get_hub, notifications_channel

from . import repository

logger = logging.getLogger(__name__)

PREFERENCE_GROUPS = {
    "message": "messages",
    "connection_request": "connections",
    "connection_accepted": "connections",
    "post_comment": "comments",
    "event_new": "events",
    "event_reminder": "events",
    "announcement": "events",
}

UNREAD_COUNT_STALE_S = 30.0


def preference_enabled(profile: dict, channel: str, notification_type: str) -> bool:
    group = PREFERENCE_GROUPS.get(notification_type)
    if group is None:
        return True
    value = profile.get(f"notify_{channel}_{group}")
    return True if value is None else bool(value)


def _unread_key(user_id: int) -> tuple:
    return ("notifications", "unread", user_id)


async def send_notification(
    user_id: int,
    notification_type: str,
    title: str,
    body: str | None = None,
    link: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> dict[str, bool]:
    profile = await repository.get_preferences(user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found.")

    in_app = False
    if preference_enabled(profile, "inapp", notification_type):
        row = await repository.insert_notification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            body=body or None,
            link=link or None,
            metadata=metadata or {},
        )
        in_app = True
        get_query_client().invalidate(_unread_key(user_id))
        get_hub().publish(notifications_channel(user_id), "notification", _serialize(row))

    email_sent = False
    if preference_enabled(profile, "email", notification_type) and profile.get("email"):
        subject, html = templates.notification_email(
            notification_type,
            title,
            body,
            link,
            base_url=config.site_url(),
        )
        try:
            await resend_client.send_email(str(profile["email"]), subject, html)
            email_sent = True
        except (ConfigurationError, UpstreamError) as exc:
            logger.warning("notification_email_failed user_id=%s type=%s error=%s", user_id, notification_type, exc)

    logger.info(
        "notification_sent user_id=%s type=%s in_app=%s email=%s",
        user_id,
        notification_type,
        in_app,
        email_sent,
    )
    return {"success": True, "in_app": in_app, "email": email_sent}


def _serialize(row: dict) -> dict:
    data = dict(row)
    created_at = data.get("created_at")
    if created_at is not None and hasattr(created_at, "isoformat"):
        data["created_at"] = created_at.isoformat()
    return data


async def list_notifications(user_id: int, *, unread_only: bool = False, limit: int = 50) -> list[dict]:
    rows = await repository.list_for_user(user_id, unread_only=unread_only, limit=limit)
    return [_serialize(row) for row in rows]


async def mark_read(user_id: int, notification_ids: list[int] | None = None) -> dict:
    """
    Mark the given notifications (or all of them when `notification_ids` is
    None) as read.
    """
    updated = await repository.mark_read(user_id, notification_ids)
    get_query_client().invalidate(_unread_key(user_id))
    get_hub().publish(
        notifications_channel(user_id),
        "notifications_read",
        {"ids": notification_ids, "all": notification_ids is None, "updated": updated},
    )
    return {"updated": updated}


async def unread_count(user_id: int) -> int:
    return await get_query_client().fetch(
        _unread_key(user_id),
        lambda: repository.count_unread(user_id),
        stale_time=UNREAD_COUNT_STALE_S,
    )
