"""
Notification persistence.
"""

from __future__ import annotations

from core import db

_PREFERENCE_COLUMNS = """
    email,
    notify_email_messages, notify_email_connections,
    notify_email_comments, notify_email_events,
    notify_inapp_messages, notify_inapp_connections,
    notify_inapp_comments, notify_inapp_events
"""


async def get_preferences(user_id: int) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {_PREFERENCE_COLUMNS}
        FROM users
        WHERE id = $1
        """,
        user_id,
    )


async def insert_notification(
    *,
    user_id: int,
    notification_type: str,
    title: str,
    body: str | None,
    link: str | None,
    metadata: dict,
) -> dict:
    row = await db.fetch_one(
        """
        INSERT INTO notifications (user_id, type, title, body, link, metadata)
        VALUES ($1, $2, $3, $4, $5, $6::jsonb)
        RETURNING id, user_id, type, title, body, link, metadata, is_read, created_at
        """,
        user_id,
        notification_type,
        title,
        body,
        link,
        db.json_param(metadata),
    )
    if row is None:
        raise RuntimeError("Failed to create notification.")
    return row


async def list_for_user(user_id: int, *, unread_only: bool, limit: int) -> list[dict]:
    return await db.fetch_all(
        """
        SELECT id, type, title, body, link, metadata, is_read, created_at
        FROM notifications
        WHERE user_id = $1
          AND ($2 = false OR is_read = false)
        ORDER BY created_at DESC, id DESC
        LIMIT $3
        """,
        user_id,
        unread_only,
        limit,
    )


async def mark_read(user_id: int, notification_ids: list[int] | None) -> int:
    if notification_ids is None:
        status = await db.execute(
            "UPDATE notifications SET is_read = true WHERE user_id = $1 AND is_read = false",
            user_id,
        )
    else:
        status = await db.execute(
            """
            UPDATE notifications
            SET is_read = true
            WHERE user_id = $1
              AND id = ANY($2::bigint[])
              AND is_read = false
            """,
            user_id,
            notification_ids,
        )
    # asyncpg returns the command tag, e.g. "UPDATE 3".
    return int(str(status).rsplit(" ", 1)[-1] or 0)


async def count_unread(user_id: int) -> int:
    value = await db.fetch_val(
        "SELECT count(*) FROM notifications WHERE user_id = $1 AND is_read = false",
        user_id,
    )
    return int(value or 0)
