"""
Drip queue persistence.
"""

from __future__ import annotations

from core import db


async def get_queue_entry(queue_id: int) -> dict | None:
    return await db.fetch_one(
        """
        SELECT q.id, q.user_id, q.sequence_id, q.status, q.scheduled_for,
               s.email_key, s.email_type, s.target_tier
        FROM email_drip_queue q
        JOIN email_drip_sequences s ON s.id = q.sequence_id
        WHERE q.id = $1
        """,
        queue_id,
    )


async def get_recipient(user_id: int) -> dict | None:
    return await db.fetch_one(
        """
        SELECT email, full_name, membership_tier, notify_email_digest
        FROM users
        WHERE id = $1
        """,
        user_id,
    )


async def mark_entry(queue_id: int, *, status: str, error_message: str | None = None, sent: bool = False) -> None:
    await db.execute(
        """
        UPDATE email_drip_queue
        SET status = $2,
            error_message = $3,
            sent_at = CASE WHEN $4 THEN now() ELSE sent_at END
        WHERE id = $1
        """,
        queue_id,
        status,
        error_message,
        sent,
    )


async def due_entry_ids(limit: int) -> list[int]:
    rows = await db.fetch_all(
        """
        SELECT id
        FROM email_drip_queue
        WHERE status = 'pending'
          AND scheduled_for <= now()
        ORDER BY scheduled_for ASC, id ASC
        LIMIT $1
        """,
        limit,
    )
    return [int(row["id"]) for row in rows]


async def active_sequences(email_type: str, target_tier: str) -> list[dict]:
    return await db.fetch_all(
        """
        SELECT id, email_key, delay_days
        FROM email_drip_sequences
        WHERE email_type = $1
          AND target_tier = $2
          AND is_active = true
        ORDER BY delay_days ASC
        """,
        email_type,
        target_tier,
    )


async def enqueue(user_id: int, sequence_id: int, delay_days: int) -> bool:
    row = await db.fetch_one(
        """
        INSERT INTO email_drip_queue (user_id, sequence_id, scheduled_for, status)
        VALUES ($1, $2, now() + make_interval(days => $3), 'pending')
        ON CONFLICT (user_id, sequence_id) DO NOTHING
        RETURNING id
        """,
        user_id,
        sequence_id,
        delay_days,
    )
    return row is not None
