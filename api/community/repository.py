"""
Activity and badge persistence.
"""

from __future__ import annotations

from datetime import date

from core import db


async def record_activity(user_id: int, activity_date: date) -> None:
    await db.execute(
        """
        INSERT INTO user_activity (user_id, activity_date)
        VALUES ($1, $2)
        ON CONFLICT (user_id, activity_date) DO NOTHING
        """,
        user_id,
        activity_date,
    )


async def activity_dates(user_id: int) -> list[date]:
    rows = await db.fetch_all(
        "SELECT activity_date FROM user_activity WHERE user_id = $1 ORDER BY activity_date",
        user_id,
    )
    return [row["activity_date"] for row in rows]


async def award_badge(user_id: int, badge_type: str, metadata: dict) -> bool:
    row = await db.fetch_one(
        """
        INSERT INTO user_badges (user_id, badge_type, metadata)
        VALUES ($1, $2, $3::jsonb)
        ON CONFLICT (user_id, badge_type) DO NOTHING
        RETURNING id
        """,
        user_id,
        badge_type,
        db.json_param(metadata),
    )
    return row is not None


async def list_badges(user_id: int) -> list[dict]:
    return await db.fetch_all(
        """
        SELECT id, badge_type, earned_at, metadata
        FROM user_badges
        WHERE user_id = $1
        ORDER BY earned_at DESC
        """,
        user_id,
    )
