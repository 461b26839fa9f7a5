"""
Billing persistence helpers (membership columns on users).
"""

from __future__ import annotations

from datetime import datetime

from core import db


async def get_user_by_customer(customer_id: str) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, email, full_name, membership_tier, membership_status
        FROM users
        WHERE stripe_customer_id = $1
        """,
        customer_id,
    )


async def set_customer_id(user_id: int, customer_id: str, *, only_if_missing: bool = False) -> None:
    if only_if_missing:
        await db.execute(
            """
            UPDATE users
            SET stripe_customer_id = $2, updated_at = now()
            WHERE id = $1
              AND stripe_customer_id IS NULL
            """,
            user_id,
            customer_id,
        )
        return
    await db.execute(
        """
        UPDATE users
        SET stripe_customer_id = $2, updated_at = now()
        WHERE id = $1
        """,
        user_id,
        customer_id,
    )


async def update_membership(
    user_id: int,
    *,
    tier: str,
    status: str,
    renews_at: datetime | None,
) -> None:
    await db.execute(
        """
        UPDATE users
        SET membership_tier = $2,
            membership_status = $3,
            membership_renews_at = $4,
            updated_at = now()
        WHERE id = $1
        """,
        user_id,
        tier,
        status,
        renews_at,
    )


async def set_membership_status(user_id: int, status: str) -> None:
    await db.execute(
        """
        UPDATE users
        SET membership_status = $2, updated_at = now()
        WHERE id = $1
        """,
        user_id,
        status,
    )
