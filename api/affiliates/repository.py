"""
Affiliate persistence: approved referrers, tracked clicks and referrals.
"""

from __future__ import annotations

from datetime import datetime

from core import db


async def get_approved_by_code(referral_code: str) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, user_id, referral_code
        FROM affiliates
        WHERE referral_code = $1
          AND status = 'approved'
        """,
        referral_code,
    )


async def get_by_user(user_id: int) -> dict | None:
    return await db.fetch_one(
        """
        SELECT id, user_id, referral_code, status, commission_rate,
               total_clicks, total_signups, created_at
        FROM affiliates
        WHERE user_id = $1
        """,
        user_id,
    )


async def has_recent_click(affiliate_id: int, ip_hash: str, since: datetime) -> bool:
    found = await db.fetch_val(
        """
        SELECT 1
        FROM affiliate_clicks
        WHERE affiliate_id = $1
          AND ip_hash = $2
          AND created_at >= $3
        LIMIT 1
        """,
        affiliate_id,
        ip_hash,
        since,
    )
    return found is not None


async def insert_click(
    *,
    affiliate_id: int,
    ip_hash: str,
    user_agent: str | None,
    referrer_url: str | None,
    landing_page: str | None,
    country_code: str | None,
) -> None:
    async with db.transaction() as conn:
        await conn.execute(
            """
            INSERT INTO affiliate_clicks (
                affiliate_id, ip_hash, user_agent, referrer_url, landing_page, country_code
            )
            VALUES ($1, $2, $3, $4, $5, $6)
            """,
            affiliate_id,
            ip_hash,
            user_agent,
            referrer_url,
            landing_page,
            country_code,
        )
        await conn.execute(
            "UPDATE affiliates SET total_clicks = coalesce(total_clicks, 0) + 1 WHERE id = $1",
            affiliate_id,
        )


async def insert_referral(affiliate_id: int, referred_user_id: int) -> bool:
    async with db.transaction() as conn:
        row = await conn.fetchrow(
            """
            INSERT INTO referrals (affiliate_id, referred_user_id, status)
            VALUES ($1, $2, 'pending')
            ON CONFLICT (referred_user_id) DO NOTHING
            RETURNING id
            """,
            affiliate_id,
            referred_user_id,
        )
        if row is None:
            return False
        await conn.execute(
            "UPDATE affiliates SET total_signups = coalesce(total_signups, 0) + 1 WHERE id = $1",
            affiliate_id,
        )
    return True


async def referral_counts(affiliate_id: int) -> dict:
    row = await db.fetch_one(
        """
        SELECT
            (SELECT count(*) FROM affiliate_clicks WHERE affiliate_id = $1) AS clicks,
            (SELECT count(*) FROM referrals WHERE affiliate_id = $1) AS signups,
            (SELECT count(*) FROM referrals WHERE affiliate_id = $1 AND status = 'qualified') AS qualified
        """,
        affiliate_id,
    )
    return {key: int((row or {}).get(key) or 0) for key in ("clicks", "signups", "qualified")}
