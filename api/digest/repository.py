"""
Digest persistence.
"""

from __future__ import annotations

from datetime import date, datetime

from core import db

_DIGEST_COLUMNS = """
    digest_date, headline, executive_summary, market_sentiment,
    sector_highlights, area_highlights, key_metrics, top_article_ids,
    is_published, published_at, created_at
"""


async def digest_exists(digest_date: date) -> bool:
    found = await db.fetch_val("SELECT 1 FROM daily_digests WHERE digest_date = $1", digest_date)
    return found is not None


async def recent_articles(since: datetime, limit: int) -> list[dict]:
    return await db.fetch_all(
        """
        SELECT id, title, excerpt, category, investment_rating
        FROM news_articles
        WHERE status = 'published'
          AND published_at >= $1
        ORDER BY investment_rating DESC NULLS LAST, published_at DESC
        LIMIT $2
        """,
        since,
        limit,
    )


async def insert_digest(
    *,
    digest_date: date,
    headline: str,
    executive_summary: str,
    market_sentiment: str,
    sector_highlights: dict,
    area_highlights: dict,
    key_metrics: dict,
    top_article_ids: list[int],
) -> None:
    async with db.transaction() as conn:
        await conn.execute(
            """
            INSERT INTO daily_digests (
                digest_date, headline, executive_summary, market_sentiment,
                sector_highlights, area_highlights, key_metrics, top_article_ids, is_published
            )
            VALUES ($1, $2, $3, $4, $5::jsonb, $6::jsonb, $7::jsonb, $8::bigint[], false)
            """,
            digest_date,
            headline,
            executive_summary,
            market_sentiment,
            db.json_param(sector_highlights),
            db.json_param(area_highlights),
            db.json_param(key_metrics),
            top_article_ids,
        )
        await conn.execute(
            """
            UPDATE news_articles
            SET digest_date = $1, is_featured_digest = true
            WHERE id = ANY($2::bigint[])
            """,
            digest_date,
            top_article_ids,
        )


async def latest_published() -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {_DIGEST_COLUMNS}
        FROM daily_digests
        WHERE is_published = true
        ORDER BY digest_date DESC
        LIMIT 1
        """
    )


async def published_by_date(digest_date: date) -> dict | None:
    return await db.fetch_one(
        f"""
        SELECT {_DIGEST_COLUMNS}
        FROM daily_digests
        WHERE digest_date = $1
          AND is_published = true
        """,
        digest_date,
    )


async def publish(digest_date: date) -> bool:
    row = await db.fetch_one(
        """
        UPDATE daily_digests
        SET is_published = true, published_at = now()
        WHERE digest_date = $1
        RETURNING digest_date
        """,
        digest_date,
    )
    return row is not None
