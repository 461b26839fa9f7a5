"""
Daily market digest.

One digest per Dubai calendar day (UTC+4), generated from the previous 24
hours of published news. New digests are stored unpublished until an admin
reviews them.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any

from fastapi import HTTPException, status

from cache import policy
from cache.query import get_query_client
from cache.tiered import get_cache
from core import ai_gateway
from realtime.hub import get_hub

from . import prompts, repository

logger = logging.getLogger(__name__)

DUBAI_TZ = timezone(timedelta(hours=4))
ARTICLE_WINDOW = timedelta(hours=24)
MAX_ARTICLES = 15
TOP_ARTICLES = 7
SENTIMENTS = {"bullish", "bearish", "neutral", "mixed"}
DIGEST_CHANNEL = "digests"
LATEST_STALE_S = 300.0

FALLBACK_HEADLINE = "Dubai Real Estate Market Update"


def dubai_today(now: datetime | None = None) -> date:
    current = now or datetime.now(timezone.utc)
    return current.astimezone(DUBAI_TZ).date()


def parse_digest_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Date must be YYYY-MM-DD.") from exc


def normalize_sentiment(value: Any) -> str:
    sentiment = str(value or "").strip().lower()
    return sentiment if sentiment in SENTIMENTS else "neutral"


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def build_digest(raw: str) -> dict[str, Any]:
    """
    Turn model output into digest fields, falling back to the raw text as the
    summary when it is not valid JSON.
    """
    try:
        parsed = ai_gateway.extract_json(raw)
    except ValueError:
        logger.warning("digest_parse_failed chars=%s", len(raw or ""))
        parsed = None
    if not isinstance(parsed, dict):
        return {
            "headline": FALLBACK_HEADLINE,
            "executive_summary": raw,
            "market_sentiment": "neutral",
            "sector_highlights": {},
            "area_highlights": {},
            "key_metrics": {},
        }
    return {
        "headline": str(parsed.get("headline") or FALLBACK_HEADLINE),
        "executive_summary": str(parsed.get("executive_summary") or ""),
        "market_sentiment": normalize_sentiment(parsed.get("market_sentiment")),
        "sector_highlights": _as_dict(parsed.get("sector_highlights")),
        "area_highlights": _as_dict(parsed.get("area_highlights")),
        "key_metrics": _as_dict(parsed.get("key_metrics")),
    }


async def _invalidate(digest_date: date) -> None:
    await get_cache().delete(policy.digest(digest_date.isoformat()))
    get_query_client().invalidate(("digest",))


async def generate_daily_digest(now: datetime | None = None) -> dict[str, Any]:
    current = now or datetime.now(timezone.utc)
    today = dubai_today(current)

    if await repository.digest_exists(today):
        logger.info("digest_exists date=%s", today)
        return {"success": True, "message": "Digest already exists", "date": today.isoformat()}

    articles = await repository.recent_articles(current - ARTICLE_WINDOW, MAX_ARTICLES)
    if not articles:
        logger.info("digest_no_articles date=%s", today)
        return {"success": False, "message": "No articles available for digest"}

    raw = await ai_gateway.chat_text(prompts.digest_system_prompt(), prompts.digest_user_prompt(articles))
    digest = build_digest(raw)
    top_ids = [int(article["id"]) for article in articles[:TOP_ARTICLES]]

    await repository.insert_digest(digest_date=today, top_article_ids=top_ids, **digest)
    await _invalidate(today)
    get_hub().publish(DIGEST_CHANNEL, "digest_generated", {"date": today.isoformat()})
    logger.info("digest_generated date=%s articles=%s", today, len(top_ids))
    return {
        "success": True,
        "date": today.isoformat(),
        "headline": digest["headline"],
        "articlesIncluded": len(top_ids),
    }


def _serialize(row: dict | None) -> dict | None:
    if row is None:
        return None
    return {key: value.isoformat() if isinstance(value, (date, datetime)) else value for key, value in row.items()}


async def latest_digest() -> dict | None:
    async def _load() -> dict | None:
        return _serialize(await repository.latest_published())

    return await get_query_client().fetch(("digest", "latest"), _load, stale_time=LATEST_STALE_S)


async def digest_by_date(digest_date: date) -> dict:
    key = policy.digest(digest_date.isoformat())
    cache = get_cache()
    cached = await cache.get(key)
    if cached is not None:
        return cached

    digest = _serialize(await repository.published_by_date(digest_date))
    if digest is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Digest not found.")
    await cache.set(key, digest, policy.CacheTTL.DAY)
    return digest


async def publish_digest(digest_date: date) -> dict:
    if not await repository.publish(digest_date):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Digest not found.")
    await _invalidate(digest_date)
    get_hub().publish(DIGEST_CHANNEL, "digest_published", {"date": digest_date.isoformat()})
    logger.info("digest_published date=%s", digest_date)
    return {"success": True, "date": digest_date.isoformat()}
