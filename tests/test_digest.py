import json
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException

from cache import policy
from cache.tiered import get_cache
from core import ai_gateway
from digest import repository, service

NOW = datetime(2026, 3, 1, 21, 30, tzinfo=timezone.utc)
ARTICLES = [{"id": i, "title": f"Article {i}", "summary": "s", "category": "market"} for i in range(1, 10)]


@pytest.fixture
def repo(monkeypatch):
    mocks = {
        "digest_exists": AsyncMock(return_value=False),
        "recent_articles": AsyncMock(return_value=list(ARTICLES)),
        "insert_digest": AsyncMock(),
        "latest_published": AsyncMock(return_value=None),
        "published_by_date": AsyncMock(return_value=None),
        "publish": AsyncMock(return_value=True),
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(repository, name, mock)
    return mocks


def test_dubai_today_rolls_over_at_20_utc():
    assert service.dubai_today(datetime(2026, 3, 1, 19, 59, tzinfo=timezone.utc)) == date(2026, 3, 1)
    assert service.dubai_today(datetime(2026, 3, 1, 20, 0, tzinfo=timezone.utc)) == date(2026, 3, 2)


def test_parse_digest_date():
    assert service.parse_digest_date("2026-03-02") == date(2026, 3, 2)
    with pytest.raises(HTTPException) as excinfo:
        service.parse_digest_date("03/02/2026")
    assert excinfo.value.status_code == 400


def test_build_digest_normalizes_fields():
    digest = service.build_digest(
        json.dumps({"headline": "Prices up", "market_sentiment": "BULLISH", "area_highlights": ["not a dict"]})
    )
    assert digest["headline"] == "Prices up"
    assert digest["market_sentiment"] == "bullish"
    assert digest["area_highlights"] == {}


def test_build_digest_falls_back_to_raw_text():
    digest = service.build_digest("Markets were calm today.")
    assert digest["headline"] == service.FALLBACK_HEADLINE
    assert digest["executive_summary"] == "Markets were calm today."
    assert digest["market_sentiment"] == "neutral"


@pytest.mark.asyncio
async def test_existing_digest_is_not_regenerated(repo):
    repo["digest_exists"].return_value = True

    result = await service.generate_daily_digest(NOW)

    assert result == {"success": True, "message": "Digest already exists", "date": "2026-03-02"}
    repo["recent_articles"].assert_not_awaited()


@pytest.mark.asyncio
async def test_no_articles(repo):
    repo["recent_articles"].return_value = []
    result = await service.generate_daily_digest(NOW)
    assert result["success"] is False


@pytest.mark.asyncio
async def test_generate_stores_top_articles_and_publishes(repo, hub, monkeypatch):
    chat = AsyncMock(return_value=json.dumps({"headline": "Off-plan surge", "market_sentiment": "mixed"}))
    monkeypatch.setattr(ai_gateway, "chat_text", chat)
    await get_cache().set(policy.digest("2026-03-02"), {"stale": True}, 60)
    subscription = hub.subscribe(service.DIGEST_CHANNEL)

    result = await service.generate_daily_digest(NOW)

    assert result == {"success": True, "date": "2026-03-02", "headline": "Off-plan surge", "articlesIncluded": 7}
    since, limit = repo["recent_articles"].await_args.args
    assert since == datetime(2026, 2, 28, 21, 30, tzinfo=timezone.utc)
    assert limit == 15
    kwargs = repo["insert_digest"].await_args.kwargs
    assert kwargs["digest_date"] == date(2026, 3, 2)
    assert kwargs["top_article_ids"] == [1, 2, 3, 4, 5, 6, 7]
    assert kwargs["market_sentiment"] == "mixed"
    assert subscription.get_nowait()["event"] == "digest_generated"
    assert await get_cache().get(policy.digest("2026-03-02")) is None


@pytest.mark.asyncio
async def test_digest_by_date_caches_and_serializes(repo):
    repo["published_by_date"].return_value = {"digest_date": date(2026, 3, 2), "headline": "H"}

    first = await service.digest_by_date(date(2026, 3, 2))
    second = await service.digest_by_date(date(2026, 3, 2))

    assert first == second == {"digest_date": "2026-03-02", "headline": "H"}
    assert repo["published_by_date"].await_count == 1


@pytest.mark.asyncio
async def test_digest_by_date_missing(repo):
    with pytest.raises(HTTPException) as excinfo:
        await service.digest_by_date(date(2026, 3, 2))
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_publish_refreshes_latest(repo):
    assert await service.latest_digest() is None
    repo["latest_published"].return_value = {"digest_date": date(2026, 3, 2), "headline": "H"}

    await service.publish_digest(date(2026, 3, 2))

    assert (await service.latest_digest())["headline"] == "H"


@pytest.mark.asyncio
async def test_publish_missing_digest(repo):
    repo["publish"].return_value = False
    with pytest.raises(HTTPException):
        await service.publish_digest(date(2026, 3, 2))
