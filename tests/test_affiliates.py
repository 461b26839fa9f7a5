from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException

from affiliates import repository, service
from auth import repository as auth_repository

AFFILIATE = {"id": 2, "user_id": 50, "referral_code": "ANA2026", "status": "approved"}


@pytest.fixture
def repo(monkeypatch):
    mocks = {
        "get_approved_by_code": AsyncMock(return_value=dict(AFFILIATE)),
        "get_by_user": AsyncMock(return_value=dict(AFFILIATE)),
        "has_recent_click": AsyncMock(return_value=False),
        "insert_click": AsyncMock(),
        "insert_referral": AsyncMock(return_value=True),
        "referral_counts": AsyncMock(return_value={"clicks": 10, "signups": 2, "qualified": 1}),
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(repository, name, mock)
    monkeypatch.setattr(auth_repository, "set_referred_by", AsyncMock())
    return mocks


def test_client_ip_precedence():
    assert service.client_ip({"cf-connecting-ip": "1.1.1.1", "x-forwarded-for": "2.2.2.2"}) == "1.1.1.1"
    assert service.client_ip({"x-forwarded-for": " 2.2.2.2, 10.0.0.1", "x-real-ip": "3.3.3.3"}) == "2.2.2.2"
    assert service.client_ip({"x-real-ip": "3.3.3.3"}) == "3.3.3.3"
    assert service.client_ip({}) == "unknown"


def test_hash_ip_is_salted():
    assert len(service.hash_ip("1.1.1.1", "a")) == 32
    assert service.hash_ip("1.1.1.1", "a") != service.hash_ip("1.1.1.1", "b")
    assert service.hash_ip("1.1.1.1", "a") == service.hash_ip("1.1.1.1", "a")


@pytest.mark.asyncio
async def test_track_click_records(repo):
    result = await service.track_click(" ana2026 ", user_agent="x" * 600, country_code="AEX", ip="1.1.1.1")

    assert result == {"success": True}
    repo["get_approved_by_code"].assert_awaited_once_with("ANA2026")
    kwargs = repo["insert_click"].await_args.kwargs
    assert len(kwargs["user_agent"]) == 500
    assert kwargs["country_code"] == "AE"
    assert kwargs["ip_hash"] == service.hash_ip("1.1.1.1")


@pytest.mark.asyncio
async def test_track_click_duplicate(repo):
    repo["has_recent_click"].return_value = True
    assert await service.track_click("ANA2026") == {"success": True, "duplicate": True}
    repo["insert_click"].assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("code, status_code", [("  ", 400), ("NOPE", 404)])
async def test_track_click_rejections(repo, code, status_code):
    repo["get_approved_by_code"].return_value = None
    with pytest.raises(HTTPException) as excinfo:
        await service.track_click(code)
    assert excinfo.value.status_code == status_code


@pytest.mark.asyncio
async def test_attribute_signup(repo):
    assert await service.attribute_signup(77, "ana2026") is True
    auth_repository.set_referred_by.assert_awaited_once_with(77, 2)
    repo["insert_referral"].assert_awaited_once_with(2, 77)


@pytest.mark.asyncio
async def test_self_referral_and_unknown_codes_are_ignored(repo):
    assert await service.attribute_signup(50, "ANA2026") is False
    repo["get_approved_by_code"].return_value = None
    assert await service.attribute_signup(77, "NOPE") is False
    repo["insert_referral"].assert_not_awaited()


@pytest.mark.asyncio
async def test_stats(repo, monkeypatch):
    monkeypatch.delenv("SITE_URL", raising=False)
    result = await service.stats(50)
    assert result["referral_link"] == "https://dubaiwealthhub.com?ref=ANA2026"
    assert result["signups"] == 2


@pytest.mark.asyncio
async def test_stats_for_non_affiliate(repo):
    repo["get_by_user"].return_value = None
    with pytest.raises(HTTPException) as excinfo:
        await service.stats(50)
    assert excinfo.value.status_code == 404
