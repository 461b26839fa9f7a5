from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi import HTTPException

from cache.query import get_query_client
from mailer import resend_client
from notifications import repository, service
from realtime.hub import notifications_channel

ROW = {
    "id": 11,
    "user_id": 4,
    "type": "message",
    "title": "New message",
    "body": "hi",
    "link": "/inbox",
    "is_read": False,
    "created_at": datetime(2026, 1, 2, tzinfo=timezone.utc),
}


@pytest.fixture
def repo(monkeypatch):
    mocks = {
        "get_preferences": AsyncMock(return_value={"email": "kim@example.com"}),
        "insert_notification": AsyncMock(return_value=dict(ROW)),
        "list_for_user": AsyncMock(return_value=[dict(ROW)]),
        "mark_read": AsyncMock(return_value=2),
        "count_unread": AsyncMock(return_value=3),
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(repository, name, mock)
    return mocks


@pytest.fixture
def sender(monkeypatch):
    send = AsyncMock(return_value="em_1")
    monkeypatch.setattr(resend_client, "send_email", send)
    return send


def test_preference_defaults():
    assert service.preference_enabled({}, "email", "message")
    assert service.preference_enabled({"notify_email_messages": None}, "email", "message")
    assert not service.preference_enabled({"notify_email_messages": False}, "email", "message")
    assert service.preference_enabled({"notify_inapp_events": False}, "inapp", "custom_type")
    assert not service.preference_enabled({"notify_inapp_events": False}, "inapp", "announcement")


@pytest.mark.asyncio
async def test_unknown_user_is_404(repo, sender):
    repo["get_preferences"].return_value = None
    with pytest.raises(HTTPException) as excinfo:
        await service.send_notification(4, "message", "New message")
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_send_publishes_and_emails(repo, sender, hub):
    subscription = hub.subscribe(notifications_channel(4))

    result = await service.send_notification(4, "message", "New message", "hi", "/inbox")

    assert result == {"success": True, "in_app": True, "email": True}
    event = subscription.get_nowait()
    assert event["event"] == "notification"
    assert event["payload"]["id"] == 11
    assert event["payload"]["created_at"] == "2026-01-02T00:00:00+00:00"
    assert sender.await_args.args[1] == "💬 New message"


@pytest.mark.asyncio
async def test_disabled_channels_are_skipped(repo, sender, hub):
    repo["get_preferences"].return_value = {
        "email": "kim@example.com",
        "notify_inapp_messages": False,
        "notify_email_messages": False,
    }

    result = await service.send_notification(4, "message", "New message")

    assert result == {"success": True, "in_app": False, "email": False}
    repo["insert_notification"].assert_not_awaited()
    sender.assert_not_awaited()


@pytest.mark.asyncio
async def test_email_failure_does_not_fail_the_notification(repo, sender):
    sender.side_effect = resend_client.ResendError("down", status_code=500)

    result = await service.send_notification(4, "announcement", "Launch")

    assert result == {"success": True, "in_app": True, "email": False}


@pytest.mark.asyncio
async def test_unread_count_is_cached_until_invalidated(repo, sender):
    assert await service.unread_count(4) == 3
    repo["count_unread"].return_value = 5
    assert await service.unread_count(4) == 3

    await service.send_notification(4, "message", "New message")

    assert await service.unread_count(4) == 5
    assert repo["count_unread"].await_count == 2


@pytest.mark.asyncio
async def test_mark_read_publishes_and_invalidates(repo, hub):
    await service.unread_count(4)
    subscription = hub.subscribe(notifications_channel(4))

    result = await service.mark_read(4, None)

    assert result == {"updated": 2}
    event = subscription.get_nowait()
    assert event["event"] == "notifications_read"
    assert event["payload"] == {"ids": None, "all": True, "updated": 2}
    assert get_query_client().state(("notifications", "unread", 4)).invalidated


@pytest.mark.asyncio
async def test_list_serializes_timestamps(repo):
    rows = await service.list_notifications(4, unread_only=True, limit=10)
    assert rows[0]["created_at"] == "2026-01-02T00:00:00+00:00"
    repo["list_for_user"].assert_awaited_once_with(4, unread_only=True, limit=10)
