from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi import HTTPException

from core.errors import ConfigurationError
from mailer import drip, repository, resend_client, templates

ENTRY = {"id": 5, "user_id": 3, "email_key": "welcome_day0", "email_type": "welcome", "target_tier": "free"}
PROFILE = {"email": "sam@example.com", "full_name": "Sam Lee", "membership_tier": "free", "notify_email_digest": True}


@pytest.fixture
def repo(monkeypatch):
    mocks = {
        "get_queue_entry": AsyncMock(return_value=dict(ENTRY)),
        "get_recipient": AsyncMock(return_value=dict(PROFILE)),
        "mark_entry": AsyncMock(),
        "due_entry_ids": AsyncMock(return_value=[]),
        "active_sequences": AsyncMock(return_value=[]),
        "enqueue": AsyncMock(return_value=True),
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(repository, name, mock)
    return mocks


@pytest.fixture
def sender(monkeypatch):
    send = AsyncMock(return_value="em_1")
    monkeypatch.setattr(resend_client, "send_email", send)
    return send


def test_templates_escape_user_values():
    subject, body = templates.contact_email(
        name="<script>x</script>",
        email="a@b.co",
        subject="Hi & bye",
        message="line",
        base_url="https://app.test",
        phone="+971",
    )
    assert subject == "New Contact Form: Hi & bye"
    assert "<script>" not in body
    assert "&lt;script&gt;" in body
    assert "Hi &amp; bye" in body
    assert "+971" in body


def test_first_name_defaults():
    assert templates.first_name("Sam Lee") == "Sam"
    assert templates.first_name("  ") == "Investor"
    assert templates.first_name(None) == "Investor"


def test_render_drip_unknown_key():
    assert templates.render_drip("nope", "Sam", "https://app.test") is None
    subject, body = templates.render_drip("welcome_day1", "<b>", "https://app.test")
    assert subject == "Your 5-Step Dubai Investment Roadmap"
    assert "&lt;b&gt;, here's your roadmap" in body


def test_notification_email_prefix_and_cta():
    subject, body = templates.notification_email("message", "New message", "hi", "/inbox", base_url="https://app.test")
    assert subject == "💬 New message"
    assert "https://app.test/inbox" in body
    assert "View Message" in body


@pytest.mark.asyncio
async def test_send_email_posts_payload(monkeypatch, mock_http):
    monkeypatch.setenv("RESEND_API_KEY", "re_test")
    requests = mock_http(lambda request: httpx.Response(200, json={"id": "em_9"}))

    email_id = await resend_client.send_email("to@example.com", "Hello", "<p>x</p>", reply_to="r@example.com")

    assert email_id == "em_9"
    assert requests[0].url.path == "/emails"
    assert requests[0].headers["Authorization"] == "Bearer re_test"
    assert b'"reply_to":"r@example.com"' in requests[0].content.replace(b" ", b"")


@pytest.mark.asyncio
async def test_send_email_requires_key(monkeypatch):
    monkeypatch.delenv("RESEND_API_KEY", raising=False)
    with pytest.raises(ConfigurationError):
        await resend_client.send_email("to@example.com", "Hello", "<p>x</p>")


@pytest.mark.asyncio
async def test_send_email_error_detects_test_mode(monkeypatch, mock_http):
    monkeypatch.setenv("RESEND_API_KEY", "re_test")
    mock_http(
        lambda request: httpx.Response(
            403,
            json={"name": "validation_error", "message": "You can only send testing emails to your own address."},
        )
    )

    with pytest.raises(resend_client.ResendError) as excinfo:
        await resend_client.send_email("to@example.com", "Hello", "<p>x</p>")

    assert excinfo.value.status_code == 403
    assert excinfo.value.is_test_mode_rejection


@pytest.mark.asyncio
async def test_drip_missing_entry_is_404(repo, sender):
    repo["get_queue_entry"].return_value = None
    with pytest.raises(HTTPException) as excinfo:
        await drip.send_drip_email(5)
    assert excinfo.value.status_code == 404


@pytest.mark.asyncio
async def test_drip_sends_and_marks_sent(repo, sender):
    result = await drip.send_drip_email(5)

    assert result == {"success": True, "email_key": "welcome_day0"}
    assert sender.await_args.args[0] == "sam@example.com"
    repo["mark_entry"].assert_awaited_once_with(5, status="sent", sent=True)


@pytest.mark.asyncio
async def test_drip_skips_missing_profile(repo, sender):
    repo["get_recipient"].return_value = None
    result = await drip.send_drip_email(5)
    assert result["reason"] == "profile_not_found"
    repo["mark_entry"].assert_awaited_once_with(5, status="skipped", error_message="Profile not found")
    sender.assert_not_awaited()


@pytest.mark.asyncio
async def test_drip_skips_unsubscribed(repo, sender):
    repo["get_recipient"].return_value = {**PROFILE, "notify_email_digest": False}
    result = await drip.send_drip_email(5)
    assert result["reason"] == "unsubscribed"
    sender.assert_not_awaited()


@pytest.mark.asyncio
async def test_drip_skips_upgrade_mail_for_paid_members(repo, sender):
    repo["get_queue_entry"].return_value = {**ENTRY, "email_key": "welcome_day7", "email_type": "upgrade"}
    repo["get_recipient"].return_value = {**PROFILE, "membership_tier": "investor"}

    result = await drip.send_drip_email(5)

    assert result["reason"] == "already_upgraded"
    sender.assert_not_awaited()


@pytest.mark.asyncio
async def test_drip_unknown_template_fails(repo, sender):
    repo["get_queue_entry"].return_value = {**ENTRY, "email_key": "missing"}
    result = await drip.send_drip_email(5)
    assert result["reason"] == "template_not_found"
    repo["mark_entry"].assert_awaited_once_with(5, status="failed", error_message="Template not found")


@pytest.mark.asyncio
async def test_drip_test_mode_rejection_counts_as_sent(repo, sender):
    sender.side_effect = resend_client.ResendError(
        "You can only send testing emails to your own address.", name="validation_error", status_code=403
    )

    result = await drip.send_drip_email(5)

    assert result == {"success": True, "test_mode": True}
    repo["mark_entry"].assert_awaited_once_with(5, status="sent", error_message=drip.TEST_MODE_NOTE, sent=True)


@pytest.mark.asyncio
async def test_drip_provider_error_marks_failed_and_raises(repo, sender):
    sender.side_effect = resend_client.ResendError("boom", status_code=500)

    with pytest.raises(resend_client.ResendError):
        await drip.send_drip_email(5)

    repo["mark_entry"].assert_awaited_once_with(5, status="failed", error_message="boom")


@pytest.mark.asyncio
async def test_process_due_counts_outcomes(repo, monkeypatch):
    repo["due_entry_ids"].return_value = [1, 2, 3, 4]
    results = {
        1: {"success": True},
        2: {"success": False, "reason": "unsubscribed"},
        3: {"success": False, "reason": "template_not_found"},
    }

    async def fake_send(queue_id):
        if queue_id == 4:
            raise RuntimeError("db down")
        return results[queue_id]

    monkeypatch.setattr(drip, "send_drip_email", fake_send)

    assert await drip.process_due(10) == {"processed": 4, "sent": 1, "skipped": 1, "failed": 2}


@pytest.mark.asyncio
async def test_enqueue_sequence_counts_new_rows(repo):
    repo["active_sequences"].return_value = [{"id": 1, "delay_days": 0}, {"id": 2, "delay_days": 7}]
    repo["enqueue"].side_effect = [True, False]

    assert await drip.enqueue_sequence(3, "onboarding", "investor") == 1
    repo["enqueue"].assert_any_await(3, 2, 7)
