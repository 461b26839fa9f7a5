from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

import main
from auth import dependencies as auth_dependencies
from cache import service as cache_service
from cache.offline import OfflineStore
from cache.remote import RateLimitResult
from cache.tiered import get_cache
from mailer import resend_client
from membership import view_limits

MEMBER = {"id": 1, "email": "m@example.com", "role": "member", "membership_tier": "free"}


@pytest.fixture
def client():
    # No `with`: the lifespan (database pool, scheduler) is not started.
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


def _login_as(user: dict) -> None:
    main.app.dependency_overrides[auth_dependencies.get_current_user] = lambda: user


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/auth/me"),
        ("get", "/notifications"),
        ("post", "/billing/subscription"),
        ("get", "/community/streak"),
        ("get", "/affiliates/me"),
    ],
)
def test_protected_routes_require_a_token(client, method, path):
    resp = getattr(client, method)(path)
    assert resp.status_code == 401


def test_admin_routes_reject_members(client):
    _login_as(MEMBER)
    assert client.get("/cache/stats").status_code == 403
    assert client.post("/emails/drip/process").status_code == 403


def test_tier_gate(client):
    _login_as(MEMBER)
    resp = client.post("/meetings/signature", json={"meeting_number": "123456789", "role": 0})
    assert resp.status_code == 403
    assert resp.json() == {"error": "Investor membership required."}


def test_webhook_without_signature(client, monkeypatch):
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "whsec_test")
    resp = client.post("/billing/webhook", content=b"{}")
    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing signature"}


def test_cached_data_headers(client, monkeypatch):
    monkeypatch.setattr(cache_service, "cached_data", AsyncMock(return_value=({"rows": []}, True, 900)))

    resp = client.post("/cached-data", json={"dataType": "areaBenchmarks"})

    assert resp.json() == {"data": {"rows": []}, "fromCache": True}
    assert resp.headers["X-Cache-TTL"] == "900"
    assert resp.headers["X-Data-Type"] == "areaBenchmarks"
    assert "Authorization" in [value.strip() for value in resp.headers["Vary"].split(",")]
    assert resp.headers["X-Request-ID"].startswith("req_")


def test_contact_is_rate_limited(client, monkeypatch):
    blocked = RateLimitResult(allowed=False, remaining=0, reset_at=0, retry_after=42)
    monkeypatch.setattr(get_cache(), "check_rate_limit", AsyncMock(return_value=blocked))

    resp = client.post(
        "/emails/contact",
        json={"name": "Ana", "email": "ana@example.com", "subject": "Hi", "message": "Hello"},
    )

    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "42"


def test_contact_sends_inquiry_and_receipt(client, monkeypatch):
    send = AsyncMock(side_effect=["em_admin", resend_client.ResendError("sandbox", status_code=403)])
    monkeypatch.setattr(resend_client, "send_email", send)

    resp = client.post(
        "/emails/contact",
        json={"name": "Ana Diaz", "email": "ana@example.com", "subject": "Hi", "message": "Hello"},
    )

    assert resp.json() == {"success": True, "id": "em_admin"}
    assert send.await_args_list[0].kwargs["reply_to"] == "ana@example.com"
    assert send.await_args_list[1].args[0] == "ana@example.com"


def test_anonymous_property_views(client, monkeypatch, tmp_path):
    monkeypatch.setattr(view_limits, "_tracker", view_limits.PropertyViewTracker(OfflineStore(tmp_path / "views.json")))

    resp = client.post("/properties/p1/view", headers={"x-client-fingerprint": "device-1"})

    body = resp.json()
    assert resp.status_code == 200
    assert body["property_id"] == "p1"


def test_cache_gc_runs_without_the_scheduler(monkeypatch):
    monkeypatch.delenv("ENABLE_SCHEDULER", raising=False)
    assert [job.name for job in main._scheduled_jobs()] == ["cache_gc"]

    monkeypatch.setenv("ENABLE_SCHEDULER", "true")
    assert [job.name for job in main._scheduled_jobs()] == ["cache_gc", "drip", "digest"]
