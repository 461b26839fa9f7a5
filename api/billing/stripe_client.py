"""
Minimal Stripe REST client (httpx).

Only the calls the billing flows need. Request bodies use Stripe's
form encoding for nested params:

    {"metadata": {"user_id": "1"}, "line_items": [{"price": "p", "quantity": 1}]}
    -> metadata[user_id]=1&line_items[0][price]=p&line_items[0][quantity]=1
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from core import config
from core.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

STRIPE_API_VERSION = "2025-08-27.basil"


def stripe_api_url() -> str:
    return config.env_str("STRIPE_API_URL", "https://api.stripe.com").rstrip("/")


def stripe_secret_key() -> str:
    key = config.env_str("STRIPE_SECRET_KEY")
    if not key:
        raise ConfigurationError("STRIPE_SECRET_KEY is not set")
    return key


def stripe_timeout_s() -> float:
    return config.env_float("STRIPE_TIMEOUT_S", 20.0)


def encode_form(params: dict[str, Any], prefix: str = "") -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            pairs.extend(encode_form(value, name))
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                item_name = f"{name}[{index}]"
                if isinstance(item, dict):
                    pairs.extend(encode_form(item, item_name))
                else:
                    pairs.append((item_name, _scalar(item)))
        else:
            pairs.append((name, _scalar(value)))
    return pairs


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


async def _request(method: str, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    headers = {
        "Authorization": f"Bearer {stripe_secret_key()}",
        "Stripe-Version": STRIPE_API_VERSION,
    }
    encoded = encode_form(params or {})

    async with httpx.AsyncClient(base_url=stripe_api_url(), timeout=stripe_timeout_s()) as client:
        if method == "GET":
            resp = await client.get(path, params=encoded, headers=headers)
        else:
            resp = await client.request(method, path, data=dict(encoded) if encoded else None, headers=headers)

    if resp.status_code >= 400:
        message = resp.text[:500]
        try:
            message = resp.json().get("error", {}).get("message") or message
        except ValueError:
            pass
        logger.warning("stripe_request_failed method=%s path=%s status=%s", method, path, resp.status_code)
        raise UpstreamError("stripe", f"Stripe error: {message}", status_code=resp.status_code)

    return resp.json()


async def list_customers(*, email: str, limit: int = 1) -> list[dict[str, Any]]:
    data = await _request("GET", "/v1/customers", {"email": email, "limit": limit})
    return list(data.get("data") or [])


async def create_customer(*, email: str, metadata: dict[str, str] | None = None) -> dict[str, Any]:
    return await _request("POST", "/v1/customers", {"email": email, "metadata": metadata or {}})


async def list_subscriptions(
    *,
    customer: str,
    status: str | None = None,
    limit: int = 10,
) -> list[dict[str, Any]]:
    data = await _request(
        "GET",
        "/v1/subscriptions",
        {"customer": customer, "status": status, "limit": limit},
    )
    return list(data.get("data") or [])


async def cancel_subscription(subscription_id: str, *, prorate: bool = True) -> dict[str, Any]:
    return await _request("DELETE", f"/v1/subscriptions/{subscription_id}", {"prorate": prorate})


async def create_checkout_session(params: dict[str, Any]) -> dict[str, Any]:
    return await _request("POST", "/v1/checkout/sessions", params)


async def create_portal_session(*, customer: str, return_url: str) -> dict[str, Any]:
    return await _request(
        "POST",
        "/v1/billing_portal/sessions",
        {"customer": customer, "return_url": return_url},
    )


def subscription_price(subscription: dict[str, Any]) -> dict[str, Any]:
    items = (subscription.get("items") or {}).get("data") or []
    if not items:
        return {}
    return items[0].get("price") or {}


def customer_id_of(obj: dict[str, Any]) -> str | None:
    customer = obj.get("customer")
    if isinstance(customer, dict):
        return customer.get("id")
    return customer or None
