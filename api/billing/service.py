"""
Subscription checkout, status sync, customer portal and webhook handling.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import HTTPException, status

from core import config
from core.errors import ConfigurationError, UpstreamError
from mailer import drip, resend_client, templates
from membership import tiers

from . import repository, stripe_client

logger = logging.getLogger(__name__)

TRIAL_PERIOD_DAYS = 14
PAYMENT_FAILED_AMOUNTS = {"elite": "$97"}
DEFAULT_PAYMENT_FAILED_AMOUNT = "$29"


def _from_epoch(value: Any) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat().replace("+00:00", "Z") if value is not None else None


def _origin(origin: str | None) -> str:
    return (origin or "").rstrip("/") or config.site_url()


def subscription_tier(subscription: dict[str, Any]) -> str | None:
    price = stripe_client.subscription_price(subscription)
    return tiers.tier_for_price(price.get("id")) or tiers.tier_for_product(price.get("product"))


def membership_status_for(stripe_status: str | None) -> str:
    if stripe_status == "trialing":
        return "trialing"
    if stripe_status == "past_due":
        return "past_due"
    if stripe_status in {"canceled", "unpaid"}:
        return "cancelled"
    return "active"


async def _live_subscriptions(customer_id: str) -> list[dict[str, Any]]:
    active = await stripe_client.list_subscriptions(customer=customer_id, status="active")
    trialing = await stripe_client.list_subscriptions(customer=customer_id, status="trialing")
    return active + trialing


async def create_checkout(user: dict, tier: str, origin: str | None, *, annual: bool = False) -> dict[str, str]:
    if tier not in tiers.CHECKOUT_TIERS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid tier: {tier}",
        )

    user_id = int(user["id"])
    email = str(user["email"])
    existing_tier: str | None = None
    has_existing_subscription = False

    customers = await stripe_client.list_customers(email=email, limit=1)
    if customers:
        customer_id = str(customers[0]["id"])
        subscriptions = await _live_subscriptions(customer_id)
        has_existing_subscription = bool(subscriptions)

        if has_existing_subscription:
            existing_tier = subscription_tier(subscriptions[0])
            if existing_tier == tier:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="You already have an active subscription for this tier. Please use the customer portal to manage it.",
                )
            # Upgrade or downgrade: the new checkout replaces the old plan.
            for subscription in subscriptions:
                await stripe_client.cancel_subscription(str(subscription["id"]), prorate=True)
                logger.info(
                    "subscription_cancelled_for_change subscription_id=%s from_tier=%s to_tier=%s",
                    subscription["id"],
                    existing_tier,
                    tier,
                )

        await repository.set_customer_id(user_id, customer_id, only_if_missing=True)
    else:
        customer = await stripe_client.create_customer(email=email, metadata={"user_id": str(user_id)})
        customer_id = str(customer["id"])
        await repository.set_customer_id(user_id, customer_id)
        logger.info("stripe_customer_created user_id=%s customer_id=%s", user_id, customer_id)

    base = _origin(origin)
    subscription_metadata = {"tier": tier, "user_id": str(user_id)}
    subscription_data: dict[str, Any] = {"metadata": subscription_metadata}
    if has_existing_subscription:
        subscription_metadata["upgraded_from"] = existing_tier or ""
    else:
        subscription_data["trial_period_days"] = TRIAL_PERIOD_DAYS

    session = await stripe_client.create_checkout_session(
        {
            "customer": customer_id,
            "line_items": [{"price": tiers.checkout_price_id(tier, annual=annual), "quantity": 1}],
            "mode": "subscription",
            "success_url": f"{base}/subscription-success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{base}/pricing",
            "metadata": {"user_id": str(user_id), "tier": tier, "upgraded_from": existing_tier or ""},
            "subscription_data": subscription_data,
        }
    )
    logger.info(
        "checkout_created session_id=%s tier=%s trial=%s upgraded_from=%s",
        session.get("id"),
        tier,
        not has_existing_subscription,
        existing_tier,
    )
    return {"url": str(session.get("url") or "")}


async def check_subscription(user: dict) -> dict[str, Any]:
    user_id = int(user["id"])
    customers = await stripe_client.list_customers(email=str(user["email"]), limit=1)
    if not customers:
        await repository.update_membership(user_id, tier="free", status="active", renews_at=None)
        return {"subscribed": False, "tier": "free", "subscription_end": None, "is_trialing": False, "trial_end": None}

    customer_id = str(customers[0]["id"])
    await repository.set_customer_id(user_id, customer_id)

    subscriptions = await stripe_client.list_subscriptions(customer=customer_id, limit=10)
    valid = [sub for sub in subscriptions if sub.get("status") in {"active", "trialing"}]

    tier = "free"
    subscription_end: datetime | None = None
    trial_end: datetime | None = None
    is_trialing = False
    highest = 0
    for subscription in valid:
        product_id = stripe_client.subscription_price(subscription).get("product")
        sub_tier = tiers.tier_for_product(product_id)
        if sub_tier is None:
            logger.warning("unknown_stripe_product product_id=%s user_id=%s", product_id, user_id)
            continue
        level = tiers.tier_level(sub_tier)
        if level > highest:
            highest = level
            tier = sub_tier
            subscription_end = _from_epoch(subscription.get("current_period_end"))
            is_trialing = subscription.get("status") == "trialing"
            trial_end = _from_epoch(subscription.get("trial_end"))

    membership_status = "trialing" if is_trialing else ("active" if valid else "expired")
    await repository.update_membership(user_id, tier=tier, status=membership_status, renews_at=subscription_end)
    logger.info("subscription_checked user_id=%s tier=%s status=%s", user_id, tier, membership_status)

    return {
        "subscribed": bool(valid),
        "tier": tier,
        "subscription_end": _iso(subscription_end),
        "is_trialing": is_trialing,
        "trial_end": _iso(trial_end),
    }


async def customer_portal(user: dict, origin: str | None) -> dict[str, str]:
    customer_id = user.get("stripe_customer_id")
    if not customer_id:
        customers = await stripe_client.list_customers(email=str(user["email"]), limit=1)
        customer_id = customers[0]["id"] if customers else None
    if not customer_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No billing account found for this user.",
        )
    session = await stripe_client.create_portal_session(
        customer=str(customer_id),
        return_url=f"{_origin(origin)}/settings",
    )
    return {"url": str(session.get("url") or "")}


async def _send_payment_failed_email(profile: dict) -> None:
    tier = str(profile.get("membership_tier") or "investor")
    amount = PAYMENT_FAILED_AMOUNTS.get(tier, DEFAULT_PAYMENT_FAILED_AMOUNT)
    subject, html = templates.payment_failed_email(
        name=profile.get("full_name") or "Member",
        tier=tier,
        amount=amount,
        base_url=config.site_url(),
    )
    await resend_client.send_email(str(profile["email"]), subject, html)


async def handle_event(event: dict[str, Any]) -> None:
    event_type = str(event.get("type") or "")
    obj = (event.get("data") or {}).get("object") or {}
    logger.info("stripe_event_received type=%s id=%s", event_type, event.get("id"))

    if event_type not in {
        "customer.subscription.created",
        "customer.subscription.updated",
        "customer.subscription.deleted",
        "invoice.payment_failed",
        "invoice.paid",
    }:
        logger.info("stripe_event_unhandled type=%s", event_type)
        return

    customer_id = stripe_client.customer_id_of(obj)
    if not customer_id:
        return
    profile = await repository.get_user_by_customer(customer_id)
    if profile is None:
        logger.info("stripe_event_unknown_customer type=%s customer_id=%s", event_type, customer_id)
        return
    user_id = int(profile["id"])

    if event_type in {"customer.subscription.created", "customer.subscription.updated"}:
        price_id = stripe_client.subscription_price(obj).get("id")
        tier = tiers.tier_for_price(price_id) or "investor"
        membership_status = membership_status_for(obj.get("status"))
        await repository.update_membership(
            user_id,
            tier=tier,
            status=membership_status,
            renews_at=_from_epoch(obj.get("current_period_end")),
        )
        logger.info("membership_updated user_id=%s tier=%s status=%s", user_id, tier, membership_status)
        if event_type == "customer.subscription.created" and tier == "investor":
            await drip.enqueue_sequence(user_id, "onboarding", "investor")

    elif event_type == "customer.subscription.deleted":
        await repository.update_membership(user_id, tier="free", status="cancelled", renews_at=None)
        logger.info("membership_downgraded user_id=%s", user_id)

    elif event_type == "invoice.payment_failed":
        await repository.set_membership_status(user_id, "past_due")
        if profile.get("email"):
            try:
                await _send_payment_failed_email(profile)
            except (ConfigurationError, UpstreamError) as exc:
                # The status change stands even when the email cannot go out.
                logger.warning("payment_failed_email_error user_id=%s error=%s", user_id, exc)
            else:
                logger.info("payment_failed_email_sent user_id=%s", user_id)

    elif event_type == "invoice.paid":
        if profile.get("membership_status") == "past_due":
            await repository.set_membership_status(user_id, "active")
            logger.info("membership_restored user_id=%s", user_id)
