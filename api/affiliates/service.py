"""
Affiliate click tracking and signup attribution.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone

from fastapi import HTTPException, status

from auth import repository as auth_repository
from cache.tiered import get_cache
from core import config

from . import repository

logger = logging.getLogger(__name__)

CLICK_MAX_REQUESTS = 100
CLICK_WINDOW_S = 60
DUPLICATE_WINDOW = timedelta(hours=24)


def client_ip(headers: Mapping[str, str]) -> str:
    """
    Best-effort client address behind Cloudflare or a reverse proxy.
    """
    forwarded = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
    return (
        (headers.get("cf-connecting-ip") or "").strip()
        or forwarded
        or (headers.get("x-real-ip") or "").strip()
        or "unknown"
    )


def ip_hash_secret() -> str:
    return config.env_str("IP_HASH_SECRET")


def hash_ip(ip: str, secret: str | None = None) -> str:
    salted = ip + (ip_hash_secret() if secret is None else secret)
    return hashlib.sha256(salted.encode("utf-8")).hexdigest()[:32]


def _truncate(value: str | None, limit: int) -> str | None:
    return value[:limit] if value else None


def normalize_code(referral_code: str | None) -> str:
    return (referral_code or "").strip().upper()


async def track_click(
    referral_code: str | None,
    *,
    landing_page: str | None = None,
    referrer_url: str | None = None,
    user_agent: str | None = None,
    ip: str = "unknown",
    country_code: str | None = None,
) -> dict:
    limit = await get_cache().check_rate_limit(ip, "track-affiliate-click", CLICK_MAX_REQUESTS, CLICK_WINDOW_S)
    if not limit.allowed:
        logger.warning("affiliate_click_rate_limited ip=%s", ip)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please try again later.",
            headers={"Retry-After": str(limit.retry_after or CLICK_WINDOW_S)},
        )

    code = normalize_code(referral_code)
    if not code:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No referral code provided")

    affiliate = await repository.get_approved_by_code(code)
    if affiliate is None:
        logger.info("affiliate_code_unknown code=%s", code)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid referral code")

    affiliate_id = int(affiliate["id"])
    ip_hash = hash_ip(ip)
    since = datetime.now(timezone.utc) - DUPLICATE_WINDOW
    if await repository.has_recent_click(affiliate_id, ip_hash, since):
        logger.info("affiliate_click_duplicate affiliate_id=%s", affiliate_id)
        return {"success": True, "duplicate": True}

    await repository.insert_click(
        affiliate_id=affiliate_id,
        ip_hash=ip_hash,
        user_agent=_truncate(user_agent, 500),
        referrer_url=_truncate(referrer_url, 1000),
        landing_page=_truncate(landing_page, 1000),
        country_code=_truncate(country_code, 2),
    )
    logger.info("affiliate_click_recorded affiliate_id=%s", affiliate_id)
    return {"success": True}


async def attribute_signup(user_id: int, referral_code: str) -> bool:
    """
    Link a new user to the approved affiliate owning `referral_code`.

    Unknown codes and self-referrals are ignored so registration never fails
    because of a bad link.
    """
    code = normalize_code(referral_code)
    if not code:
        return False

    affiliate = await repository.get_approved_by_code(code)
    if affiliate is None:
        logger.info("referral_code_ignored user_id=%s code=%s", user_id, code)
        return False
    if affiliate.get("user_id") is not None and int(affiliate["user_id"]) == user_id:
        logger.info("self_referral_ignored user_id=%s", user_id)
        return False

    affiliate_id = int(affiliate["id"])
    await auth_repository.set_referred_by(user_id, affiliate_id)
    created = await repository.insert_referral(affiliate_id, user_id)
    logger.info("signup_attributed user_id=%s affiliate_id=%s created=%s", user_id, affiliate_id, created)
    return created


async def stats(user_id: int) -> dict:
    affiliate = await repository.get_by_user(user_id)
    if affiliate is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="You are not an affiliate.")
    counts = await repository.referral_counts(int(affiliate["id"]))
    return {
        "referral_code": affiliate["referral_code"],
        "status": affiliate["status"],
        "referral_link": f"{config.site_url()}?ref={affiliate['referral_code']}",
        **counts,
    }
