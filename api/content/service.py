"""
AI-generated marketing copy for neighborhoods and listings.

Inputs are sanitised and screened for prompt injection before they reach the
model. Validated responses are cached for a week keyed by a hash of the
inputs, so regenerating the same page is free.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, status

from cache import policy
from cache.tiered import get_cache
from core import ai_gateway, sanitize

from . import prompts

logger = logging.getLogger(__name__)

AI_MAX_REQUESTS = 20
AI_WINDOW_S = 3600


async def enforce_ai_rate_limit(user_id: int | str) -> None:
    limit = await get_cache().check_rate_limit(str(user_id), "ai-content", AI_MAX_REQUESTS, AI_WINDOW_S)
    if not limit.allowed:
        logger.warning("ai_rate_limited user_id=%s", user_id)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many AI requests. Please try again later.",
            headers={"Retry-After": str(limit.retry_after or AI_WINDOW_S)},
        )


def _reject_injection(*values: str) -> None:
    if any(sanitize.detect_prompt_injection(value) for value in values):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid input detected.")


def _parse(raw: str) -> dict:
    try:
        parsed = ai_gateway.extract_json(raw)
    except ValueError as exc:
        logger.error("ai_parse_failed error=%s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to parse AI response as JSON",
        ) from exc
    if not isinstance(parsed, dict):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Invalid response structure from AI")
    return parsed


def _require_fields(parsed: dict, text_fields: tuple[str, ...], list_fields: tuple[str, ...]) -> None:
    valid = all(isinstance(parsed.get(f), str) and parsed[f].strip() for f in text_fields) and all(
        isinstance(parsed.get(f), list) for f in list_fields
    )
    if not valid:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Invalid response structure from AI")


async def _generate_cached(kind: str, params: dict[str, Any], system_prompt: str, user_prompt: str, validate) -> dict:
    key = policy.ai_response(policy.ai_response_hash({"kind": kind, **params}))

    async def _fetch() -> dict:
        raw = await ai_gateway.chat_text(system_prompt, user_prompt)
        parsed = _parse(raw)
        validate(parsed)
        logger.info("ai_content_generated kind=%s", kind)
        return parsed

    return await get_cache().get_or_fetch(key, _fetch, policy.CacheTTL.WEEK)


async def neighborhood_content(
    name: str,
    lifestyle_type: str | None = None,
    *,
    is_freehold: bool = False,
    has_metro: bool = False,
    has_beach: bool = False,
) -> dict:
    clean_name = sanitize.sanitize_for_ai(name, sanitize.NAME_MAX)
    clean_lifestyle = sanitize.sanitize_for_ai(lifestyle_type, 50) or "mixed"
    if not clean_name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="neighborhoodName is required")
    _reject_injection(clean_name, clean_lifestyle)

    params = {
        "name": clean_name,
        "lifestyle": clean_lifestyle,
        "freehold": is_freehold,
        "metro": has_metro,
        "beach": has_beach,
    }
    return await _generate_cached(
        "neighborhood",
        params,
        prompts.neighborhood_system_prompt(),
        prompts.neighborhood_user_prompt(
            clean_name,
            clean_lifestyle,
            is_freehold=is_freehold,
            has_metro=has_metro,
            has_beach=has_beach,
        ),
        lambda parsed: _require_fields(parsed, ("overview",), ("pros", "cons", "best_for")),
    )


async def property_description(
    *,
    title: str,
    area: str,
    property_type: str | None = None,
    bedrooms: int | None = None,
    size_sqft: float | None = None,
    price_aed: float | None = None,
    completion_status: str | None = None,
    developer: str | None = None,
    amenities: list[str] | None = None,
    notes: str | None = None,
) -> dict:
    details = {
        "title": sanitize.sanitize_for_ai(title, sanitize.SHORT_TEXT_MAX),
        "area": sanitize.sanitize_for_ai(area, sanitize.NAME_MAX),
        "property_type": sanitize.sanitize_for_ai(property_type, 50),
        "bedrooms": "Studio" if bedrooms == 0 else (str(bedrooms) if bedrooms is not None else ""),
        "size_sqft": f"{size_sqft:,.0f}" if size_sqft else "",
        "price_aed": f"AED {price_aed:,.0f}" if price_aed else "",
        "completion_status": sanitize.sanitize_for_ai(completion_status, 20),
        "developer": sanitize.sanitize_for_ai(developer, sanitize.NAME_MAX),
        "amenities": ", ".join(sanitize.sanitize_for_ai(a, 50) for a in (amenities or []) if a),
        "notes": sanitize.sanitize_for_ai(notes, 1000),
    }
    _reject_injection(*details.values())

    return await _generate_cached(
        "property",
        details,
        prompts.property_system_prompt(),
        prompts.property_user_prompt(details),
        lambda parsed: _require_fields(parsed, ("headline", "description"), ("highlights",)),
    )
