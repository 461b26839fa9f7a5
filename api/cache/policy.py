"""
Cache TTLs, key builders and per-data-type query policies.

Server TTLs govern the shared Redis layer, client TTLs the in-process local
layer, and stale/gc times the query client.
"""

from __future__ import annotations

import json
import string
from dataclasses import dataclass
from typing import Any


class CacheTTL:
    """TTL presets in seconds."""

    SHORT = 60
    MEDIUM = 300
    LONG = 900
    VERY_LONG = 3600
    DAY = 86400
    WEEK = 604800


LOCAL_TTL_AFTER_REMOTE_HIT = 60
DEFAULT_TTL = CacheTTL.MEDIUM

BASE36_DIGITS = string.digits + string.ascii_lowercase


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def hash_string(value: str) -> str:
    """
    Short, stable hash for cache keys (32-bit rolling hash, base 36).

    Works over UTF-16 code units so keys match the ones browser clients
    compute for the same input.
    """
    h = 0
    data = value.encode("utf-16-le")
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = ((h << 5) - h + code) & 0xFFFFFFFF
        if h >= 0x80000000:
            h -= 0x100000000
    return to_base36(abs(h))


def ai_response_hash(params: dict[str, Any]) -> str:
    normalized = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    return hash_string(normalized)


# Key builders.
def area_benchmarks(area: str) -> str:
    return f"benchmarks:{area.lower()}"


def market_stats(area: str) -> str:
    return f"market-stats:{area.lower()}"


def property_details(property_id: str) -> str:
    return f"property:{property_id}"


def developer_projects(developer_id: str) -> str:
    return f"developer:{developer_id}:projects"


def ai_response(digest: str) -> str:
    return f"ai:response:{digest}"


def user_profile(user_id: int | str) -> str:
    return f"user:profile:{user_id}"


def user_preferences(user_id: int | str) -> str:
    return f"user:prefs:{user_id}"


def rate_limit(identifier: str, endpoint: str) -> str:
    return f"ratelimit:{endpoint}:{identifier}"


def news_page(page: int) -> str:
    return f"news:page:{page}"


def digest(date: str) -> str:
    return f"digest:{date}"


def search_results(query: str) -> str:
    return f"search:{hash_string(query)}"


def geocode(query: str) -> str:
    return f"geocode:{hash_string(query)}"


@dataclass(frozen=True)
class QueryPolicy:
    server_ttl: int
    client_ttl: int
    stale_time: float
    gc_time: float


DATA_TYPE_POLICIES: dict[str, QueryPolicy] = {
    "propertyCounts": QueryPolicy(300, CacheTTL.MEDIUM, 5 * 60, 10 * 60),
    "areaBenchmarks": QueryPolicy(900, CacheTTL.LONG, 15 * 60, 30 * 60),
    "statusCounts": QueryPolicy(120, CacheTTL.SHORT, 2 * 60, 5 * 60),
    "listingCounts": QueryPolicy(300, CacheTTL.MEDIUM, 5 * 60, 10 * 60),
    "activeAgents": QueryPolicy(600, CacheTTL.MEDIUM, 10 * 60, 20 * 60),
    "marketStats": QueryPolicy(900, CacheTTL.LONG, 15 * 60, 30 * 60),
    "propertiesWithCounts": QueryPolicy(120, CacheTTL.SHORT, 2 * 60, 5 * 60),
}

DEFAULT_POLICY = QueryPolicy(DEFAULT_TTL, CacheTTL.MEDIUM, 5 * 60, 10 * 60)


def policy_for(data_type: str) -> QueryPolicy:
    return DATA_TYPE_POLICIES.get(data_type, DEFAULT_POLICY)


def cached_data_key(data_type: str, params: dict[str, Any] | None) -> str:
    encoded = json.dumps(params or {}, sort_keys=True, separators=(",", ":"), default=str)
    return f"cache:{data_type}:{encoded}"
