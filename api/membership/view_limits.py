"""
Property view limits for anonymous and free viewers.

Each viewer has an ordered list of property ids they opened. The position of
a property in that list decides how much of it they may see:

- anonymous: 5 full views, then 3 partial views, then blocked
- free: 20 full views, then 10 partial views, then blocked
- paid tiers: always full, nothing tracked

A property keeps the access level it had when first viewed.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from cache.offline import OfflineStore

from . import tiers

logger = logging.getLogger(__name__)

ANONYMOUS_STORAGE_KEY = "anonymous_property_views"
FREE_TIER_STORAGE_KEY_PREFIX = "free_tier_property_views_"
REMAINING_BADGE_THRESHOLD = 5

FULL = "full"
PARTIAL = "partial"
BLOCKED = "blocked"


@dataclass(frozen=True)
class ViewLimit:
    full: float
    partial: float

    @property
    def total(self) -> float:
        return self.full + self.partial


VIEW_LIMITS: dict[str, ViewLimit] = {
    "anonymous": ViewLimit(full=5, partial=3),
    "free": ViewLimit(full=20, partial=10),
    "investor": ViewLimit(full=math.inf, partial=math.inf),
    "elite": ViewLimit(full=math.inf, partial=math.inf),
    "private": ViewLimit(full=math.inf, partial=math.inf),
}


def viewer_tier(user: dict | None) -> str:
    if not user:
        return "anonymous"
    tier = tiers.normalize_tier(user.get("membership_tier"))
    return tier if tiers.is_paid(tier) else "free"


def _level_at(position: int, limit: ViewLimit) -> str:
    if position < limit.full:
        return FULL
    if position < limit.total:
        return PARTIAL
    return BLOCKED


def access_level(tier: str, viewed_ids: list[str], property_id: str | None = None) -> str:
    if tiers.is_paid(tier):
        return FULL
    limit = VIEW_LIMITS[tier]
    if property_id is not None and property_id in viewed_ids:
        return _level_at(viewed_ids.index(property_id), limit)
    return _level_at(len(viewed_ids), limit)


def summarize(tier: str, viewed_ids: list[str]) -> dict[str, Any]:
    limit = VIEW_LIMITS[tier]
    paid = tiers.is_paid(tier)
    count = len(viewed_ids)
    remaining_full = max(0, limit.full - count)
    remaining_partial = max(0, limit.total - count)
    return {
        "user_tier": tier,
        "is_paid_member": paid,
        "view_count": count,
        "remaining_full": None if math.isinf(remaining_full) else int(remaining_full),
        "remaining_partial": None if math.isinf(remaining_partial) else int(remaining_partial),
        "has_reached_limit": not paid and count >= limit.total,
        "show_remaining_badge": not paid and 0 < remaining_full <= REMAINING_BADGE_THRESHOLD,
        "access_level": access_level(tier, viewed_ids),
    }


class PropertyViewTracker:
    def __init__(self, store: OfflineStore | None = None) -> None:
        self.store = store or OfflineStore()

    @staticmethod
    def storage_key(tier: str, *, user_id: int | str | None = None, fingerprint: str | None = None) -> str | None:
        if tiers.is_paid(tier):
            return None
        if tier == "anonymous":
            return f"{ANONYMOUS_STORAGE_KEY}:{fingerprint or 'unknown'}"
        return f"{FREE_TIER_STORAGE_KEY_PREFIX}{user_id}"

    def viewed(self, key: str | None) -> list[str]:
        if key is None:
            return []
        stored = self.store.get(key)
        if not isinstance(stored, list):
            if stored is not None:
                # Unreadable entries are dropped, not trusted.
                self.store.delete(key)
            return []
        return [str(item) for item in stored]

    def track_view(self, tier: str, key: str | None, property_id: str) -> str:
        """
        Record a view and return the access level the viewer gets for it.
        Re-viewing a property does not count again; blocked views are not
        recorded.
        """
        viewed_ids = self.viewed(key)
        level = access_level(tier, viewed_ids, property_id)
        if key is None or property_id in viewed_ids or level == BLOCKED:
            return level
        viewed_ids.append(property_id)
        self.store.set(key, viewed_ids)
        logger.debug("property_view_tracked key=%s count=%s level=%s", key, len(viewed_ids), level)
        return level

    def summary(self, tier: str, key: str | None) -> dict[str, Any]:
        return summarize(tier, self.viewed(key))


_tracker: PropertyViewTracker | None = None


def get_tracker() -> PropertyViewTracker:
    global _tracker
    if _tracker is None:
        _tracker = PropertyViewTracker()
    return _tracker
