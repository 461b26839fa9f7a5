"""
Community streaks and badges.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from realtime.hub import get_hub, notifications_channel, streaks_channel

from . import badges, repository
from .streaks import Streak, compute_streak

logger = logging.getLogger(__name__)


def _today() -> date:
    return datetime.now(timezone.utc).date()


async def get_streak(user_id: int, today: date | None = None) -> Streak:
    return compute_streak(await repository.activity_dates(user_id), today or _today())


async def record_activity(user_id: int, today: date | None = None) -> dict:
    """
    Mark `today` as active, recompute the streak and award any streak badge
    reached for the first time.
    """
    today = today or _today()
    await repository.record_activity(user_id, today)
    streak = await get_streak(user_id, today)

    awarded: list[str] = []
    for badge_type in badges.streak_badges_earned(streak.current):
        if await repository.award_badge(user_id, badge_type, {"streak": streak.current}):
            awarded.append(badge_type)

    hub = get_hub()
    hub.publish(streaks_channel(user_id), "streak_updated", streak.as_dict())
    for badge_type in awarded:
        definition = badges.get_definition(badge_type)
        hub.publish(
            notifications_channel(user_id),
            "badge_awarded",
            {"badge_type": badge_type, **(definition.as_dict() if definition else {})},
        )
        logger.info("badge_awarded user_id=%s badge=%s", user_id, badge_type)

    return {**streak.as_dict(), "badges_awarded": awarded}


async def user_badges(user_id: int) -> list[dict]:
    rows = await repository.list_badges(user_id)
    result = []
    for row in rows:
        definition = badges.get_definition(str(row["badge_type"]))
        if definition is None:
            continue
        result.append({**row, "definition": definition.as_dict()})
    return result
