"""
Daily activity streaks.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class Streak:
    current: int
    longest: int
    last_active: date | None

    def as_dict(self) -> dict:
        return {
            "current_streak": self.current,
            "longest_streak": self.longest,
            "last_active": self.last_active.isoformat() if self.last_active else None,
        }


def compute_streak(activity_dates: Iterable[date], today: date) -> Streak:
    """
    The current streak counts consecutive active days ending today, or ending
    yesterday when today has no activity yet. Any older gap resets it to 0.
    """
    days = sorted(set(activity_dates))
    if not days:
        return Streak(current=0, longest=0, last_active=None)

    longest = run = 1
    for previous, day in zip(days, days[1:]):
        run = run + 1 if day - previous == ONE_DAY else 1
        longest = max(longest, run)

    active = set(days)
    anchor = today if today in active else today - ONE_DAY
    current = 0
    while anchor in active:
        current += 1
        anchor -= ONE_DAY

    return Streak(current=current, longest=longest, last_active=days[-1])
