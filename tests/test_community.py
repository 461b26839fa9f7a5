from datetime import date, timedelta
from unittest.mock import AsyncMock

import pytest

from community import badges, repository, service
from community.streaks import compute_streak
from realtime.hub import notifications_channel, streaks_channel

TODAY = date(2026, 5, 20)


def _days(count: int, end: date = TODAY) -> list[date]:
    return [end - timedelta(days=offset) for offset in range(count)]


def test_empty_history():
    streak = compute_streak([], TODAY)
    assert (streak.current, streak.longest, streak.last_active) == (0, 0, None)


def test_streak_ending_yesterday_still_counts():
    streak = compute_streak(_days(3, TODAY - timedelta(days=1)), TODAY)
    assert streak.current == 3


def test_gap_resets_current_but_keeps_longest():
    history = _days(5, TODAY - timedelta(days=10)) + [TODAY]
    streak = compute_streak(history, TODAY)
    assert streak.current == 1
    assert streak.longest == 5
    assert streak.as_dict()["last_active"] == "2026-05-20"


def test_duplicate_dates_are_ignored():
    assert compute_streak([TODAY, TODAY, TODAY - timedelta(days=1)], TODAY).current == 2


def test_streak_badges_earned():
    assert badges.streak_badges_earned(6) == []
    assert badges.streak_badges_earned(30) == ["streak_7", "streak_30"]
    assert len(badges.BADGE_DEFINITIONS) == 14


@pytest.fixture
def repo(monkeypatch):
    mocks = {
        "record_activity": AsyncMock(),
        "activity_dates": AsyncMock(return_value=_days(7)),
        "award_badge": AsyncMock(return_value=True),
        "list_badges": AsyncMock(return_value=[]),
    }
    for name, mock in mocks.items():
        monkeypatch.setattr(repository, name, mock)
    return mocks


@pytest.mark.asyncio
async def test_record_activity_awards_new_badges(repo, hub):
    streak_events = hub.subscribe(streaks_channel(3))
    notifications = hub.subscribe(notifications_channel(3))

    result = await service.record_activity(3, TODAY)

    repo["record_activity"].assert_awaited_once_with(3, TODAY)
    assert result["current_streak"] == 7
    assert result["badges_awarded"] == ["streak_7"]
    assert streak_events.get_nowait()["payload"]["current_streak"] == 7
    badge_event = notifications.get_nowait()
    assert badge_event["event"] == "badge_awarded"
    assert badge_event["payload"]["name"] == "7-Day Streak"


@pytest.mark.asyncio
async def test_record_activity_does_not_reannounce_badges(repo, hub):
    repo["award_badge"].return_value = False
    notifications = hub.subscribe(notifications_channel(3))

    result = await service.record_activity(3, TODAY)

    assert result["badges_awarded"] == []
    assert notifications.get_nowait() is None


@pytest.mark.asyncio
async def test_user_badges_skip_unknown_types(repo):
    repo["list_badges"].return_value = [{"badge_type": "streak_30"}, {"badge_type": "retired"}]

    result = await service.user_badges(3)

    assert [row["badge_type"] for row in result] == ["streak_30"]
    assert result[0]["definition"]["category"] == "streak"
