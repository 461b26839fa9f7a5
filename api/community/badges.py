"""
Badge catalogue.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class BadgeDefinition:
    type: str
    name: str
    description: str
    category: str

    def as_dict(self) -> dict:
        return asdict(self)


BADGE_DEFINITIONS: tuple[BadgeDefinition, ...] = (
    BadgeDefinition("first_post", "First Post", "Created your first community post", "achievement"),
    BadgeDefinition("conversation_starter", "Conversation Starter", "Created 10 community posts", "achievement"),
    BadgeDefinition("helpful_member", "Helpful Member", "Received 25 upvotes", "achievement"),
    BadgeDefinition("top_contributor", "Top Contributor", "Received 100 upvotes", "achievement"),
    BadgeDefinition("dubai_expert", "Dubai Expert", "50 posts with upvotes", "achievement"),
    BadgeDefinition("community_helper", "Community Helper", "Made 50 comments", "achievement"),
    BadgeDefinition("founding_member", "Founding Member", "Early community member", "achievement"),
    BadgeDefinition("elite_member", "Elite Member", "Elite membership tier", "achievement"),
    BadgeDefinition("verified_investor", "Verified Investor", "Verified property investor", "expertise"),
    BadgeDefinition("verified_agent", "Licensed Agent", "Verified RERA license", "expertise"),
    BadgeDefinition("verified_developer", "Certified Developer", "Verified developer", "expertise"),
    BadgeDefinition("streak_7", "7-Day Streak", "7 consecutive active days", "streak"),
    BadgeDefinition("streak_30", "30-Day Streak", "30 consecutive active days", "streak"),
    BadgeDefinition("streak_100", "100-Day Streak", "100 consecutive active days", "streak"),
)

BADGES_BY_TYPE = {badge.type: badge for badge in BADGE_DEFINITIONS}

# Streak length -> badge type, ascending.
STREAK_BADGES = ((7, "streak_7"), (30, "streak_30"), (100, "streak_100"))


def get_definition(badge_type: str) -> BadgeDefinition | None:
    return BADGES_BY_TYPE.get(badge_type)


def streak_badges_earned(current_streak: int) -> list[str]:
    return [badge_type for days, badge_type in STREAK_BADGES if current_streak >= days]
