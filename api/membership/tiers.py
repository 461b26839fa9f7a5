"""
Membership tiers, plans and feature gating.
"""

from __future__ import annotations

from dataclasses import dataclass, field

TIER_LEVELS: dict[str, int] = {
    "free": 0,
    "investor": 1,
    "elite": 2,
    "private": 3,
}

PAID_TIERS = frozenset({"investor", "elite", "private"})
CHECKOUT_TIERS = frozenset({"investor", "elite"})


@dataclass(frozen=True)
class MembershipTier:
    id: str
    name: str
    monthly_price: int
    annual_price: int | None = None
    product_id: str | None = None
    price_id: str | None = None
    annual_price_id: str | None = None
    description: str = ""
    features: tuple[str, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "level": TIER_LEVELS[self.id],
            "monthly_price": self.monthly_price,
            "annual_price": self.annual_price,
            "product_id": self.product_id,
            "price_id": self.price_id,
            "annual_price_id": self.annual_price_id,
            "description": self.description,
            "features": list(self.features),
        }


PLANS: dict[str, MembershipTier] = {
    "free": MembershipTier(
        id="free",
        name="Free",
        monthly_price=0,
        description="Get started with basic insights and community access.",
        features=(
            "Limited market reports",
            "Basic community access",
            "Property listings browser",
            "Newsletter & updates",
        ),
    ),
    "investor": MembershipTier(
        id="investor",
        name="Dubai Investor",
        monthly_price=29,
        annual_price=290,
        product_id="prod_ThxMtreIVfefZK",
        price_id="price_1Sbv2KHVQx2jO318h20jYHWa",
        annual_price_id="price_1ShQ9DHVQx2jO318EopokNIq",
        description="Full access to education, tools, and community for serious investors.",
        features=(
            "Full Academy access",
            "Investment calculators with AI analysis",
            "Property comparison and favorites",
            "Core community channels and member directory",
            "Direct messaging with connections",
            "Monthly market reports",
            "Live investor events",
        ),
    ),
    "elite": MembershipTier(
        id="elite",
        name="Dubai Elite Investor",
        monthly_price=97,
        annual_price=970,
        product_id="prod_ThxMsDNaQxY8bp",
        price_id="price_1Sbv2UHVQx2jO318S54njLC4",
        annual_price_id="price_1ShQ9OHVQx2jO318x9l7kYEV",
        description="Priority access, advanced AI, and elite networking for serious wealth builders.",
        features=(
            "Everything in Dubai Investor",
            "AI neighborhood and property analysis",
            "Golden Visa wizard",
            "Portfolio tracking dashboard",
            "Elite-only Deal Room",
            "Weekly market intelligence reports",
        ),
    ),
    "private": MembershipTier(
        id="private",
        name="Private Office",
        monthly_price=0,
        product_id="prod_ThxN30jXTwBfoE",
        description="Invitation-only advisory for family offices and HNWIs.",
        features=("Everything in Elite", "Dedicated advisor"),
    ),
}

# Current and legacy product ids; legacy subscribers keep their tier.
PRODUCT_TO_TIER: dict[str, str] = {
    "prod_ThxMtreIVfefZK": "investor",
    "prod_ThxMsDNaQxY8bp": "elite",
    "prod_ThxN30jXTwBfoE": "private",
    "prod_TZ38QBXp8kGx7k": "investor",
    "prod_TZ38flxttNDJ5W": "elite",
}

PRICE_TO_TIER: dict[str, str] = {
    plan.price_id: plan.id for plan in PLANS.values() if plan.price_id
} | {
    plan.annual_price_id: plan.id for plan in PLANS.values() if plan.annual_price_id
}

FEATURES: dict[str, str] = {
    "property_browser": "free",
    "basic_community": "free",
    "academy": "investor",
    "calculators": "investor",
    "ai_calculator_analysis": "investor",
    "property_comparison": "investor",
    "saved_properties": "investor",
    "off_plan_browser": "investor",
    "member_directory": "investor",
    "direct_messaging": "investor",
    "ai_assistant": "investor",
    "live_events": "investor",
    "pdf_export": "investor",
    "monthly_reports": "investor",
    "ai_property_analysis": "elite",
    "ai_neighborhood_content": "elite",
    "ai_dashboard_insights": "elite",
    "golden_visa_wizard": "elite",
    "portfolio_dashboard": "elite",
    "deal_room": "elite",
    "priority_off_plan": "elite",
    "weekly_intelligence": "elite",
    "expert_consultation": "elite",
    "dedicated_advisor": "private",
}


def normalize_tier(tier: str | None) -> str:
    value = (tier or "").strip().lower()
    return value if value in TIER_LEVELS else "free"


def tier_level(tier: str | None) -> int:
    return TIER_LEVELS[normalize_tier(tier)]


def has_tier(current: str | None, required: str) -> bool:
    return tier_level(current) >= tier_level(required)


def is_paid(tier: str | None) -> bool:
    return normalize_tier(tier) in PAID_TIERS


def tier_for_price(price_id: str | None) -> str | None:
    return PRICE_TO_TIER.get(price_id or "")


def tier_for_product(product_id: str | None) -> str | None:
    return PRODUCT_TO_TIER.get(product_id or "")


def checkout_price_id(tier: str, *, annual: bool = False) -> str | None:
    plan = PLANS.get(tier)
    if plan is None:
        return None
    return plan.annual_price_id if annual else plan.price_id


def has_feature(tier: str | None, feature: str) -> bool:
    required = FEATURES.get(feature)
    if required is None:
        return False
    return has_tier(tier, required)


def features_for(tier: str | None) -> list[str]:
    return sorted(feature for feature in FEATURES if has_feature(tier, feature))
