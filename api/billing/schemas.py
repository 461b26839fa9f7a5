"""
Billing API schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CheckoutRequest(BaseModel):
    tier: str = Field(..., min_length=1, max_length=20)
    annual: bool = False


class UrlResponse(BaseModel):
    url: str


class SubscriptionResponse(BaseModel):
    subscribed: bool
    tier: str
    subscription_end: str | None = None
    is_trialing: bool = False
    trial_end: str | None = None
