"""
Affiliate API schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ClickRequest(BaseModel):
    referral_code: str | None = Field(default=None, max_length=64)
    landing_page: str | None = None
    referrer_url: str | None = None
    user_agent: str | None = None
