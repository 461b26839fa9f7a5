"""
Meeting API schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class SignatureRequest(BaseModel):
    meeting_number: str = Field(..., min_length=1, max_length=32)
    role: int = Field(default=0, ge=0, le=1)


class SignatureResponse(BaseModel):
    signature: str
    sdkKey: str
