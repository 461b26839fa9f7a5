"""
Notification API schemas.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class NotificationCreate(BaseModel):
    user_id: int
    type: str = Field(..., min_length=1, max_length=50)
    title: str = Field(..., min_length=1, max_length=200)
    body: str | None = Field(default=None, max_length=2000)
    link: str | None = Field(default=None, max_length=500)
    metadata: dict[str, Any] = Field(default_factory=dict)


class MarkReadRequest(BaseModel):
    # None marks every notification as read.
    ids: list[int] | None = None
