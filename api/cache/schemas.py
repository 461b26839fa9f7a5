"""
Cache API schemas.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CachedDataRequest(BaseModel):
    dataType: str = Field(..., min_length=1, max_length=100)
    params: dict[str, Any] | None = None


class CacheOperationRequest(BaseModel):
    operation: str | None = Field(default=None, max_length=20)
    key: str | None = Field(default=None, max_length=500)
    value: Any = None
    ttl: int | None = Field(default=None, ge=1)
    maxRequests: int | None = Field(default=None, ge=1)
    windowSeconds: int | None = Field(default=None, ge=1)
