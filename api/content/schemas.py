"""
Content generation API schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class NeighborhoodContentRequest(BaseModel):
    neighborhoodName: str = Field(..., min_length=1, max_length=100)
    lifestyleType: str | None = Field(default=None, max_length=50)
    isFreehold: bool = False
    hasMetro: bool = False
    hasBeach: bool = False


class PropertyDescriptionRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    area: str = Field(..., min_length=1, max_length=100)
    property_type: str | None = Field(default=None, max_length=50)
    bedrooms: int | None = Field(default=None, ge=0, le=20)
    size_sqft: float | None = Field(default=None, gt=0)
    price_aed: float | None = Field(default=None, gt=0)
    completion_status: str | None = Field(default=None, max_length=20)
    developer: str | None = Field(default=None, max_length=100)
    amenities: list[str] = Field(default_factory=list, max_length=20)
    notes: str | None = Field(default=None, max_length=1000)
