"""Pydantic schemas for points of interest and favorite relationships."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Attraction(BaseModel):
    """Read-only cache entry for a point of interest."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(..., min_length=1, description="Primary key from the attractions table")
    name: str = Field(..., description="Display name")
    description: str = Field("", description="Long-form description")
    category: str = Field(..., description="Top-level category, e.g. Beaches")
    subcategory: str | None = Field(None, description="Optional finer-grained category")
    address: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    image_urls: list[str] = Field(
        default_factory=list,
        description="Ordered image references; the first one is the cover image.",
    )
    price_level: int | None = Field(
        None, ge=1, le=4, description="Price tier from 1 ($) to 4 ($$$$)."
    )
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("image_urls", mode="before")
    @classmethod
    def _coerce_images(cls, value: object) -> object:
        """Treat a ``null`` column as an empty image list."""

        return [] if value is None else value

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match across the searchable text columns."""

        needle = query.strip().lower()
        if not needle:
            return True
        haystacks = (self.name, self.description, self.category, self.subcategory or "")
        return any(needle in value.lower() for value in haystacks)


class FavoriteEdge(BaseModel):
    """Bookmark relationship between one user and one attraction."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str | None = None
    user_id: str = Field(..., min_length=1)
    attraction_id: str = Field(..., min_length=1)
    created_at: datetime | None = None


class AttractionOrder(str, Enum):
    """Sort options offered next to the attraction list."""

    TOP_RATED = "top_rated"
    NEWEST = "newest"
    POPULAR = "popular"
