"""Pydantic schemas for reviews and the rating summary derived from them."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MIN_RATING = 1
MAX_RATING = 5
STAR_VALUES: tuple[int, ...] = tuple(range(MIN_RATING, MAX_RATING + 1))


class Review(BaseModel):
    """Review row as returned by the reviews table joined with the author profile."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(..., min_length=1)
    attraction_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1, description="Author identifier")
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING)
    comment: str | None = None
    images: list[str] | None = None
    created_at: datetime
    user_name: str | None = Field(
        None, description="Author display name resolved from the profiles join."
    )

    @model_validator(mode="before")
    @classmethod
    def _lift_profile(cls, data: Any) -> Any:
        """Flatten the nested ``profiles`` join into ``user_name``."""

        if not isinstance(data, dict) or "profiles" not in data:
            return data
        row = dict(data)
        profile = row.pop("profiles")
        if isinstance(profile, dict) and row.get("user_name") is None:
            full_name = profile.get("full_name")
            if isinstance(full_name, str):
                row["user_name"] = full_name
        return row


class ReviewDraft(BaseModel):
    """Normalized payload for inserting or updating a review.

    Empty comments and image lists are stored as absent values rather than
    empty strings or empty arrays.
    """

    attraction_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING)
    comment: str | None = None
    images: list[str] | None = None

    @field_validator("comment")
    @classmethod
    def _blank_comment_to_none(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return value

    @field_validator("images")
    @classmethod
    def _empty_images_to_none(cls, value: list[str] | None) -> list[str] | None:
        if not value:
            return None
        return list(value)

    def to_insert_row(self) -> dict[str, Any]:
        return self.model_dump()

    def to_patch(self) -> dict[str, Any]:
        """Fields rewritten when the author edits an existing review."""

        return {"rating": self.rating, "comment": self.comment, "images": self.images}


class RatingSummary(BaseModel):
    """Derived mean and per-star counts; never persisted remotely."""

    average: float = Field(0.0, ge=0.0, le=float(MAX_RATING))
    count: int = Field(0, ge=0)
    distribution: dict[int, int] = Field(
        default_factory=lambda: {star: 0 for star in STAR_VALUES}
    )
