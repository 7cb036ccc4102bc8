"""Row builders matching the backend's table shapes."""

from __future__ import annotations

from typing import Any


def attraction_row(
    attraction_id: str,
    name: str,
    category: str,
    *,
    description: str = "",
    subcategory: str | None = None,
    latitude: float | None = None,
    longitude: float | None = None,
    created_at: str = "2024-01-01T00:00:00+00:00",
) -> dict[str, Any]:
    return {
        "id": attraction_id,
        "name": name,
        "description": description,
        "category": category,
        "subcategory": subcategory,
        "address": None,
        "latitude": latitude,
        "longitude": longitude,
        "image_urls": None,
        "price_level": 2,
        "created_at": created_at,
        "updated_at": created_at,
    }


def review_row(
    review_id: str,
    attraction_id: str,
    user_id: str,
    rating: int,
    *,
    comment: str | None = None,
    created_at: str = "2024-05-01T00:00:00+00:00",
) -> dict[str, Any]:
    return {
        "id": review_id,
        "attraction_id": attraction_id,
        "user_id": user_id,
        "rating": rating,
        "comment": comment,
        "images": None,
        "created_at": created_at,
    }
