"""Fixtures shared by the client component tests."""

from __future__ import annotations

from typing import Any

import pytest

from tests.travel_client.support.in_memory_gateway import InMemoryGateway
from tests.travel_client.support.rows import attraction_row


@pytest.fixture
def attraction_rows() -> list[dict[str, Any]]:
    """A small catalogue spread across categories and two cities."""

    return [
        attraction_row(
            "a-corniche",
            "Corniche Beach",
            "Beaches",
            description="Long sandy seafront",
            latitude=21.543,
            longitude=39.172,
            created_at="2024-03-01T00:00:00+00:00",
        ),
        attraction_row(
            "a-albalad",
            "Al-Balad",
            "Historical Sites",
            description="Old town with coral stone houses",
            subcategory="Heritage",
            latitude=21.485,
            longitude=39.187,
            created_at="2024-01-15T00:00:00+00:00",
        ),
        attraction_row(
            "a-mall",
            "Red Sea Mall",
            "Shopping",
            description="Large mall near the beach road",
            latitude=21.627,
            longitude=39.110,
            created_at="2024-02-10T00:00:00+00:00",
        ),
        attraction_row(
            "a-diriyah",
            "Diriyah",
            "Historical Sites",
            description="UNESCO site outside Riyadh",
            latitude=24.734,
            longitude=46.575,
            created_at="2023-12-01T00:00:00+00:00",
        ),
        attraction_row(
            "a-lowercase",
            "Silver Sands",
            "beaches",
            description="Quiet cove",
            created_at="2024-04-01T00:00:00+00:00",
        ),
    ]


@pytest.fixture
def gateway(attraction_rows: list[dict[str, Any]]) -> InMemoryGateway:
    backend = InMemoryGateway()
    backend.seed("attractions", *attraction_rows)
    return backend
