"""Rating statistics derived from review collections.

The module-level functions are pure and cheap enough to call on every change
of a review collection. :class:`RatingAggregator` adds the grouped mode used
after a bulk fetch across many attractions: ratings are bucketed by attraction
identifier once and the per-attraction mean is memoized until the next
grouping pass.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from travel_client.schemas.attraction import Attraction
from travel_client.schemas.review import STAR_VALUES, RatingSummary

__all__ = [
    "RatingAggregator",
    "average_rating",
    "distribution",
    "rating_share",
    "summarize",
]


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item[name]
    return getattr(item, name)


def _ratings(reviews: Iterable[Any]) -> list[int]:
    return [int(_field(review, "rating")) for review in reviews]


def _mean(ratings: Sequence[int]) -> float:
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


def _histogram(ratings: Iterable[int]) -> dict[int, int]:
    counts = {star: 0 for star in STAR_VALUES}
    for rating in ratings:
        if rating in counts:
            counts[rating] += 1
    return counts


def average_rating(reviews: Iterable[Any]) -> float:
    """Arithmetic mean of ``rating``; ``0.0`` for an empty collection."""

    return _mean(_ratings(reviews))


def distribution(reviews: Iterable[Any]) -> dict[int, int]:
    """Count per star value with every key from 1 to 5 present."""

    return _histogram(_ratings(reviews))


def rating_share(reviews: Iterable[Any], star: int) -> float:
    """Fraction of reviews carrying ``star``; ``0.0`` for an empty collection."""

    ratings = _ratings(reviews)
    if not ratings:
        return 0.0
    return sum(1 for rating in ratings if rating == star) / len(ratings)


def summarize(reviews: Iterable[Any]) -> RatingSummary:
    ratings = _ratings(reviews)
    return RatingSummary(
        average=_mean(ratings), count=len(ratings), distribution=_histogram(ratings)
    )


class RatingAggregator:
    """Per-attraction rating cache rebuilt by :meth:`group_ratings`."""

    def __init__(self) -> None:
        self._ratings: dict[str, list[int]] = {}
        self._means: dict[str, float] = {}

    def group_ratings(self, reviews: Iterable[Any]) -> None:
        """Replace the grouping with ``reviews`` bucketed by attraction identifier.

        Items may be review models or mappings; both need ``attraction_id``
        and ``rating``.
        """

        grouped: dict[str, list[int]] = {}
        for review in reviews:
            attraction_id = str(_field(review, "attraction_id"))
            grouped.setdefault(attraction_id, []).append(int(_field(review, "rating")))
        self._ratings = grouped
        self._means = {}

    @property
    def attraction_ids(self) -> frozenset[str]:
        return frozenset(self._ratings)

    def average_for(self, attraction_id: str) -> float:
        """Mean rating of one attraction from the last grouping pass."""

        cached = self._means.get(attraction_id)
        if cached is None:
            cached = _mean(self._ratings.get(attraction_id, []))
            self._means[attraction_id] = cached
        return cached

    def count_for(self, attraction_id: str) -> int:
        return len(self._ratings.get(attraction_id, []))

    def summary_for(self, attraction_id: str) -> RatingSummary:
        ratings = self._ratings.get(attraction_id, [])
        return RatingSummary(
            average=self.average_for(attraction_id),
            count=len(ratings),
            distribution=_histogram(ratings),
        )

    def overall_summary(self) -> RatingSummary:
        """Statistics across every grouped rating regardless of attraction."""

        everything = [rating for ratings in self._ratings.values() for rating in ratings]
        return RatingSummary(
            average=_mean(everything),
            count=len(everything),
            distribution=_histogram(everything),
        )

    def top_rated(
        self, attractions: Iterable[Attraction], limit: int | None = None
    ) -> list[Attraction]:
        """Order attractions by grouped mean, ties broken by review count then name."""

        ranked = sorted(
            attractions,
            key=lambda item: (-self.average_for(item.id), -self.count_for(item.id), item.name),
        )
        return ranked if limit is None else ranked[:limit]
