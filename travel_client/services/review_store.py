"""Reviews of the attraction currently on screen and the caller's own reviews.

The store holds one attraction's review collection at a time. Every
successful write is followed by a full re-fetch so the collection, the
own-review index and the derived :class:`RatingSummary` always come from the
same server response.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import Enum

from travel_client.errors import ValidationError
from travel_client.gateway.protocol import RemoteGateway, Row
from travel_client.gateway.query import Eq, In, Order
from travel_client.schemas.review import STAR_VALUES, RatingSummary, Review, ReviewDraft
from travel_client.services.observable import ChangeKind, ObservableService
from travel_client.services.rating_aggregator import RatingAggregator, summarize
from travel_client.utils.decoding import decode_rows

logger = logging.getLogger(__name__)

REVIEWS_TABLE = "reviews"
REVIEW_COLUMNS = "*, profiles(full_name)"
RATING_COLUMNS = "attraction_id,rating"

UserIdSource = Callable[[], str | None]


class LoadState(str, Enum):
    """Lifecycle of the loaded review collection."""

    EMPTY = "empty"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


def _rating_rows(rows: Iterable[Row]) -> list[Row]:
    """Keep rows carrying an attraction id and an in-range integer rating."""

    valid: list[Row] = []
    for row in rows:
        rating = row.get("rating") if isinstance(row, dict) else None
        attraction_id = row.get("attraction_id") if isinstance(row, dict) else None
        if attraction_id is None or isinstance(rating, bool) or rating not in STAR_VALUES:
            logger.warning("Skipping malformed rating row: %r", row)
            continue
        valid.append(row)
    return valid


class ReviewStore(ObservableService):
    """Review collection plus an own-review index keyed by attraction id."""

    source_name = "reviews"

    def __init__(
        self,
        gateway: RemoteGateway,
        *,
        current_user_id: UserIdSource | None = None,
    ) -> None:
        super().__init__()
        self._gateway = gateway
        self._current_user_id = current_user_id or (lambda: None)
        self._attraction_id: str | None = None
        self._reviews: list[Review] = []
        self._own_reviews: dict[str, Review] = {}
        self._load_state = LoadState.EMPTY
        self._version = 0
        self._summary_cache: tuple[int, RatingSummary] | None = None

    # -- snapshots ------------------------------------------------------------

    @property
    def attraction_id(self) -> str | None:
        return self._attraction_id

    @property
    def reviews(self) -> tuple[Review, ...]:
        return tuple(self._reviews)

    @property
    def load_state(self) -> LoadState:
        return self._load_state

    @property
    def version(self) -> int:
        """Incremented every time the review collection is replaced or edited."""

        return self._version

    @property
    def summary(self) -> RatingSummary:
        cached = self._summary_cache
        if cached is None or cached[0] != self._version:
            cached = (self._version, summarize(self._reviews))
            self._summary_cache = cached
        return cached[1]

    def user_has_reviewed(self, attraction_id: str) -> bool:
        return attraction_id in self._own_reviews

    def get_user_review(self, attraction_id: str) -> Review | None:
        return self._own_reviews.get(attraction_id)

    def _set_load_state(self, state: LoadState) -> None:
        if state is not self._load_state:
            self._load_state = state
            self._notify(ChangeKind.REVIEWS)

    # -- remote operations ----------------------------------------------------

    async def fetch_reviews(
        self, attraction_id: str, *, user_id: str | None = None
    ) -> list[Review]:
        """Load the reviews of ``attraction_id``, newest first.

        ``user_id`` identifies the own review; the session's user is used when
        it is omitted. A failed fetch keeps the previous collection.
        """

        self._set_load_state(LoadState.LOADING)
        async with self.operation("fetch_reviews", prefix="Failed to fetch reviews") as outcome:
            if not attraction_id:
                raise ValidationError("No attraction selected.")
            rows = await self._gateway.select(
                REVIEWS_TABLE,
                columns=REVIEW_COLUMNS,
                filters=[Eq("attraction_id", attraction_id)],
                order=Order("created_at", ascending=False),
            )
            reviews = decode_rows(rows, Review)
            owner = user_id or self._current_user_id()
            own = next(
                (review for review in reviews if owner and review.user_id == owner), None
            )
            async with self._lock:
                self._attraction_id = attraction_id
                self._reviews = reviews
                if own is not None:
                    self._own_reviews[attraction_id] = own
                else:
                    self._own_reviews.pop(attraction_id, None)
                self._version += 1
            logger.debug("Loaded %d review(s) for attraction %s", len(reviews), attraction_id)
            self._notify(ChangeKind.REVIEWS)
        self._set_load_state(LoadState.LOADED if outcome.succeeded else LoadState.ERROR)
        return list(self._reviews)

    async def add_or_update_review(
        self,
        attraction_id: str,
        user_id: str,
        rating: int,
        comment: str | None = None,
        images: list[str] | None = None,
    ) -> bool:
        """Create the caller's review, or rewrite it when one is already indexed."""

        async with self.operation("add_or_update_review", prefix="Failed to save review") as outcome:
            if rating not in STAR_VALUES:
                raise ValidationError("Please select a rating between 1 and 5 stars.")
            if not user_id:
                raise ValidationError("You need to be logged in to write a review.")
            if not attraction_id:
                raise ValidationError("No attraction selected.")
            draft = ReviewDraft(
                attraction_id=attraction_id,
                user_id=user_id,
                rating=rating,
                comment=comment,
                images=images,
            )
            existing = self._own_reviews.get(attraction_id)
            if existing is not None and existing.user_id == user_id:
                await self._gateway.update(
                    REVIEWS_TABLE,
                    draft.to_patch(),
                    filters=[Eq("id", existing.id), Eq("user_id", user_id)],
                )
                logger.info("Updated review %s", existing.id)
            else:
                await self._gateway.insert(REVIEWS_TABLE, draft.to_insert_row())
                logger.info("Created review for attraction %s", attraction_id)
        if outcome.succeeded:
            await self.fetch_reviews(attraction_id, user_id=user_id)
        return outcome.succeeded

    async def delete_review(self, review_id: str, user_id: str) -> bool:
        async with self.operation("delete_review", prefix="Failed to delete review") as outcome:
            if not review_id or not user_id:
                raise ValidationError("You can only delete your own reviews.")
            await self._gateway.delete(
                REVIEWS_TABLE, filters=[Eq("id", review_id), Eq("user_id", user_id)]
            )
            async with self._lock:
                self._reviews = [
                    review
                    for review in self._reviews
                    if not (review.id == review_id and review.user_id == user_id)
                ]
                self._own_reviews = {
                    key: review
                    for key, review in self._own_reviews.items()
                    if review.id != review_id
                }
                self._version += 1
            self._notify(ChangeKind.REVIEWS)
        return outcome.succeeded

    async def fetch_rating_index(
        self, attraction_ids: Iterable[str], aggregator: RatingAggregator
    ) -> bool:
        """Bulk-load ratings for many attractions into ``aggregator``."""

        async with self.operation(
            "fetch_rating_index", prefix="Failed to load ratings", track_loading=False
        ) as outcome:
            ids = list(dict.fromkeys(attraction_ids))
            rows: list[Row] = []
            if ids:
                rows = await self._gateway.select(
                    REVIEWS_TABLE, columns=RATING_COLUMNS, filters=[In("attraction_id", ids)]
                )
            aggregator.group_ratings(_rating_rows(rows))
        return outcome.succeeded

    def clear(self) -> None:
        """Drop everything cached, e.g. after sign-out."""

        self._attraction_id = None
        self._reviews = []
        self._own_reviews = {}
        self._version += 1
        self._notify(ChangeKind.REVIEWS)
        self._set_load_state(LoadState.EMPTY)


__all__ = ["LoadState", "REVIEWS_TABLE", "ReviewStore"]
