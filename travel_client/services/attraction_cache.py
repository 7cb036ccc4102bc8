"""Cached attraction results and the active user's favorites."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime

from travel_client.errors import GatewayError, ValidationError
from travel_client.gateway.protocol import RemoteGateway, Row
from travel_client.gateway.query import Eq, Filter, ILikeAny, In
from travel_client.schemas.attraction import Attraction, AttractionOrder, FavoriteEdge
from travel_client.services.observable import ChangeKind, ObservableService
from travel_client.services.rating_aggregator import RatingAggregator
from travel_client.settings import get_settings
from travel_client.utils.decoding import decode_rows

logger = logging.getLogger(__name__)

ATTRACTIONS_TABLE = "attractions"
FAVORITES_TABLE = "favorites"
SEARCH_COLUMNS = ("name", "description", "category", "subcategory")
FAVORITE_COLUMNS = "id,user_id,attraction_id,created_at"

_OLDEST = datetime.min.replace(tzinfo=UTC)


def _category_filters(category: str | None) -> list[Filter]:
    return [Eq("category", category)] if category else []


def _unique_by_id(attractions: Iterable[Attraction]) -> list[Attraction]:
    seen: set[str] = set()
    unique: list[Attraction] = []
    for attraction in attractions:
        if attraction.id not in seen:
            seen.add(attraction.id)
            unique.append(attraction)
    return unique


def _created_key(attraction: Attraction) -> datetime:
    created = attraction.created_at
    if created is None:
        return _OLDEST
    return created if created.tzinfo else created.replace(tzinfo=UTC)


class AttractionCache(ObservableService):
    """Owns the current attraction result set and the favorites list.

    Favorites are only ever changed after the backend confirmed the write, so
    ``is_favorite`` always reflects server-confirmed state. Callers that want
    an instant toggle flip their own UI state and revert it when
    :meth:`add_favorite` or :meth:`remove_favorite` returns ``False``.

    The favorites list belongs to the user it was last loaded or changed for;
    a favorites call for any other user starts from an empty list.
    """

    source_name = "attractions"

    def __init__(
        self,
        gateway: RemoteGateway,
        *,
        nearby_rpc_name: str | None = None,
    ) -> None:
        super().__init__()
        self._gateway = gateway
        self._nearby_rpc_name = nearby_rpc_name or get_settings().nearby_rpc_name
        self._attractions: list[Attraction] = []
        self._favorites: list[Attraction] = []
        self._favorites_owner: str | None = None

    # -- snapshots ------------------------------------------------------------

    @property
    def attractions(self) -> tuple[Attraction, ...]:
        return tuple(self._attractions)

    @property
    def favorites(self) -> tuple[Attraction, ...]:
        return tuple(self._favorites)

    def is_favorite(self, attraction_id: str) -> bool:
        return any(attraction.id == attraction_id for attraction in self._favorites)

    def get_attraction(self, attraction_id: str) -> Attraction | None:
        for attraction in (*self._attractions, *self._favorites):
            if attraction.id == attraction_id:
                return attraction
        return None

    def sorted_attractions(
        self,
        order: AttractionOrder,
        aggregator: RatingAggregator | None = None,
    ) -> list[Attraction]:
        """Return the cached attractions in one of the list sort orders.

        Rating based orders need an aggregator grouped over the same
        attractions; without one the cached order is kept.
        """

        items = list(self._attractions)
        if order is AttractionOrder.NEWEST:
            return sorted(items, key=_created_key, reverse=True)
        if aggregator is None:
            return items
        if order is AttractionOrder.TOP_RATED:
            return aggregator.top_rated(items)
        return sorted(
            items,
            key=lambda item: (
                -aggregator.count_for(item.id),
                -aggregator.average_for(item.id),
                item.name,
            ),
        )

    # -- attraction queries ---------------------------------------------------

    async def _replace_attractions(self, rows: list[Row]) -> None:
        decoded = _unique_by_id(decode_rows(rows, Attraction))
        async with self._lock:
            self._attractions = decoded
        logger.debug("Cached %d attraction(s)", len(decoded))
        self._notify(ChangeKind.ATTRACTIONS)

    async def fetch(self, category: str | None = None) -> list[Attraction]:
        """Load every attraction, optionally restricted to an exact category."""

        async with self.operation("fetch", prefix="Failed to fetch attractions"):
            rows = await self._gateway.select(
                ATTRACTIONS_TABLE, filters=_category_filters(category)
            )
            await self._replace_attractions(rows)
        return list(self._attractions)

    async def search(self, query: str, category: str | None = None) -> list[Attraction]:
        term = query.strip()
        if not term:
            return await self.fetch(category)
        async with self.operation("search", prefix="Failed to search attractions"):
            filters: list[Filter] = [ILikeAny(SEARCH_COLUMNS, term)]
            filters.extend(_category_filters(category))
            rows = await self._gateway.select(ATTRACTIONS_TABLE, filters=filters)
            await self._replace_attractions(rows)
        return list(self._attractions)

    async def fetch_nearby(
        self, latitude: float, longitude: float, radius_km: float
    ) -> list[Attraction]:
        """Load attractions within ``radius_km`` of a point.

        When the geographic lookup fails the unfiltered list is loaded
        instead, and only a failure of that fallback is reported.
        """

        fall_back = False
        async with self.operation("fetch_nearby", prefix="Failed to fetch nearby attractions"):
            if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
                raise ValidationError("Coordinates are out of range.")
            if radius_km <= 0:
                raise ValidationError("Search radius must be greater than zero.")
            try:
                rows = await self._gateway.rpc(
                    self._nearby_rpc_name,
                    {"lat": latitude, "lon": longitude, "radius_km": radius_km},
                )
            except GatewayError as exc:
                logger.warning(
                    "Nearby lookup failed, loading all attractions instead: %s", exc.message
                )
                fall_back = True
            else:
                await self._replace_attractions(rows)
        if fall_back:
            return await self.fetch()
        return list(self._attractions)

    # -- favorites ------------------------------------------------------------

    def _claim_favorites(self, user_id: str) -> bool:
        """Hand the favorites list to ``user_id``; True when another user's was dropped.

        Call with ``self._lock`` held.
        """

        if self._favorites_owner == user_id:
            return False
        dropped = bool(self._favorites)
        if dropped:
            logger.debug("Dropping favorites cached for a different user")
        self._favorites = []
        self._favorites_owner = user_id
        return dropped

    async def fetch_favorites(self, user_id: str) -> list[Attraction]:
        async with self.operation("fetch_favorites", prefix="Failed to fetch favorites"):
            if not user_id:
                raise ValidationError("You need to be logged in to see favorites.")
            rows = await self._gateway.select(
                FAVORITES_TABLE, columns=FAVORITE_COLUMNS, filters=[Eq("user_id", user_id)]
            )
            ids: list[str] = []
            for edge in decode_rows(rows, FavoriteEdge):
                if edge.user_id == user_id and edge.attraction_id not in ids:
                    ids.append(edge.attraction_id)

            favorites: list[Attraction] = []
            if ids:
                rows = await self._gateway.select(ATTRACTIONS_TABLE, filters=[In("id", ids)])
                by_id = {item.id: item for item in decode_rows(rows, Attraction)}
                favorites = [by_id[item_id] for item_id in ids if item_id in by_id]
            async with self._lock:
                self._favorites_owner = user_id
                self._favorites = favorites
            self._notify(ChangeKind.FAVORITES)
        return list(self._favorites)

    async def add_favorite(self, attraction_id: str, user_id: str) -> bool:
        async with self.operation("add_favorite", prefix="Failed to add to favorites") as outcome:
            if not attraction_id or not user_id:
                raise ValidationError("You need to be logged in to save favorites.")
            async with self._lock:
                dropped = self._claim_favorites(user_id)
            if dropped:
                self._notify(ChangeKind.FAVORITES)
            if self.is_favorite(attraction_id):
                logger.debug("Attraction %s is already a favorite", attraction_id)
                return True
            edge = FavoriteEdge(user_id=user_id, attraction_id=attraction_id)
            await self._gateway.insert(
                FAVORITES_TABLE, edge.model_dump(include={"user_id", "attraction_id"})
            )
            changed = False
            async with self._lock:
                attraction = next(
                    (item for item in self._attractions if item.id == attraction_id), None
                )
                if (
                    attraction is not None
                    and self._favorites_owner == user_id
                    and not self.is_favorite(attraction_id)
                ):
                    self._favorites.append(attraction)
                    changed = True
            if changed:
                self._notify(ChangeKind.FAVORITES)
        return outcome.succeeded

    async def remove_favorite(self, attraction_id: str, user_id: str) -> bool:
        async with self.operation(
            "remove_favorite", prefix="Failed to remove from favorites"
        ) as outcome:
            if not attraction_id or not user_id:
                raise ValidationError("You need to be logged in to change favorites.")
            await self._gateway.delete(
                FAVORITES_TABLE,
                filters=[Eq("user_id", user_id), Eq("attraction_id", attraction_id)],
            )
            async with self._lock:
                dropped = self._claim_favorites(user_id)
                before = len(self._favorites)
                self._favorites = [item for item in self._favorites if item.id != attraction_id]
                changed = dropped or len(self._favorites) != before
            if changed:
                self._notify(ChangeKind.FAVORITES)
        return outcome.succeeded

    def clear(self) -> None:
        """Forget cached results, e.g. after sign-out."""

        self._attractions = []
        self._favorites = []
        self._favorites_owner = None
        self._notify(ChangeKind.ATTRACTIONS)
        self._notify(ChangeKind.FAVORITES)


__all__ = ["ATTRACTIONS_TABLE", "FAVORITES_TABLE", "SEARCH_COLUMNS", "AttractionCache"]
