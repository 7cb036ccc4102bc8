"""Composition root wiring the gateway into the client components.

Nothing here is a process-wide singleton: :func:`build_client` constructs a
fresh gateway (unless one is injected) and passes it to each component.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from travel_client.gateway.protocol import RemoteGateway
from travel_client.gateway.rest import RestGateway
from travel_client.services.attraction_cache import AttractionCache
from travel_client.services.observable import ChangeKind, StateChange
from travel_client.services.rating_aggregator import RatingAggregator
from travel_client.services.review_store import ReviewStore
from travel_client.services.session_monitor import SessionMonitor
from travel_client.settings import ClientSettings, get_settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: ClientSettings | None = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level_numeric, format=LOG_FORMAT)


def validate_environment(settings: ClientSettings | None = None) -> list[str]:
    """Log a warning block for unset configuration and return the warnings."""

    warnings = (settings or get_settings()).optional_config_warnings()
    if warnings:
        logger.warning("=" * 60)
        logger.warning("Environment Configuration Warnings:")
        for warning in warnings:
            logger.warning("  • %s", warning)
        logger.warning("=" * 60)
    return warnings


@dataclass
class TravelClient:
    """Every client component sharing one gateway."""

    gateway: RemoteGateway
    session: SessionMonitor
    attractions: AttractionCache
    reviews: ReviewStore
    ratings: RatingAggregator = field(default_factory=RatingAggregator)

    def __post_init__(self) -> None:
        self._user_id = self.session.user_id
        self._unsubscribe = self.session.subscribe(self._on_session_change)

    def _on_session_change(self, change: StateChange) -> None:
        if change.kind is not ChangeKind.SESSION:
            return
        user_id = self.session.user_id
        if user_id == self._user_id:
            return
        if self._user_id is not None:
            logger.debug("Signed-in user changed; clearing cached user state")
            self.attractions.clear()
            self.reviews.clear()
        self._user_id = user_id

    async def start(self) -> None:
        await self.session.start()

    async def aclose(self) -> None:
        await self.session.stop()
        self._unsubscribe()
        close = getattr(self.gateway, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> TravelClient:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def build_client(
    settings: ClientSettings | None = None,
    gateway: RemoteGateway | None = None,
) -> TravelClient:
    """Construct a :class:`TravelClient`; the REST gateway is used by default."""

    settings = settings or get_settings()
    if gateway is None:
        gateway = RestGateway(settings)
    session = SessionMonitor(gateway, poll_interval=settings.session_poll_interval_seconds)
    return TravelClient(
        gateway=gateway,
        session=session,
        attractions=AttractionCache(gateway, nearby_rpc_name=settings.nearby_rpc_name),
        reviews=ReviewStore(gateway, current_user_id=lambda: session.user_id),
    )


__all__ = ["LOG_FORMAT", "TravelClient", "build_client", "configure_logging", "validate_environment"]
