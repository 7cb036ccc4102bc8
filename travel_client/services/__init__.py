"""Client components observed by the UI."""

from .attraction_cache import AttractionCache
from .observable import ChangeKind, ObservableService, OperationOutcome, StateChange
from .rating_aggregator import (
    RatingAggregator,
    average_rating,
    distribution,
    rating_share,
    summarize,
)
from .review_store import LoadState, ReviewStore
from .session_monitor import SessionMonitor

__all__ = [
    "AttractionCache",
    "ChangeKind",
    "LoadState",
    "ObservableService",
    "OperationOutcome",
    "RatingAggregator",
    "ReviewStore",
    "SessionMonitor",
    "StateChange",
    "average_rating",
    "distribution",
    "rating_share",
    "summarize",
]
