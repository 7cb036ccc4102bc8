"""Pydantic models shared across the client state layer."""

from .attraction import Attraction, AttractionOrder, FavoriteEdge
from .error import ErrorType, OperationError
from .review import (
    MAX_RATING,
    MIN_RATING,
    STAR_VALUES,
    RatingSummary,
    Review,
    ReviewDraft,
)
from .session import Session, SessionUser, SignUpResult

__all__ = [
    "Attraction",
    "AttractionOrder",
    "ErrorType",
    "FavoriteEdge",
    "MAX_RATING",
    "MIN_RATING",
    "OperationError",
    "RatingSummary",
    "Review",
    "ReviewDraft",
    "STAR_VALUES",
    "Session",
    "SessionUser",
    "SignUpResult",
]
