"""Remote Data Gateway: the contract, its query primitives and the HTTP client."""

from .protocol import RemoteGateway, Row
from .query import Eq, Filter, ILikeAny, In, Order, row_matches
from .rest import RestGateway

__all__ = [
    "Eq",
    "Filter",
    "ILikeAny",
    "In",
    "Order",
    "RemoteGateway",
    "RestGateway",
    "Row",
    "row_matches",
]
