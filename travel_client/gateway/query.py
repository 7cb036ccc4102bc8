"""Filter and ordering primitives accepted by :meth:`RemoteGateway.select`.

Each filter knows how to render itself as PostgREST query parameters and how
to evaluate itself against a plain row mapping. The second form is what test
doubles use, so both sides of the wire agree on the semantics.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

__all__ = ["Eq", "Filter", "ILikeAny", "In", "Order", "row_matches"]


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quote(value: Any) -> str:
    """Quote a value for use inside a PostgREST list or ``or`` expression."""

    text = _render(value)
    if any(char in text for char in ',()."'):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


@dataclass(frozen=True, slots=True)
class Eq:
    """Exact, case-sensitive equality on one column."""

    column: str
    value: Any

    def to_params(self) -> list[tuple[str, str]]:
        return [(self.column, f"eq.{_render(self.value)}")]

    def matches(self, row: Mapping[str, Any]) -> bool:
        return row.get(self.column) == self.value


@dataclass(frozen=True, slots=True)
class In:
    """Column value must be one of ``values``."""

    column: str
    values: Sequence[Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", tuple(self.values))

    def to_params(self) -> list[tuple[str, str]]:
        joined = ",".join(_quote(value) for value in self.values)
        return [(self.column, f"in.({joined})")]

    def matches(self, row: Mapping[str, Any]) -> bool:
        return row.get(self.column) in self.values


@dataclass(frozen=True, slots=True)
class ILikeAny:
    """Case-insensitive substring match OR-combined across ``columns``."""

    columns: Sequence[str]
    term: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))

    def to_params(self) -> list[tuple[str, str]]:
        pattern = _quote(f"*{self.term}*")
        clauses = ",".join(f"{column}.ilike.{pattern}" for column in self.columns)
        return [("or", f"({clauses})")]

    def matches(self, row: Mapping[str, Any]) -> bool:
        needle = self.term.lower()
        for column in self.columns:
            value = row.get(column)
            if isinstance(value, str) and needle in value.lower():
                return True
        return False


Filter = Union[Eq, In, ILikeAny]


@dataclass(frozen=True, slots=True)
class Order:
    """Sort by one column, newest-first by default."""

    column: str
    ascending: bool = False

    def to_param(self) -> tuple[str, str]:
        direction = "asc" if self.ascending else "desc"
        return ("order", f"{self.column}.{direction}")


def row_matches(row: Mapping[str, Any], filters: Sequence[Filter]) -> bool:
    """Return ``True`` when ``row`` satisfies every filter (AND semantics)."""

    return all(item.matches(row) for item in filters)
