"""Shared plumbing for components whose state the UI observes.

:class:`ObservableService` gives each component the same small surface:
listeners subscribe to :class:`StateChange` notifications, a transient loading
flag is raised for the duration of every tracked call, and the last failure is
kept as a display string. The :meth:`ObservableService.operation` context
manager is the component boundary where gateway errors stop propagating.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from travel_client.errors import GatewayError, to_operation_error
from travel_client.schemas.error import OperationError

logger = logging.getLogger(__name__)

__all__ = [
    "ChangeKind",
    "Listener",
    "ObservableService",
    "OperationOutcome",
    "StateChange",
]


class ChangeKind(str, Enum):
    """Which part of a component's state changed."""

    SESSION = "session"
    ATTRACTIONS = "attractions"
    FAVORITES = "favorites"
    REVIEWS = "reviews"
    LOADING = "loading"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class StateChange:
    source: str
    kind: ChangeKind


Listener = Callable[[StateChange], None]


@dataclass(slots=True)
class OperationOutcome:
    """Filled in by :meth:`ObservableService.operation` once the block exits."""

    error: GatewayError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class ObservableService:
    """Base class exposing notifications, a loading flag and the last error.

    Subclasses mutate their cached collections only while holding
    ``self._lock`` so two overlapping calls cannot interleave partial updates.
    """

    source_name: ClassVar[str] = "service"

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._in_flight = 0
        self._last_error: OperationError | None = None
        self._lock = asyncio.Lock()

    # -- observation ----------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it again."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, kind: ChangeKind) -> None:
        change = StateChange(source=self.source_name, kind=kind)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception(
                    "Listener %r failed while handling %s change", listener, kind.value
                )

    # -- loading and error state ---------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    @property
    def error(self) -> str | None:
        return self._last_error.message if self._last_error is not None else None

    @property
    def last_error(self) -> OperationError | None:
        return self._last_error

    def _begin_loading(self) -> None:
        self._in_flight += 1
        if self._in_flight == 1:
            self._notify(ChangeKind.LOADING)

    def _end_loading(self) -> None:
        self._in_flight = max(0, self._in_flight - 1)
        if self._in_flight == 0:
            self._notify(ChangeKind.LOADING)

    def _clear_error(self) -> None:
        if self._last_error is not None:
            self._last_error = None
            self._notify(ChangeKind.ERROR)

    def _record_error(
        self, exc: GatewayError, *, prefix: str | None, operation: str
    ) -> None:
        self._last_error = to_operation_error(exc, prefix=prefix, operation=operation)
        self._notify(ChangeKind.ERROR)

    @asynccontextmanager
    async def operation(
        self,
        name: str,
        *,
        prefix: str | None = None,
        track_loading: bool = True,
    ) -> AsyncIterator[OperationOutcome]:
        """Run one public operation inside the component boundary.

        The previous error is cleared on entry. A :class:`GatewayError` raised
        inside the block is logged, recorded as the last error and suppressed;
        the yielded :class:`OperationOutcome` tells the caller whether the
        block completed. Any other exception propagates unchanged.
        """

        self._clear_error()
        if track_loading:
            self._begin_loading()
        outcome = OperationOutcome()
        try:
            yield outcome
        except GatewayError as exc:
            logger.warning(
                "%s.%s failed (%s): %s",
                self.source_name,
                name,
                exc.error_type.value,
                exc.message,
            )
            outcome.error = exc
            self._record_error(exc, prefix=prefix, operation=name)
        finally:
            if track_loading:
                self._end_loading()
