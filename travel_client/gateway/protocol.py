"""Contract the client state layer expects from the hosted backend."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from travel_client.gateway.query import Filter, Order
from travel_client.schemas.session import Session, SessionUser, SignUpResult

Row = dict[str, Any]


@runtime_checkable
class RemoteGateway(Protocol):
    """Minimal backend surface required by the client components.

    Every method may raise a :class:`travel_client.errors.GatewayError`
    subclass; none of them is expected to raise anything else for remote
    failures.
    """

    # -- authentication -------------------------------------------------------

    async def get_session(self) -> Session | None:
        """Return the current session, refreshing it when close to expiry."""

    async def sign_in(self, email: str, password: str) -> Session:
        """Exchange credentials for a session."""

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> SignUpResult:
        """Register a user; the session is absent while email confirmation is pending."""

    async def sign_out(self) -> None:
        """Revoke the current session."""

    async def reset_password_for_email(self, email: str) -> None:
        """Send a password recovery email."""

    async def update_user(
        self,
        *,
        metadata: dict[str, Any] | None = None,
        password: str | None = None,
    ) -> SessionUser:
        """Update metadata and/or password of the signed-in user."""

    # -- query and mutation ---------------------------------------------------

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        order: Order | None = None,
    ) -> list[Row]:
        """Return rows matching every filter."""

    async def insert(self, table: str, row: Row) -> list[Row]:
        """Insert a row and return its stored representation."""

    async def update(
        self, table: str, patch: Row, *, filters: Sequence[Filter]
    ) -> list[Row]:
        """Apply ``patch`` to matching rows and return them."""

    async def delete(self, table: str, *, filters: Sequence[Filter]) -> list[Row]:
        """Delete matching rows and return what was removed."""

    async def rpc(self, name: str, params: dict[str, Any]) -> list[Row]:
        """Call a remote procedure returning table-shaped rows."""

    # -- storage --------------------------------------------------------------

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str
    ) -> str:
        """Store an object and return its key."""

    def get_public_url(self, bucket: str, path: str) -> str:
        """Return the public URL of a stored object."""

    async def remove(self, bucket: str, paths: Sequence[str]) -> None:
        """Delete stored objects."""


__all__ = ["RemoteGateway", "Row"]
