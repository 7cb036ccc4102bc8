"""In-memory :class:`RemoteGateway` used across the component tests."""

from __future__ import annotations

import asyncio
import copy
import math
import secrets
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from travel_client.errors import AuthError, GatewayError, ValidationError
from travel_client.gateway.protocol import RemoteGateway, Row
from travel_client.gateway.query import Filter, Order, row_matches
from travel_client.schemas.session import Session, SessionUser, SignUpResult

_EARTH_RADIUS_KM = 6371.0

# Tables whose rows must be unique on the listed columns.
_UNIQUE_KEYS: dict[str, tuple[str, ...]] = {"favorites": ("user_id", "attraction_id")}


def _distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * _EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def _split_columns(columns: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current = ""
    for char in columns:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += char
    if current.strip():
        parts.append(current.strip())
    return parts


class InMemoryGateway(RemoteGateway):
    """Dictionary-backed gateway with failure injection and call recording."""

    def __init__(self, *, confirm_signups: bool = False) -> None:
        self.tables: dict[str, list[Row]] = {}
        self.users: dict[str, dict[str, Any]] = {}
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.reset_requests: list[str] = []
        self.session: Session | None = None
        self.calls: list[tuple[str, str | None]] = []
        self.confirm_signups = confirm_signups
        self._failures: dict[str, list[GatewayError]] = {}
        # When set, get_session answers with the session it saw on entry only
        # after the event fires, like a response still on the wire.
        self.session_gate: asyncio.Event | None = None

    # -- test helpers ---------------------------------------------------------

    def seed(self, table: str, *rows: Row) -> None:
        self.tables.setdefault(table, []).extend(copy.deepcopy(list(rows)))

    def register_user(
        self, email: str, password: str, *, full_name: str | None = None
    ) -> SessionUser:
        metadata = {"full_name": full_name} if full_name else {}
        user = SessionUser(id=str(uuid.uuid4()), email=email, user_metadata=metadata)
        self.users[email] = {"password": password, "user": user}
        return user

    def issue_session(self, user: SessionUser) -> Session:
        return Session(
            access_token=secrets.token_hex(8),
            refresh_token=secrets.token_hex(8),
            expires_at=datetime.now(UTC) + timedelta(hours=1),
            user=user,
        )

    def fail(self, operation: str, error: GatewayError, *, times: int = 1) -> None:
        """Make the next ``times`` calls of ``operation`` raise ``error``.

        ``operation`` is a method name, optionally qualified with the table or
        procedure name, e.g. ``"rpc"`` or ``"insert:favorites"``.
        """

        self._failures.setdefault(operation, []).extend([error] * times)

    def count(self, method: str, target: str | None = None) -> int:
        return sum(
            1
            for name, called_target in self.calls
            if name == method and (target is None or called_target == target)
        )

    def _record(self, method: str, target: str | None = None) -> None:
        self.calls.append((method, target))
        for key in (f"{method}:{target}", method):
            pending = self._failures.get(key)
            if pending:
                raise pending.pop(0)

    # -- authentication -------------------------------------------------------

    async def get_session(self) -> Session | None:
        self._record("get_session")
        session = self.session
        if self.session_gate is not None:
            await self.session_gate.wait()
        return session

    async def sign_in(self, email: str, password: str) -> Session:
        self._record("sign_in")
        account = self.users.get(email)
        if account is None or account["password"] != password:
            raise AuthError("Invalid login credentials", status_code=400)
        self.session = self.issue_session(account["user"])
        return self.session

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> SignUpResult:
        self._record("sign_up")
        if email in self.users:
            raise AuthError("User already registered", status_code=422)
        user = SessionUser(id=str(uuid.uuid4()), email=email, user_metadata=dict(metadata))
        self.users[email] = {"password": password, "user": user}
        if self.confirm_signups:
            return SignUpResult(user=user, session=None)
        self.session = self.issue_session(user)
        return SignUpResult(user=user, session=self.session)

    async def sign_out(self) -> None:
        self._record("sign_out")
        self.session = None

    async def reset_password_for_email(self, email: str) -> None:
        self._record("reset_password_for_email")
        self.reset_requests.append(email)

    async def update_user(
        self,
        *,
        metadata: dict[str, Any] | None = None,
        password: str | None = None,
    ) -> SessionUser:
        self._record("update_user")
        if self.session is None:
            raise AuthError("Not signed in", status_code=401)
        user = self.session.user
        if metadata is not None:
            user = user.model_copy(update={"user_metadata": dict(metadata)})
        account = next(
            (item for item in self.users.values() if item["user"].id == user.id), None
        )
        if account is not None:
            account["user"] = user
            if password is not None:
                account["password"] = password
        self.session = self.session.model_copy(update={"user": user})
        return user

    # -- query and mutation ---------------------------------------------------

    def _project(self, row: Row, columns: str) -> Row:
        projected: Row = {}
        for column in _split_columns(columns):
            if column == "*":
                projected.update(copy.deepcopy(row))
            elif "(" in column:
                relation, inner = column.rstrip(")").split("(", 1)
                projected[relation.strip()] = self._embed(relation.strip(), inner, row)
            else:
                projected[column] = copy.deepcopy(row.get(column))
        return projected

    def _embed(self, relation: str, inner: str, row: Row) -> Row | None:
        for candidate in self.tables.get(relation, []):
            if candidate.get("id") == row.get("user_id"):
                return self._project(candidate, inner)
        return None

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        order: Order | None = None,
    ) -> list[Row]:
        self._record("select", table)
        rows = [row for row in self.tables.get(table, []) if row_matches(row, filters)]
        if order is not None:
            present = [row for row in rows if row.get(order.column) is not None]
            missing = [row for row in rows if row.get(order.column) is None]
            present.sort(key=lambda row: row[order.column], reverse=not order.ascending)
            rows = present + missing
        return [self._project(row, columns) for row in rows]

    async def insert(self, table: str, row: Row) -> list[Row]:
        self._record("insert", table)
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid.uuid4()))
        stored.setdefault("created_at", datetime.now(UTC).isoformat())
        unique = _UNIQUE_KEYS.get(table)
        if unique:
            key = tuple(stored.get(column) for column in unique)
            for existing in self.tables.get(table, []):
                if tuple(existing.get(column) for column in unique) == key:
                    raise ValidationError(
                        "duplicate key value violates unique constraint", status_code=409
                    )
        self.tables.setdefault(table, []).append(stored)
        return [copy.deepcopy(stored)]

    async def update(
        self, table: str, patch: Row, *, filters: Sequence[Filter]
    ) -> list[Row]:
        self._record("update", table)
        updated: list[Row] = []
        for row in self.tables.get(table, []):
            if row_matches(row, filters):
                row.update(copy.deepcopy(patch))
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table: str, *, filters: Sequence[Filter]) -> list[Row]:
        self._record("delete", table)
        rows = self.tables.get(table, [])
        removed = [row for row in rows if row_matches(row, filters)]
        self.tables[table] = [row for row in rows if not row_matches(row, filters)]
        return removed

    async def rpc(self, name: str, params: dict[str, Any]) -> list[Row]:
        self._record("rpc", name)
        if name != "attractions_within_radius":
            raise GatewayError(f"Unknown procedure {name}", status_code=404)
        return [
            copy.deepcopy(row)
            for row in self.tables.get("attractions", [])
            if row.get("latitude") is not None
            and row.get("longitude") is not None
            and _distance_km(params["lat"], params["lon"], row["latitude"], row["longitude"])
            <= params["radius_km"]
        ]

    # -- storage --------------------------------------------------------------

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str
    ) -> str:
        self._record("upload", bucket)
        self.objects[(bucket, path)] = (data, content_type)
        return f"{bucket}/{path}"

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"memory://{bucket}/{path}"

    async def remove(self, bucket: str, paths: Sequence[str]) -> None:
        self._record("remove", bucket)
        for path in paths:
            self.objects.pop((bucket, path), None)


__all__ = ["InMemoryGateway"]
