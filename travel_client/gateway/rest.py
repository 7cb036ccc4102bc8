"""HTTP implementation of :class:`RemoteGateway` for the hosted backend.

The backend exposes three HTTP surfaces under one base URL:

* ``/auth/v1`` - token issuance, registration, recovery and user updates.
* ``/rest/v1`` - table CRUD with PostgREST-style query parameters and RPCs.
* ``/storage/v1`` - object upload, public URLs and removal.

The gateway keeps the current session in memory the way the hosted SDK does,
refreshes it when it is about to expire, and maps every failure onto the
:mod:`travel_client.errors` taxonomy so callers never see ``httpx`` types.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from travel_client.errors import (
    AuthError,
    GatewayError,
    NotFoundError,
    TransportError,
    ValidationError,
)
from travel_client.gateway.protocol import Row
from travel_client.gateway.query import Filter, Order
from travel_client.schemas.session import Session, SessionUser, SignUpResult
from travel_client.settings import ClientSettings

logger = logging.getLogger(__name__)

_RETURN_REPRESENTATION = {"Prefer": "return=representation"}
_MESSAGE_KEYS = ("msg", "message", "error_description", "error")


def _extract_message(response: httpx.Response) -> str:
    """Pull the most descriptive message out of an error response."""

    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        for key in _MESSAGE_KEYS:
            value = payload.get(key)
            if isinstance(value, str) and value.strip():
                return value
    text = response.text.strip()
    return text or response.reason_phrase or f"HTTP {response.status_code}"


def _parse_expiry(payload: dict[str, Any]) -> datetime | None:
    expires_at = payload.get("expires_at")
    if isinstance(expires_at, (int, float)):
        return datetime.fromtimestamp(expires_at, UTC)
    expires_in = payload.get("expires_in")
    if isinstance(expires_in, (int, float)):
        return datetime.now(UTC) + timedelta(seconds=expires_in)
    return None


def _parse_session(payload: Any) -> Session:
    if not isinstance(payload, dict):
        raise TransportError("Unexpected session payload from the identity provider")
    try:
        return Session.model_validate({**payload, "expires_at": _parse_expiry(payload)})
    except PydanticValidationError as exc:
        raise TransportError(f"Malformed session payload: {exc.error_count()} error(s)") from exc


def _parse_user(payload: Any) -> SessionUser:
    candidate = payload.get("user", payload) if isinstance(payload, dict) else payload
    try:
        return SessionUser.model_validate(candidate)
    except PydanticValidationError as exc:
        raise TransportError(f"Malformed user payload: {exc.error_count()} error(s)") from exc


class RestGateway:
    """``httpx``-backed gateway speaking the backend's REST dialect."""

    def __init__(
        self,
        settings: ClientSettings,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self._anon_key = settings.gateway_anon_key or ""
        self._auth_url = settings.auth_url
        self._rest_url = settings.rest_url
        self._storage_url = settings.storage_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=settings.request_timeout_seconds
        )
        self._session: Session | None = None
        self._refresh_lock = asyncio.Lock()

    async def __aenter__(self) -> RestGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def restore_session(self, session: Session | None) -> None:
        """Seed the in-memory session, e.g. from tokens kept by the host app."""

        self._session = session

    # -- transport ------------------------------------------------------------

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        token = self._session.access_token if self._session else self._anon_key
        headers = {"apikey": self._anon_key, "Authorization": f"Bearer {token}"}
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: list[tuple[str, str]] | dict[str, str] | None = None,
        json: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        auth_endpoint: bool = False,
    ) -> Any:
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json,
                content=content,
                headers=self._headers(headers),
            )
        except httpx.TimeoutException as exc:
            raise TransportError(f"Request timed out: {method} {url}") from exc
        except httpx.TransportError as exc:
            raise TransportError(str(exc) or "Network unavailable") from exc

        if response.is_error:
            raise self._error_for(response, auth_endpoint=auth_endpoint)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"Malformed JSON response from {url}") from exc

    def _error_for(self, response: httpx.Response, *, auth_endpoint: bool) -> GatewayError:
        status = response.status_code
        message = _extract_message(response)
        logger.debug("Gateway error %s on %s: %s", status, response.request.url, message)

        if status in (401, 403):
            if status == 401 and self._session is not None and not auth_endpoint:
                logger.info("Access token rejected by the backend; dropping stored session")
                self._session = None
            return AuthError(message, status_code=status)
        if auth_endpoint and 400 <= status < 500 and status != 429:
            return AuthError(message, status_code=status)
        if status == 404:
            return NotFoundError(message, status_code=status)
        if 400 <= status < 500:
            return ValidationError(message, status_code=status)
        return TransportError(message, status_code=status)

    @staticmethod
    def _as_rows(payload: Any) -> list[Row]:
        if payload is None:
            return []
        if isinstance(payload, dict):
            return [payload]
        if isinstance(payload, list):
            return payload
        raise TransportError("Unexpected response shape; expected a list of rows")

    # -- authentication -------------------------------------------------------

    async def get_session(self) -> Session | None:
        session = self._session
        if session is None:
            return None
        if session.expires_within(self._settings.session_refresh_leeway_seconds):
            return await self._refresh_session()
        return session

    async def _refresh_session(self) -> Session:
        async with self._refresh_lock:
            current = self._session
            if current is None:
                raise AuthError("Session expired")
            if not current.expires_within(self._settings.session_refresh_leeway_seconds):
                return current
            if not current.refresh_token:
                self._session = None
                raise AuthError("Session expired and cannot be refreshed")
            try:
                payload = await self._request(
                    "POST",
                    f"{self._auth_url}/token",
                    params={"grant_type": "refresh_token"},
                    json={"refresh_token": current.refresh_token},
                    auth_endpoint=True,
                )
            except AuthError:
                self._session = None
                raise
            self._session = _parse_session(payload)
            logger.debug("Access token refreshed")
            return self._session

    async def sign_in(self, email: str, password: str) -> Session:
        payload = await self._request(
            "POST",
            f"{self._auth_url}/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            auth_endpoint=True,
        )
        self._session = _parse_session(payload)
        return self._session

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> SignUpResult:
        payload = await self._request(
            "POST",
            f"{self._auth_url}/signup",
            json={"email": email, "password": password, "data": metadata},
            auth_endpoint=True,
        )
        if isinstance(payload, dict) and payload.get("access_token"):
            session = _parse_session(payload)
            self._session = session
            return SignUpResult(user=session.user, session=session)
        return SignUpResult(user=_parse_user(payload), session=None)

    async def sign_out(self) -> None:
        if self._session is None:
            return
        await self._request("POST", f"{self._auth_url}/logout", auth_endpoint=True)
        self._session = None

    async def reset_password_for_email(self, email: str) -> None:
        await self._request(
            "POST", f"{self._auth_url}/recover", json={"email": email}, auth_endpoint=True
        )

    async def update_user(
        self,
        *,
        metadata: dict[str, Any] | None = None,
        password: str | None = None,
    ) -> SessionUser:
        if self._session is None:
            raise AuthError("Not signed in")
        body: dict[str, Any] = {}
        if metadata is not None:
            body["data"] = metadata
        if password is not None:
            body["password"] = password
        payload = await self._request(
            "PUT", f"{self._auth_url}/user", json=body, auth_endpoint=True
        )
        user = _parse_user(payload)
        if self._session is not None:
            self._session = self._session.model_copy(update={"user": user})
        return user

    # -- query and mutation ---------------------------------------------------

    @staticmethod
    def _filter_params(filters: Sequence[Filter]) -> list[tuple[str, str]]:
        params: list[tuple[str, str]] = []
        for item in filters:
            params.extend(item.to_params())
        return params

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Sequence[Filter] = (),
        order: Order | None = None,
    ) -> list[Row]:
        params = [("select", columns), *self._filter_params(filters)]
        if order is not None:
            params.append(order.to_param())
        payload = await self._request("GET", f"{self._rest_url}/{table}", params=params)
        return self._as_rows(payload)

    async def insert(self, table: str, row: Row) -> list[Row]:
        payload = await self._request(
            "POST", f"{self._rest_url}/{table}", json=row, headers=_RETURN_REPRESENTATION
        )
        return self._as_rows(payload)

    async def update(
        self, table: str, patch: Row, *, filters: Sequence[Filter]
    ) -> list[Row]:
        if not filters:
            raise ValidationError("Refusing to update without filters")
        payload = await self._request(
            "PATCH",
            f"{self._rest_url}/{table}",
            params=self._filter_params(filters),
            json=patch,
            headers=_RETURN_REPRESENTATION,
        )
        return self._as_rows(payload)

    async def delete(self, table: str, *, filters: Sequence[Filter]) -> list[Row]:
        if not filters:
            raise ValidationError("Refusing to delete without filters")
        payload = await self._request(
            "DELETE",
            f"{self._rest_url}/{table}",
            params=self._filter_params(filters),
            headers=_RETURN_REPRESENTATION,
        )
        return self._as_rows(payload)

    async def rpc(self, name: str, params: dict[str, Any]) -> list[Row]:
        payload = await self._request("POST", f"{self._rest_url}/rpc/{name}", json=params)
        return self._as_rows(payload)

    # -- storage --------------------------------------------------------------

    async def upload(
        self, bucket: str, path: str, data: bytes, content_type: str
    ) -> str:
        await self._request(
            "POST",
            f"{self._storage_url}/object/{bucket}/{quote(path)}",
            content=data,
            headers={
                "Content-Type": content_type,
                "Cache-Control": f"max-age={self._settings.storage_cache_control}",
                "x-upsert": "false",
            },
        )
        return f"{bucket}/{path}"

    def get_public_url(self, bucket: str, path: str) -> str:
        return f"{self._storage_url}/object/public/{bucket}/{quote(path)}"

    async def remove(self, bucket: str, paths: Sequence[str]) -> None:
        await self._request(
            "DELETE",
            f"{self._storage_url}/object/{bucket}",
            json={"prefixes": list(paths)},
        )


__all__ = ["RestGateway"]
