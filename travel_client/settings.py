"""Centralized configuration management for the travel guide client."""

from __future__ import annotations

import logging
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load a local .env before the settings singleton is built so every consumer of
# :mod:`travel_client.settings` sees the same environment.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_REQUEST_TIMEOUT_SECONDS = 10.0
DEFAULT_SESSION_POLL_INTERVAL_SECONDS = 5.0
DEFAULT_SESSION_REFRESH_LEEWAY_SECONDS = 60.0
DEFAULT_NEARBY_RPC_NAME = "attractions_within_radius"
DEFAULT_STORAGE_CACHE_CONTROL = "3600"
DEFAULT_LOG_LEVEL = "INFO"


def _normalize_base_url(url: str) -> str:
    """Return ``url`` stripped of whitespace and trailing slashes."""

    return url.strip().rstrip("/")


class ClientSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    Values come from the environment (or a ``.env`` file). Helper properties
    expose derived values, such as the REST and auth endpoint roots, so the
    gateway does not repeat URL handling.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    gateway_url: str | None = Field(
        default=None,
        alias="GATEWAY_URL",
        description="Base URL of the hosted backend (auth, REST, storage).",
    )
    gateway_anon_key: str | None = Field(
        default=None,
        alias="GATEWAY_ANON_KEY",
        description="Public API key sent with every request as the ``apikey`` header.",
    )
    request_timeout_seconds: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        alias="REQUEST_TIMEOUT_SECONDS",
        gt=0,
        description="Timeout applied to every HTTP request issued by the gateway.",
    )
    session_poll_interval_seconds: float = Field(
        default=DEFAULT_SESSION_POLL_INTERVAL_SECONDS,
        alias="SESSION_POLL_INTERVAL_SECONDS",
        gt=0,
        description="Delay between two periodic session validation checks.",
    )
    session_refresh_leeway_seconds: float = Field(
        default=DEFAULT_SESSION_REFRESH_LEEWAY_SECONDS,
        alias="SESSION_REFRESH_LEEWAY_SECONDS",
        ge=0,
        description="Refresh the access token when it expires within this window.",
    )
    nearby_rpc_name: str = Field(
        default=DEFAULT_NEARBY_RPC_NAME,
        alias="NEARBY_RPC_NAME",
        description="Remote procedure used for radius-based attraction lookups.",
    )
    storage_cache_control: str = Field(
        default=DEFAULT_STORAGE_CACHE_CONTROL,
        alias="STORAGE_CACHE_CONTROL",
        description="Cache-Control max-age (seconds) attached to uploaded objects.",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )

    @field_validator("gateway_url")
    @classmethod
    def _strip_gateway_url(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return _normalize_base_url(value)

    @property
    def rest_url(self) -> str:
        return f"{self._require_gateway_url()}/rest/v1"

    @property
    def auth_url(self) -> str:
        return f"{self._require_gateway_url()}/auth/v1"

    @property
    def storage_url(self) -> str:
        return f"{self._require_gateway_url()}/storage/v1"

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for unset configuration."""

        warnings: list[str] = []
        if self.gateway_url is None:
            warnings.append(
                "GATEWAY_URL is not set - the REST gateway cannot reach the backend"
            )
        if not self.gateway_anon_key:
            warnings.append(
                "GATEWAY_ANON_KEY is not set - requests will be rejected by the backend"
            )
        return warnings

    def _require_gateway_url(self) -> str:
        if self.gateway_url is None:
            raise RuntimeError("GATEWAY_URL must be configured to use the REST gateway")
        return self.gateway_url


@lru_cache(maxsize=1)
def get_settings() -> ClientSettings:
    """Return a cached instance of :class:`ClientSettings`."""

    return ClientSettings()


__all__ = [
    "ClientSettings",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_NEARBY_RPC_NAME",
    "DEFAULT_REQUEST_TIMEOUT_SECONDS",
    "DEFAULT_SESSION_POLL_INTERVAL_SECONDS",
    "DEFAULT_SESSION_REFRESH_LEEWAY_SECONDS",
    "get_settings",
]
