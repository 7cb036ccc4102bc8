"""Pytest configuration shared by the whole suite."""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from travel_client.settings import get_settings

_GATEWAY_ENV = (
    "GATEWAY_URL",
    "GATEWAY_ANON_KEY",
    "SESSION_POLL_INTERVAL_SECONDS",
    "NEARBY_RPC_NAME",
    "STORAGE_CACHE_CONTROL",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep a developer's shell or ``.env`` from leaking into tests."""

    for name in _GATEWAY_ENV:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
