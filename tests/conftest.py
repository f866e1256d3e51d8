"""Shared fixtures: minimal stand-ins for framework request/response objects."""
from __future__ import annotations

from typing import Any, Callable

import pytest

from kv_cookie_sessions.session.manager import SessionManager
from kv_cookie_sessions.store.memory import InMemoryStore

HASH_KEY = b"h" * 32
BLOCK_KEY = b"b" * 32


class FakeRequest:
    """Exposes a ``cookies`` mapping like Starlette and Werkzeug requests."""

    def __init__(self, cookies: dict[str, str] | None = None) -> None:
        self.cookies: dict[str, str] = dict(cookies or {})


class FakeResponse:
    """Records every ``set_cookie`` call."""

    def __init__(self) -> None:
        self.set_cookies: list[dict[str, Any]] = []

    def set_cookie(self, key: str, value: str = "", **kwargs: Any) -> None:
        self.set_cookies.append({"key": key, "value": value, **kwargs})

    def cookie(self, key: str) -> dict[str, Any]:
        matches = [c for c in self.set_cookies if c["key"] == key]
        assert matches, f"no cookie {key!r} was set"
        return matches[-1]


@pytest.fixture()
def make_request() -> Callable[..., FakeRequest]:
    def _make(cookies: dict[str, str] | None = None) -> FakeRequest:
        return FakeRequest(cookies)

    return _make


@pytest.fixture()
def response() -> FakeResponse:
    return FakeResponse()


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def manager(store: InMemoryStore) -> SessionManager:
    return SessionManager(store, HASH_KEY, BLOCK_KEY)
