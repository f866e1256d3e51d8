"""Configuration models and factories.

Settings are plain Pydantic models, usually loaded from a YAML file::

    key_prefix: "session::"
    key_pairs:
      - hash_key: "<64 hex chars>"
        block_key: "<32 or 64 hex chars>"
      - hash_key: "<previous hash key, still accepted on decode>"
    cookie:
      path: /
      max_age: 2592000
      secure: true
    store:
      backend: redis
      url: redis://localhost:6379/0

Classes
-------
- KeyPairSettings  — one hex-encoded authentication/encryption key pair
- StoreSettings    — which backend to use and how to reach it
- SessionSettings  — top-level settings document

Functions
---------
- load_settings  — parse a YAML file into ``SessionSettings``
- build_store    — instantiate the configured ``KeyValueStore``
- build_manager  — instantiate a ``SessionManager`` from settings
"""
from __future__ import annotations

from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator

from kv_cookie_sessions.session.manager import SESSION_KEY_PREFIX, SessionManager
from kv_cookie_sessions.session.state import SessionOptions
from kv_cookie_sessions.store.base import KeyValueStore
from kv_cookie_sessions.store.memory import InMemoryStore
from kv_cookie_sessions.store.redis import RedisStore
from kv_cookie_sessions.store.sqlite import SQLiteStore


class KeyPairSettings(BaseModel):
    """A hash key and optional block key, both hex-encoded."""

    hash_key: str
    block_key: str | None = None

    @field_validator("hash_key", "block_key")
    @classmethod
    def _must_be_hex(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            bytes.fromhex(value)
        except ValueError as exc:
            raise ValueError(f"key is not valid hex: {exc}") from exc
        return value

    def to_bytes(self) -> tuple[bytes, bytes | None]:
        block = bytes.fromhex(self.block_key) if self.block_key else None
        return bytes.fromhex(self.hash_key), block


class StoreSettings(BaseModel):
    """Backend selection.

    ``db_path`` is used by the ``sqlite`` backend and ``url`` by the
    ``redis`` backend.
    """

    backend: Literal["memory", "sqlite", "redis"] = "memory"
    db_path: str | None = None
    url: str | None = None


class SessionSettings(BaseModel):
    """Everything needed to build a ``SessionManager``."""

    key_pairs: list[KeyPairSettings] = Field(min_length=1)
    key_prefix: str = SESSION_KEY_PREFIX
    cookie: SessionOptions = Field(default_factory=SessionOptions)
    store: StoreSettings = Field(default_factory=StoreSettings)

    def flat_keys(self) -> list[bytes | None]:
        """Return the key pairs flattened as ``hash, block, hash, block, ...``."""
        keys: list[bytes | None] = []
        for pair in self.key_pairs:
            keys.extend(pair.to_bytes())
        return keys


def load_settings(path: str | Path) -> SessionSettings:
    """Parse the YAML file at ``path``.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not exist.
    pydantic.ValidationError
        If the document does not describe valid settings.
    """
    raw = Path(path).read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    return SessionSettings.model_validate(data)


def build_store(settings: StoreSettings) -> KeyValueStore:
    """Instantiate the backend described by ``settings``."""
    if settings.backend == "sqlite":
        return SQLiteStore(db_path=settings.db_path)
    if settings.backend == "redis":
        return RedisStore(url=settings.url or "redis://localhost:6379/0")
    return InMemoryStore()


def build_manager(
    settings: SessionSettings, store: KeyValueStore | None = None
) -> SessionManager:
    """Build a ``SessionManager`` from ``settings``.

    Parameters
    ----------
    settings:
        Parsed settings.
    store:
        Optional already-built store, overriding ``settings.store``.
    """
    return SessionManager(
        store if store is not None else build_store(settings.store),
        *settings.flat_keys(),
        options=settings.cookie.copy_for_session(),
        key_prefix=settings.key_prefix,
    )
