"""In-memory key-value store.

Stores entries in a plain Python dict together with their expiry time.
All data is lost when the process exits.  This backend is primarily
useful for tests, local prototyping, and single-process deployments.

Classes
-------
- InMemoryStore  — dict-backed ephemeral storage with TTL support
"""
from __future__ import annotations

import threading
import time
from typing import Callable

from kv_cookie_sessions.store.base import KeyValueStore


class InMemoryStore(KeyValueStore):
    """Ephemeral, in-process store backed by a Python dict.

    Expired entries are dropped lazily on read, or eagerly through
    :meth:`purge_expired`.  A lock guards the dict so one instance can be
    shared between request-handling threads.

    Parameters
    ----------
    clock:
        Callable returning the current time in seconds.  Defaults to
        ``time.monotonic``.
    """

    def __init__(self, clock: Callable[[], float] | None = None) -> None:
        self._store: dict[bytes, tuple[bytes, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock or time.monotonic

    # ------------------------------------------------------------------
    # KeyValueStore interface
    # ------------------------------------------------------------------

    def get(self, key: bytes) -> bytes | None:
        """Return the value for ``key``, or ``None`` if missing or expired."""
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._store[key]
                return None
            return value

    def set(self, key: bytes, value: bytes, ttl: int) -> bool:
        """Store ``value`` under ``key`` for ``ttl`` seconds."""
        with self._lock:
            self._store[key] = (bytes(value), self._clock() + ttl)
        return True

    def delete(self, key: bytes) -> bool:
        """Remove ``key``; missing keys are ignored."""
        with self._lock:
            self._store.pop(key, None)
        return True

    # ------------------------------------------------------------------
    # Extras
    # ------------------------------------------------------------------

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at) in self._store.items() if now >= expires_at]
            for key in expired:
                del self._store[key]
        return len(expired)

    def keys(self) -> list[bytes]:
        """Return all live keys in insertion order."""
        now = self._clock()
        with self._lock:
            return [key for key, (_, expires_at) in self._store.items() if now < expires_at]

    def clear(self) -> None:
        """Remove all stored entries."""
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        return len(self.keys())

    def __repr__(self) -> str:
        return f"InMemoryStore(entries={len(self._store)})"
