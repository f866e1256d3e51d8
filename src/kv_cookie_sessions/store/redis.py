"""Redis key-value store.

Classes
-------
- RedisStore  — redis-py backed key-value storage
"""
from __future__ import annotations

from typing import Any

import redis

from kv_cookie_sessions.store.base import KeyValueStore, StoreError


class RedisStore(KeyValueStore):
    """Persists entries in a Redis instance.

    Each entry is a plain Redis string written with ``SET key value EX ttl``,
    so expiry is enforced by the server.  redis-py clients are backed by a
    connection pool and are safe to share between threads.

    Parameters
    ----------
    host:
        Redis server hostname. Defaults to ``"localhost"``.
    port:
        Redis server port. Defaults to ``6379``.
    db:
        Redis logical database index. Defaults to ``0``.
    password:
        Optional authentication password.
    url:
        If supplied, overrides host/port/db/password and is used as a
        Redis connection URL (e.g. ``"redis://localhost:6379/0"``).
    client:
        An already-configured ``redis.Redis`` instance.  Takes precedence
        over every other connection argument.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: str | None = None,
        url: str | None = None,
        client: Any = None,
    ) -> None:
        if client is not None:
            self._client = client
        elif url is not None:
            self._client = redis.Redis.from_url(url)
        else:
            self._client = redis.Redis(host=host, port=port, db=db, password=password)

    # ------------------------------------------------------------------
    # KeyValueStore interface
    # ------------------------------------------------------------------

    def get(self, key: bytes) -> bytes | None:
        """Return the value for ``key``, or ``None`` when Redis has none."""
        try:
            value = self._client.get(key)
        except redis.RedisError as exc:
            raise StoreError(f"Redis GET failed: {exc}") from exc
        if value is None:
            return None
        if isinstance(value, str):
            return value.encode("utf-8")
        return bytes(value)

    def set(self, key: bytes, value: bytes, ttl: int) -> bool:
        """Write ``value`` with a server-side expiry of ``ttl`` seconds."""
        try:
            return bool(self._client.set(key, value, ex=ttl))
        except redis.RedisError as exc:
            raise StoreError(f"Redis SET failed: {exc}") from exc

    def delete(self, key: bytes) -> bool:
        """Remove ``key``.  ``DEL`` on a missing key still succeeds."""
        try:
            self._client.delete(key)
        except redis.RedisError as exc:
            raise StoreError(f"Redis DEL failed: {exc}") from exc
        return True

    def close(self) -> None:
        """Close the underlying connection pool."""
        self._client.close()

    def __repr__(self) -> str:
        return f"RedisStore(client={self._client!r})"
