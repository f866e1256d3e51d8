"""SQLite key-value store.

Stores entries in a single SQLite database file using the Python standard
library ``sqlite3`` module.  Each row carries an absolute ``expires_at``
wall-clock timestamp; expired rows are ignored on read and can be
garbage-collected with :meth:`SQLiteStore.purge_expired`.

Classes
-------
- SQLiteStore  — SQLite-backed key-value storage
"""
from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from kv_cookie_sessions.store.base import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

_DEFAULT_DB_PATH: Path = Path.home() / ".kv-cookie-sessions" / "sessions.db"
_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS kv (
    key        BLOB PRIMARY KEY,
    value      BLOB NOT NULL,
    expires_at REAL NOT NULL
)
"""
_UPSERT_SQL = """
INSERT INTO kv (key, value, expires_at)
VALUES (?, ?, ?)
ON CONFLICT(key) DO UPDATE SET
    value      = excluded.value,
    expires_at = excluded.expires_at
"""


class SQLiteStore(KeyValueStore):
    """Persists entries in a local SQLite database.

    A new connection is opened for every operation, so one instance may be
    shared between threads.

    Parameters
    ----------
    db_path:
        Path to the SQLite file.  Defaults to
        ``~/.kv-cookie-sessions/sessions.db``.  The parent directory and
        table are created automatically on first use.
    """

    def __init__(self, db_path: str | Path | None = None) -> None:
        self._db_path: Path = (
            Path(db_path) if db_path is not None else _DEFAULT_DB_PATH
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction and close it afterwards."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(_CREATE_TABLE_SQL)
        conn.commit()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # KeyValueStore interface
    # ------------------------------------------------------------------

    def get(self, key: bytes) -> bytes | None:
        """Return the live value for ``key`` or ``None``."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM kv WHERE key = ? AND expires_at > ?",
                    (key, time.time()),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(f"SQLite read failed: {exc}") from exc
        if row is None:
            return None
        return bytes(row["value"])

    def set(self, key: bytes, value: bytes, ttl: int) -> bool:
        """Upsert ``value`` for ``key`` expiring ``ttl`` seconds from now."""
        try:
            with self._connect() as conn:
                conn.execute(_UPSERT_SQL, (key, value, time.time() + ttl))
        except sqlite3.Error as exc:
            raise StoreError(f"SQLite write failed: {exc}") from exc
        return True

    def delete(self, key: bytes) -> bool:
        """Remove the row for ``key``; missing rows are ignored."""
        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        except sqlite3.Error as exc:
            raise StoreError(f"SQLite delete failed: {exc}") from exc
        return True

    # ------------------------------------------------------------------
    # Extras
    # ------------------------------------------------------------------

    def purge_expired(self) -> int:
        """Delete every expired row and return how many were removed."""
        try:
            with self._connect() as conn:
                cursor = conn.execute(
                    "DELETE FROM kv WHERE expires_at <= ?", (time.time(),)
                )
        except sqlite3.Error as exc:
            raise StoreError(f"SQLite purge failed: {exc}") from exc
        logger.debug("SQLiteStore: purged %d expired entries", cursor.rowcount)
        return cursor.rowcount

    def __repr__(self) -> str:
        return f"SQLiteStore(db_path={str(self._db_path)!r})"
