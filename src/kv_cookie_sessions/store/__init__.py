"""Key-value store subpackage.

All backends implement the ``KeyValueStore`` ABC.

Public surface
--------------
- KeyValueStore  — abstract base class
- StoreError     — backend failure
- InMemoryStore  — in-process dict (useful for testing)
- SQLiteStore    — persist entries in a local SQLite database
- RedisStore     — Redis backend
"""
from __future__ import annotations

from kv_cookie_sessions.store.base import KeyValueStore, StoreError
from kv_cookie_sessions.store.memory import InMemoryStore
from kv_cookie_sessions.store.redis import RedisStore
from kv_cookie_sessions.store.sqlite import SQLiteStore

__all__ = [
    "InMemoryStore",
    "KeyValueStore",
    "RedisStore",
    "SQLiteStore",
    "StoreError",
]
