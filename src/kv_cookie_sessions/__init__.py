"""kv-cookie-sessions — cookie-identified sessions over a key-value store.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> from kv_cookie_sessions import InMemoryStore, SessionManager
>>> manager = SessionManager(InMemoryStore(), b"a-32-byte-authentication-key....")
>>> manager.options.path
'/'
"""
from __future__ import annotations

# Session core
from kv_cookie_sessions.session.state import Session, SessionOptions
from kv_cookie_sessions.session.manager import (
    SESSION_KEY_PREFIX,
    SessionManager,
    generate_session_id,
)
from kv_cookie_sessions.session.registry import SessionRegistry, get_registry

# Codecs
from kv_cookie_sessions.codec.base import (
    Codec,
    CodecError,
    DecodeError,
    EncodeError,
    MultiDecodeError,
    decode_multi,
    encode_multi,
)
from kv_cookie_sessions.codec.securecookie import (
    SecureCookieCodec,
    codecs_from_pairs,
    generate_random_key,
)

# Storage backends
from kv_cookie_sessions.store.base import KeyValueStore, StoreError
from kv_cookie_sessions.store.memory import InMemoryStore
from kv_cookie_sessions.store.redis import RedisStore
from kv_cookie_sessions.store.sqlite import SQLiteStore

# Configuration
from kv_cookie_sessions.config import (
    SessionSettings,
    build_manager,
    build_store,
    load_settings,
)

__version__: str = "0.1.0"

__all__ = [
    "__version__",
    # Session core
    "SESSION_KEY_PREFIX",
    "Session",
    "SessionManager",
    "SessionOptions",
    "SessionRegistry",
    "generate_session_id",
    "get_registry",
    # Codecs
    "Codec",
    "CodecError",
    "DecodeError",
    "EncodeError",
    "MultiDecodeError",
    "SecureCookieCodec",
    "codecs_from_pairs",
    "decode_multi",
    "encode_multi",
    "generate_random_key",
    # Storage
    "InMemoryStore",
    "KeyValueStore",
    "RedisStore",
    "SQLiteStore",
    "StoreError",
    # Configuration
    "SessionSettings",
    "build_manager",
    "build_store",
    "load_settings",
]
