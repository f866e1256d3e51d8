"""Session management subpackage.

Public surface
--------------
- Session          — one named session for one client
- SessionOptions   — cookie attributes and expiry policy
- SessionManager   — new / get / load / save / erase sessions
- SessionRegistry  — request-scoped session cache
"""
from __future__ import annotations

from kv_cookie_sessions.session.state import Session, SessionOptions
from kv_cookie_sessions.session.registry import SessionRegistry, get_registry
from kv_cookie_sessions.session.manager import (
    SESSION_KEY_PREFIX,
    SessionManager,
    generate_session_id,
)

__all__ = [
    "SESSION_KEY_PREFIX",
    "Session",
    "SessionManager",
    "SessionOptions",
    "SessionRegistry",
    "generate_session_id",
    "get_registry",
]
