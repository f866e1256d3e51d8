"""Request-scoped session cache.

``SessionManager.new`` decodes and loads a session every time it is
called.  A ``SessionRegistry`` lives for exactly one request and hands
back the same ``Session`` for repeated lookups of one name, so handlers
and middleware can share it without decoding twice.

Classes
-------
- SessionRegistry  — per-request mapping from session name to Session

Functions
---------
- get_registry  — return the registry attached to a request
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from kv_cookie_sessions.cookies import Request, Response
    from kv_cookie_sessions.session.manager import SessionManager
    from kv_cookie_sessions.session.state import Session

logger = logging.getLogger(__name__)

_REGISTRY_ATTR = "kv_cookie_sessions_registry"


class SessionRegistry:
    """Caches decoded sessions for the duration of a single request.

    Parameters
    ----------
    request:
        The request whose cookies sessions are resolved from.
    """

    def __init__(self, request: Request) -> None:
        self.request = request
        self._sessions: dict[str, tuple[Session, SessionManager]] = {}

    def get(self, manager: SessionManager, name: str) -> Session:
        """Return the session ``name``, resolving it through ``manager`` once."""
        entry = self._sessions.get(name)
        if entry is not None:
            return entry[0]
        session = manager.new(self.request, name)
        self._sessions[name] = (session, manager)
        return session

    def save(self, response: Response) -> None:
        """Save every session resolved during this request.

        Each session is attempted even if an earlier one fails; the first
        failure is re-raised once all have been tried.
        """
        first_error: Exception | None = None
        for name, (session, manager) in self._sessions.items():
            try:
                manager.save(self.request, response, session)
            except Exception as exc:  # noqa: BLE001
                logger.warning("SessionRegistry: failed to save session %r: %s", name, exc)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    def __contains__(self, name: object) -> bool:
        return name in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


def get_registry(request: Any) -> SessionRegistry:
    """Return the ``SessionRegistry`` for ``request``, creating it if needed.

    The registry is stored on ``request.state`` when the request has one
    (Starlette) and on the request object itself otherwise, so it is
    discarded together with the request.
    """
    holder = getattr(request, "state", None)
    if holder is None:
        holder = request
    registry = getattr(holder, _REGISTRY_ATTR, None)
    if registry is None:
        registry = SessionRegistry(request)
        setattr(holder, _REGISTRY_ATTR, registry)
    return registry
