"""HTTP cookie boundary.

The session manager never depends on a web framework.  It only needs to
read a named cookie from a request and attach a cookie to a response.
Both ``starlette`` and ``werkzeug`` (Flask) objects satisfy the protocols
below as-is.

Classes
-------
- Request   — anything exposing a ``cookies`` mapping
- Response  — anything with a framework-style ``set_cookie`` method

Functions
---------
- set_session_cookie  — attach a session cookie built from options
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Mapping, Protocol

if TYPE_CHECKING:
    from kv_cookie_sessions.session.state import SessionOptions

_EPOCH = datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)


class Request(Protocol):
    @property
    def cookies(self) -> Mapping[str, str]: ...


class Response(Protocol):
    def set_cookie(self, key: str, value: str = "", **kwargs: Any) -> Any: ...


def cookie_attributes(options: SessionOptions) -> dict[str, Any]:
    """Return ``set_cookie`` keyword arguments for ``options``.

    A positive ``max_age`` also sets ``Expires`` for clients that ignore
    ``Max-Age``.  Otherwise the cookie is expired immediately.
    """
    if options.max_age > 0:
        max_age = options.max_age
        expires = datetime.now(timezone.utc) + timedelta(seconds=options.max_age)
    else:
        max_age = 0
        expires = _EPOCH
    return {
        "max_age": max_age,
        "expires": expires,
        "path": options.path,
        "domain": options.domain,
        "secure": options.secure,
        "httponly": options.http_only,
        "samesite": options.same_site,
    }


def set_session_cookie(
    response: Response, name: str, value: str, options: SessionOptions
) -> None:
    """Attach cookie ``name`` carrying ``value`` to ``response``."""
    response.set_cookie(key=name, value=value, **cookie_attributes(options))
