"""Session domain models.

All types are Pydantic BaseModel subclasses to enable runtime validation
of configuration and a cheap, independent deep copy of per-session
options.

Classes
-------
- SessionOptions  — cookie attributes and expiry policy
- Session         — one named session for one client
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field, PrivateAttr

if TYPE_CHECKING:
    from kv_cookie_sessions.cookies import Request, Response

SameSite = Literal["lax", "strict", "none"]


class SessionOptions(BaseModel):
    """Cookie attributes and lifetime for a session.

    Parameters
    ----------
    path:
        Cookie ``Path`` attribute.
    domain:
        Cookie ``Domain`` attribute; ``None`` leaves it unset.
    max_age:
        Session lifetime in seconds.  Zero or negative means the session
        is deleted on the next save.
    secure:
        Send the cookie only over HTTPS.
    http_only:
        Hide the cookie from client-side scripts.
    same_site:
        Cookie ``SameSite`` attribute; ``None`` leaves it unset.
    """

    path: str = "/"
    domain: str | None = None
    max_age: int = 86400 * 30
    secure: bool = False
    http_only: bool = True
    same_site: SameSite | None = "lax"

    model_config = {"frozen": False}

    def copy_for_session(self) -> SessionOptions:
        """Return an independent copy for a single session."""
        return self.model_copy(deep=True)


class Session(BaseModel):
    """A named bag of values scoped to one client.

    Parameters
    ----------
    name:
        Cookie name the session travels under.
    identifier:
        Random storage identifier.  Empty until the session is first saved.
    values:
        The user payload.  Keys must be strings for the default JSON
        serializer.
    options:
        This session's private copy of the manager's default options.
    is_new:
        False only once the session was loaded from an existing,
        successfully decoded store entry.
    """

    name: str
    identifier: str = ""
    values: dict[str, Any] = Field(default_factory=dict)
    options: SessionOptions = Field(default_factory=SessionOptions)
    is_new: bool = True

    model_config = {"frozen": False}

    _manager: Any = PrivateAttr(default=None)

    def save(self, request: Request, response: Response) -> None:
        """Persist this session through the manager that created it.

        Raises
        ------
        RuntimeError
            If the session was built by hand rather than by a manager.
        """
        if self._manager is None:
            raise RuntimeError(f"Session {self.name!r} is not bound to a manager.")
        self._manager.save(request, response, self)

    def clear(self) -> None:
        """Drop every value but keep the identifier and options."""
        self.values.clear()

    def __repr__(self) -> str:
        return (
            f"Session(name={self.name!r}, is_new={self.is_new!r}, "
            f"values={len(self.values)})"
        )
