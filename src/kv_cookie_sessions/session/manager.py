"""Session lifecycle management.

Provides ``SessionManager``, which resolves sessions from cookies, loads
their values from a key-value store, and writes them back (or deletes
them) on save.  The cookie only ever carries the encoded session
identifier; the values live in the store under a namespaced key.

Classes
-------
- SessionManager  — new / get / load / save / erase over a KeyValueStore
"""
from __future__ import annotations

import base64
import logging
from typing import Sequence

from kv_cookie_sessions.codec.base import (
    Codec,
    DecodeError,
    NoCodecsError,
    decode_multi,
    encode_multi,
)
from kv_cookie_sessions.codec.securecookie import (
    SecureCookieCodec,
    codecs_from_pairs,
    generate_random_key,
)
from kv_cookie_sessions.cookies import Request, Response, set_session_cookie
from kv_cookie_sessions.session.registry import get_registry
from kv_cookie_sessions.session.state import Session, SessionOptions
from kv_cookie_sessions.store.base import KeyValueStore, StoreError

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session::"
_IDENTIFIER_BYTES = 32


def generate_session_id() -> str:
    """Return a new random, cookie-safe session identifier."""
    return base64.b32encode(generate_random_key(_IDENTIFIER_BYTES)).decode("ascii").rstrip("=")


class SessionManager:
    """Create, load, save, and delete cookie-identified sessions.

    Keys are defined in pairs to allow key rotation, but the common case
    is a single authentication key and optionally an encryption key.  The
    first key in a pair authenticates and the second encrypts; the
    encryption key may be ``None`` or omitted in the last pair.  Use a
    32- or 64-byte authentication key; an encryption key must be 16, 24,
    or 32 bytes.

    The manager keeps no per-session state, so one instance can serve any
    number of concurrent requests.

    Parameters
    ----------
    store:
        Backend holding the encoded session values.
    key_pairs:
        Alternating hash and block keys, newest pair first.
    options:
        Default options copied into every session.  Defaults to path
        ``"/"`` and a 30 day max age.  A positive ``max_age`` also bounds
        the age of tokens accepted by codecs built from ``key_pairs``.
    key_prefix:
        Namespace prepended to every store key.
    codecs:
        Explicit codecs, used instead of ``key_pairs`` when given.

    Raises
    ------
    NoCodecsError
        If neither key pairs nor codecs are supplied.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *key_pairs: bytes | None,
        options: SessionOptions | None = None,
        key_prefix: str = SESSION_KEY_PREFIX,
        codecs: Sequence[Codec] | None = None,
    ) -> None:
        self.options = options or SessionOptions()
        if codecs is not None:
            self.codecs: list[Codec] = list(codecs)
        else:
            # Token age limit tracks the session lifetime.
            token_max_age = self.options.max_age if self.options.max_age > 0 else None
            self.codecs = list(codecs_from_pairs(*key_pairs, max_age=token_max_age))
        if not self.codecs:
            raise NoCodecsError()
        self.store = store
        self.key_prefix = key_prefix

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, request: Request, name: str) -> Session:
        """Return session ``name`` through the request's registry.

        Unlike :meth:`new`, repeated calls during one request return the
        same ``Session`` object instead of decoding the cookie again.
        """
        return get_registry(request).get(self, name)

    def new(self, request: Request, name: str) -> Session:
        """Return session ``name`` for ``request`` without caching it.

        If the request carries a cookie whose identifier decodes and whose
        store entry loads, the session comes back populated with
        ``is_new`` False.  Otherwise it comes back empty and new.

        This method never raises for a bad cookie or an unavailable store:
        a tampered, expired, or unknown session degrades to a new one.
        Call :meth:`load` directly to observe those errors.
        """
        session = Session(name=name, options=self.options.copy_for_session())
        session._manager = self
        cookie = request.cookies.get(name)
        if not cookie:
            return session

        try:
            identifier = decode_multi(name, cookie, self.codecs)
            if not isinstance(identifier, str) or not identifier:
                raise DecodeError("cookie does not carry a session identifier")
            session.identifier = identifier
            found = self.load(session)
        except DecodeError as exc:
            logger.debug("SessionManager: discarding session %r: %s", name, exc)
            return self._reset(session)
        except StoreError as exc:
            logger.warning(
                "SessionManager: store unavailable while loading session %r: %s", name, exc
            )
            return self._reset(session)

        if found:
            session.is_new = False
            logger.debug("SessionManager: loaded session %r", name)
        else:
            logger.debug("SessionManager: no stored values for session %r", name)
        return session

    def load(self, session: Session) -> bool:
        """Populate ``session.values`` from the store.

        Returns
        -------
        bool
            True if an entry was found and decoded; False if the store has
            no entry for the identifier, in which case the session is left
            untouched.

        Raises
        ------
        DecodeError
            If the stored payload fails verification or decoding.
        StoreError
            If the backend fails.
        """
        raw = self.store.get(self._key(session.identifier))
        if raw is None:
            return False
        try:
            token = raw.decode("ascii")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"stored payload is not a token: {exc}") from exc
        values = decode_multi(session.name, token, self.codecs)
        if not isinstance(values, dict):
            raise DecodeError("stored payload is not a mapping")
        session.values = values
        return True

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, request: Request, response: Response, session: Session) -> None:
        """Persist or delete ``session`` and attach its cookie to ``response``.

        A ``max_age`` of zero or less deletes the stored entry and sends an
        empty, already-expired cookie.  Otherwise the values are encoded
        and written with a TTL of ``max_age`` seconds, a fresh identifier
        being assigned first if the session has none, and the encoded
        identifier is sent as the cookie value.

        Raises
        ------
        EncodeError
            If the values cannot be encoded; the store is not touched.
        StoreError
            If the backend write or delete fails; no cookie is sent.
        """
        if session.options.max_age <= 0:
            self.erase(session)
            set_session_cookie(response, session.name, "", session.options)
            logger.debug("SessionManager: erased session %r", session.name)
            return

        encoded_values = encode_multi(session.name, session.values, self.codecs)
        if not session.identifier:
            session.identifier = generate_session_id()
        stored = self.store.set(
            self._key(session.identifier),
            encoded_values.encode("ascii"),
            session.options.max_age,
        )
        if not stored:
            raise StoreError(f"store rejected the write for session {session.name!r}")

        encoded_id = encode_multi(session.name, session.identifier, self.codecs)
        set_session_cookie(response, session.name, encoded_id, session.options)
        logger.debug("SessionManager: saved session %r", session.name)

    def erase(self, session: Session) -> None:
        """Delete the stored entry for ``session``.

        A session that was never saved has nothing to delete.

        Raises
        ------
        StoreError
            If the backend fails or refuses the delete.
        """
        if not session.identifier:
            return
        if not self.store.delete(self._key(session.identifier)):
            raise StoreError(f"error deleting session {session.name!r}")

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_max_age(self, max_age: int) -> None:
        """Set the default session lifetime and the codecs' token max age.

        Sessions created before this call keep their own copy of options.
        """
        self.options.max_age = max_age
        for codec in self.codecs:
            if isinstance(codec, SecureCookieCodec):
                codec.max_age = max_age

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _key(self, identifier: str) -> bytes:
        return f"{self.key_prefix}{identifier}".encode("utf-8")

    @staticmethod
    def _reset(session: Session) -> Session:
        session.identifier = ""
        session.values = {}
        session.is_new = True
        return session

    def __repr__(self) -> str:
        return (
            f"SessionManager(store={self.store!r}, codecs={len(self.codecs)}, "
            f"key_prefix={self.key_prefix!r})"
        )
