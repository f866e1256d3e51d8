"""Unit tests for kv_cookie_sessions.session.manager.

Covers the session lifecycle against an InMemoryStore: lookup from a
cookie, save and reload, deletion, identifier generation, the size
ceiling, tamper rejection, and options isolation.
"""
from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from kv_cookie_sessions.codec.base import (
    DecodeError,
    EncodeError,
    NoCodecsError,
    ValueTooLongError,
    encode_multi,
)
from kv_cookie_sessions.codec.securecookie import SecureCookieCodec
from kv_cookie_sessions.session.manager import (
    SESSION_KEY_PREFIX,
    SessionManager,
    generate_session_id,
)
from kv_cookie_sessions.session.state import Session, SessionOptions
from kv_cookie_sessions.store.base import StoreError
from kv_cookie_sessions.store.memory import InMemoryStore


def _saved_cookie(manager: SessionManager, make_request: Any, response: Any,
                  name: str = "hello", **values: Any) -> tuple[Session, str]:
    """Save a session holding ``values`` and return it with its cookie value."""
    session = manager.new(make_request(), name)
    session.values.update(values)
    manager.save(make_request(), response, session)
    return session, response.cookie(name)["value"]


def _tamper(token: str, index: int) -> str:
    replacement = "A" if token[index] != "A" else "B"
    return token[:index] + replacement + token[index + 1:]


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestSessionManagerConstruction:
    def test_default_options(self, manager: SessionManager) -> None:
        assert manager.options.path == "/"
        assert manager.options.max_age == 86400 * 30

    def test_key_pairs_become_codecs(self, store: InMemoryStore) -> None:
        manager = SessionManager(store, b"a" * 32, None, b"c" * 32)
        assert len(manager.codecs) == 2

    def test_explicit_codecs_take_precedence(self, store: InMemoryStore) -> None:
        codec = SecureCookieCodec(b"k" * 32)
        manager = SessionManager(store, codecs=[codec])
        assert manager.codecs == [codec]

    def test_no_keys_raises(self, store: InMemoryStore) -> None:
        with pytest.raises(NoCodecsError):
            SessionManager(store)

    def test_default_key_prefix(self, manager: SessionManager) -> None:
        assert manager.key_prefix == SESSION_KEY_PREFIX == "session::"


# ---------------------------------------------------------------------------
# new
# ---------------------------------------------------------------------------


class TestSessionManagerNew:
    def test_without_cookie_is_new(self, manager: SessionManager, make_request: Any) -> None:
        session = manager.new(make_request(), "hello")
        assert session.is_new is True
        assert session.identifier == ""
        assert session.values == {}
        assert session.name == "hello"

    def test_empty_cookie_is_new(self, manager: SessionManager, make_request: Any) -> None:
        session = manager.new(make_request({"hello": ""}), "hello")
        assert session.is_new is True

    def test_existing_cookie_loads_values(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        saved, cookie = _saved_cookie(manager, make_request, response, k="v")
        loaded = manager.new(make_request({"hello": cookie}), "hello")
        assert loaded.is_new is False
        assert loaded.values == {"k": "v"}
        assert loaded.identifier == saved.identifier

    def test_garbage_cookie_degrades_to_new(
        self, manager: SessionManager, make_request: Any
    ) -> None:
        session = manager.new(make_request({"hello": "not-a-token"}), "hello")
        assert session.is_new is True
        assert session.identifier == ""
        assert session.values == {}

    def test_cookie_for_other_name_is_rejected(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        _, cookie = _saved_cookie(manager, make_request, response, name="first", k="v")
        session = manager.new(make_request({"second": cookie}), "second")
        assert session.is_new is True
        assert session.values == {}

    def test_cookie_from_unknown_key_is_rejected(
        self, store: InMemoryStore, make_request: Any, response: Any
    ) -> None:
        other = SessionManager(store, b"x" * 32)
        _, cookie = _saved_cookie(other, make_request, response, k="v")
        manager = SessionManager(store, b"y" * 32)
        session = manager.new(make_request({"hello": cookie}), "hello")
        assert session.is_new is True
        assert session.values == {}

    def test_missing_store_entry_keeps_identifier_but_stays_new(
        self, manager: SessionManager, store: InMemoryStore,
        make_request: Any, response: Any,
    ) -> None:
        saved, cookie = _saved_cookie(manager, make_request, response, k="v")
        store.clear()
        session = manager.new(make_request({"hello": cookie}), "hello")
        assert session.is_new is True
        assert session.values == {}
        assert session.identifier == saved.identifier

    def test_corrupt_store_entry_degrades_to_new(
        self, manager: SessionManager, store: InMemoryStore,
        make_request: Any, response: Any,
    ) -> None:
        saved, cookie = _saved_cookie(manager, make_request, response, k="v")
        store.set(f"session::{saved.identifier}".encode(), b"corrupted", 60)
        session = manager.new(make_request({"hello": cookie}), "hello")
        assert session.is_new is True
        assert session.values == {}
        assert session.identifier == ""

    def test_store_failure_degrades_to_new(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        _, cookie = _saved_cookie(manager, make_request, response, k="v")
        failing = MagicMock()
        failing.get.side_effect = StoreError("connection refused")
        manager.store = failing
        session = manager.new(make_request({"hello": cookie}), "hello")
        assert session.is_new is True
        assert session.values == {}

    def test_store_failure_is_logged_as_warning(
        self, manager: SessionManager, make_request: Any, response: Any,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        _, cookie = _saved_cookie(manager, make_request, response, k="v")
        failing = MagicMock()
        failing.get.side_effect = StoreError("connection refused")
        manager.store = failing
        with caplog.at_level("WARNING", logger="kv_cookie_sessions.session.manager"):
            manager.new(make_request({"hello": cookie}), "hello")
        assert "store unavailable" in caplog.text

    def test_two_calls_load_independently(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        _, cookie = _saved_cookie(manager, make_request, response, k="v")
        request = make_request({"hello": cookie})
        first = manager.new(request, "hello")
        second = manager.new(request, "hello")
        assert first is not second
        assert first.values == second.values

    def test_session_is_bound_to_manager(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        session = manager.new(make_request(), "hello")
        session.values["k"] = "v"
        session.save(make_request(), response)
        assert response.cookie("hello")["value"]


# ---------------------------------------------------------------------------
# Tamper rejection
# ---------------------------------------------------------------------------


class TestTamperRejection:
    def test_every_single_character_change_is_rejected(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        _, cookie = _saved_cookie(manager, make_request, response, k="v")
        for index in range(len(cookie)):
            session = manager.new(make_request({"hello": _tamper(cookie, index)}), "hello")
            assert session.is_new is True, f"tampered position {index} was accepted"
            assert session.values == {}


# ---------------------------------------------------------------------------
# load
# ---------------------------------------------------------------------------


class TestSessionManagerLoad:
    def test_load_missing_returns_false(self, manager: SessionManager) -> None:
        session = Session(name="hello", identifier="UNKNOWN", values={"keep": 1})
        assert manager.load(session) is False
        assert session.values == {"keep": 1}

    def test_load_found_populates_values(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        saved, _ = _saved_cookie(manager, make_request, response, k="v", n=3)
        session = Session(name="hello", identifier=saved.identifier)
        assert manager.load(session) is True
        assert session.values == {"k": "v", "n": 3}

    def test_load_surfaces_decode_error(
        self, manager: SessionManager, store: InMemoryStore
    ) -> None:
        store.set(b"session::abc", b"corrupted", 60)
        with pytest.raises(DecodeError):
            manager.load(Session(name="hello", identifier="abc"))

    def test_load_surfaces_non_ascii_payload(
        self, manager: SessionManager, store: InMemoryStore
    ) -> None:
        store.set(b"session::abc", "café".encode("utf-8"), 60)
        with pytest.raises(DecodeError):
            manager.load(Session(name="hello", identifier="abc"))

    def test_load_rejects_non_mapping_payload(
        self, manager: SessionManager, store: InMemoryStore
    ) -> None:
        token = encode_multi("hello", ["not", "a", "dict"], manager.codecs)
        store.set(b"session::abc", token.encode(), 60)
        with pytest.raises(DecodeError, match="mapping"):
            manager.load(Session(name="hello", identifier="abc"))

    def test_load_surfaces_store_error(self, manager: SessionManager) -> None:
        failing = MagicMock()
        failing.get.side_effect = StoreError("timeout")
        manager.store = failing
        with pytest.raises(StoreError, match="timeout"):
            manager.load(Session(name="hello", identifier="abc"))

    def test_load_decodes_with_session_name(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        saved, _ = _saved_cookie(manager, make_request, response, k="v")
        with pytest.raises(DecodeError):
            manager.load(Session(name="other", identifier=saved.identifier))


# ---------------------------------------------------------------------------
# save (persist)
# ---------------------------------------------------------------------------


class TestSessionManagerSave:
    def test_hello_scenario(
        self, manager: SessionManager, store: InMemoryStore,
        make_request: Any, response: Any,
    ) -> None:
        session = manager.new(make_request(), "hello")
        assert session.is_new is True
        session.values["k"] = "v"
        manager.save(make_request(), response, session)

        assert session.identifier
        raw = store.get(f"session::{session.identifier}".encode())
        assert raw is not None
        restored = Session(name="hello", identifier=session.identifier)
        assert manager.load(restored) is True
        assert restored.values == {"k": "v"}

        assert len(response.set_cookies) == 1
        cookie = response.cookie("hello")
        again = manager.new(make_request({"hello": cookie["value"]}), "hello")
        assert again.is_new is False
        assert again.values["k"] == "v"

    def test_round_trip_preserves_values(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        values = {"user": "ada", "count": 7, "flags": [True, False], "nested": {"a": None}}
        _, cookie = _saved_cookie(manager, make_request, response, **values)
        loaded = manager.new(make_request({"hello": cookie}), "hello")
        assert loaded.values == values

    def test_cookie_carries_identifier_not_values(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        saved, cookie = _saved_cookie(manager, make_request, response, secret="s3cr3t")
        assert manager.codecs[0].decode("hello", cookie) == saved.identifier

    def test_cookie_attributes_follow_options(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        session = manager.new(make_request(), "hello")
        session.options.path = "/app"
        session.options.secure = True
        session.options.max_age = 600
        manager.save(make_request(), response, session)
        cookie = response.cookie("hello")
        assert cookie["path"] == "/app"
        assert cookie["secure"] is True
        assert cookie["max_age"] == 600
        assert cookie["httponly"] is True
        assert cookie["samesite"] == "lax"

    def test_ttl_uses_session_max_age(self, make_request: Any, response: Any) -> None:
        store = MagicMock()
        store.set.return_value = True
        manager = SessionManager(store, b"k" * 32)
        session = manager.new(make_request(), "hello")
        session.options.max_age = 120
        manager.save(make_request(), response, session)
        key, _, ttl = store.set.call_args.args
        assert key == f"session::{session.identifier}".encode()
        assert ttl == 120

    def test_resave_keeps_identifier(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        session, _ = _saved_cookie(manager, make_request, response, k="v")
        identifier = session.identifier
        session.values["k"] = "w"
        manager.save(make_request(), response, session)
        assert session.identifier == identifier
        restored = Session(name="hello", identifier=identifier)
        manager.load(restored)
        assert restored.values == {"k": "w"}

    def test_store_write_failure_raises_and_sends_no_cookie(
        self, make_request: Any, response: Any
    ) -> None:
        store = MagicMock()
        store.set.side_effect = StoreError("disk full")
        manager = SessionManager(store, b"k" * 32)
        session = manager.new(make_request(), "hello")
        with pytest.raises(StoreError, match="disk full"):
            manager.save(make_request(), response, session)
        assert response.set_cookies == []

    def test_store_rejected_write_raises(self, make_request: Any, response: Any) -> None:
        store = MagicMock()
        store.set.return_value = False
        manager = SessionManager(store, b"k" * 32)
        session = manager.new(make_request(), "hello")
        with pytest.raises(StoreError):
            manager.save(make_request(), response, session)
        assert response.set_cookies == []


# ---------------------------------------------------------------------------
# Size ceiling
# ---------------------------------------------------------------------------


class TestSizeCeiling:
    def test_oversized_values_fail_before_store_write(
        self, manager: SessionManager, store: InMemoryStore,
        make_request: Any, response: Any,
    ) -> None:
        session = manager.new(make_request(), "hello")
        session.values["big"] = "x" * 6144
        with pytest.raises(ValueTooLongError):
            manager.save(make_request(), response, session)
        assert len(store) == 0
        assert session.identifier == ""
        assert response.set_cookies == []

    def test_oversized_update_leaves_previous_entry(
        self, manager: SessionManager, store: InMemoryStore,
        make_request: Any, response: Any,
    ) -> None:
        session, _ = _saved_cookie(manager, make_request, response, k="v")
        session.values["big"] = "x" * 6144
        with pytest.raises(EncodeError):
            manager.save(make_request(), FakeResponseSink(), session)
        restored = Session(name="hello", identifier=session.identifier)
        manager.load(restored)
        assert restored.values == {"k": "v"}

    def test_unserializable_values_raise_encode_error(
        self, manager: SessionManager, store: InMemoryStore,
        make_request: Any, response: Any,
    ) -> None:
        session = manager.new(make_request(), "hello")
        session.values["obj"] = object()
        with pytest.raises(EncodeError):
            manager.save(make_request(), response, session)
        assert len(store) == 0


class FakeResponseSink:
    def set_cookie(self, key: str, value: str = "", **kwargs: Any) -> None:
        raise AssertionError("no cookie expected")


# ---------------------------------------------------------------------------
# save (delete) / erase
# ---------------------------------------------------------------------------


class TestSessionManagerDelete:
    def test_zero_max_age_deletes_entry(
        self, manager: SessionManager, store: InMemoryStore,
        make_request: Any, response: Any,
    ) -> None:
        session, _ = _saved_cookie(manager, make_request, response, k="v")
        session.options.max_age = 0
        manager.save(make_request(), response, session)
        assert store.get(f"session::{session.identifier}".encode()) is None

    def test_negative_max_age_clears_cookie(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        session, _ = _saved_cookie(manager, make_request, response, k="v")
        session.options.max_age = -1
        manager.save(make_request(), response, session)
        cookie = response.set_cookies[-1]
        assert cookie["key"] == "hello"
        assert cookie["value"] == ""
        assert cookie["max_age"] == 0
        assert cookie["path"] == "/"

    def test_delete_never_persisted_session_succeeds(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        session = manager.new(make_request(), "hello")
        session.options.max_age = 0
        manager.save(make_request(), response, session)
        manager.save(make_request(), response, session)
        assert [c["value"] for c in response.set_cookies] == ["", ""]

    def test_delete_twice_succeeds(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        session, _ = _saved_cookie(manager, make_request, response, k="v")
        session.options.max_age = -1
        manager.save(make_request(), response, session)
        session.options.max_age = 0
        manager.save(make_request(), response, session)
        assert response.set_cookies[-1]["value"] == ""

    def test_delete_failure_raises_and_sends_no_cookie(
        self, make_request: Any, response: Any
    ) -> None:
        store = MagicMock()
        store.delete.return_value = False
        manager = SessionManager(store, b"k" * 32)
        session = Session(name="hello", identifier="abc", options=SessionOptions(max_age=0))
        with pytest.raises(StoreError, match="error deleting"):
            manager.save(make_request(), response, session)
        assert response.set_cookies == []

    def test_erase_uses_prefixed_key(self) -> None:
        store = MagicMock()
        store.delete.return_value = True
        manager = SessionManager(store, b"k" * 32, key_prefix="app:")
        manager.erase(Session(name="hello", identifier="abc"))
        store.delete.assert_called_once_with(b"app:abc")

    def test_erase_without_identifier_skips_store(self) -> None:
        store = MagicMock()
        manager = SessionManager(store, b"k" * 32)
        manager.erase(Session(name="hello"))
        store.delete.assert_not_called()


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


class TestIdentifierGeneration:
    _ALPHABET = set("ABCDEFGHIJKLMNOPQRSTUVWXYZ234567")

    def test_identifier_is_cookie_safe(self) -> None:
        identifier = generate_session_id()
        assert identifier
        assert set(identifier) <= self._ALPHABET
        assert "=" not in identifier

    def test_identifier_encodes_32_bytes(self) -> None:
        assert len(generate_session_id()) == 52

    def test_identifiers_are_unique(self) -> None:
        assert len({generate_session_id() for _ in range(200)}) == 200

    def test_save_assigns_distinct_identifiers(
        self, manager: SessionManager, make_request: Any, response: Any
    ) -> None:
        first = manager.new(make_request(), "hello")
        second = manager.new(make_request(), "hello")
        manager.save(make_request(), response, first)
        manager.save(make_request(), response, second)
        assert first.identifier and second.identifier
        assert first.identifier != second.identifier


# ---------------------------------------------------------------------------
# Options isolation
# ---------------------------------------------------------------------------


class TestOptionsIsolation:
    def test_default_mutation_does_not_leak_into_session(
        self, manager: SessionManager, make_request: Any
    ) -> None:
        session = manager.new(make_request(), "hello")
        manager.options.path = "/foo"
        assert session.options.path == "/"

    def test_session_mutation_does_not_leak_into_defaults(
        self, manager: SessionManager, make_request: Any
    ) -> None:
        session = manager.new(make_request(), "hello")
        session.options.max_age = -1
        assert manager.options.max_age == 86400 * 30

    def test_sessions_do_not_share_options(
        self, manager: SessionManager, make_request: Any
    ) -> None:
        first = manager.new(make_request(), "a")
        second = manager.new(make_request(), "b")
        assert first.options is not second.options
        assert first.options is not manager.options


# ---------------------------------------------------------------------------
# set_max_age
# ---------------------------------------------------------------------------


class TestSetMaxAge:
    def test_updates_defaults_and_codecs(self, manager: SessionManager) -> None:
        manager.set_max_age(3600)
        assert manager.options.max_age == 3600
        assert all(codec.max_age == 3600 for codec in manager.codecs)

    def test_existing_sessions_keep_their_max_age(
        self, manager: SessionManager, make_request: Any
    ) -> None:
        session = manager.new(make_request(), "hello")
        manager.set_max_age(60)
        assert session.options.max_age == 86400 * 30


class TestTokenLifetimeFollowsOptions:
    def test_codecs_take_configured_max_age(self, store: InMemoryStore) -> None:
        manager = SessionManager(store, b"h" * 32, options=SessionOptions(max_age=86400 * 90))
        assert all(codec.max_age == 86400 * 90 for codec in manager.codecs)

    def test_non_positive_max_age_keeps_codec_default(self, store: InMemoryStore) -> None:
        manager = SessionManager(store, b"h" * 32, options=SessionOptions(max_age=0))
        assert all(codec.max_age == 86400 * 30 for codec in manager.codecs)

    def test_explicit_codecs_are_left_alone(self, store: InMemoryStore) -> None:
        codec = SecureCookieCodec(b"h" * 32, max_age=60)
        SessionManager(store, options=SessionOptions(max_age=86400 * 90), codecs=[codec])
        assert codec.max_age == 60

    def test_session_survives_past_thirty_days(
        self, make_request: Any, response: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        now = [1_000_000.0]
        monkeypatch.setattr(SecureCookieCodec, "_timestamp", staticmethod(lambda: int(now[0])))
        store = InMemoryStore(clock=lambda: now[0])
        manager = SessionManager(store, b"h" * 32, options=SessionOptions(max_age=86400 * 90))
        _, cookie = _saved_cookie(manager, make_request, response, user="ada")

        now[0] += 86400 * 45
        resumed = manager.new(make_request({"hello": cookie}), "hello")
        assert resumed.is_new is False
        assert resumed.values == {"user": "ada"}


class TestNonStringKeys:
    def test_save_rejects_non_string_key(
        self, manager: SessionManager, store: InMemoryStore,
        make_request: Any, response: Any,
    ) -> None:
        session = manager.new(make_request(), "hello")
        session.values[1] = "a"
        with pytest.raises(EncodeError, match="keys must be strings"):
            manager.save(make_request(), response, session)
        assert session.identifier == ""
        assert len(store) == 0
        assert response.set_cookies == []

    def test_save_rejects_nested_non_string_key(
        self, manager: SessionManager, store: InMemoryStore,
        make_request: Any, response: Any,
    ) -> None:
        session = manager.new(make_request(), "hello")
        session.values["outer"] = [{"ok": 1}, {2: "b"}]
        with pytest.raises(EncodeError):
            manager.save(make_request(), response, session)
        assert len(store) == 0
