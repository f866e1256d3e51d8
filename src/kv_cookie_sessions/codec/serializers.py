"""Value serializers used by :class:`SecureCookieCodec`.

Classes
-------
- Serializer      — protocol for value <-> bytes conversion
- JSONSerializer  — JSON (default)
- NopSerializer   — passes ``bytes`` through untouched
"""
from __future__ import annotations

import json
from typing import Any, Protocol

from kv_cookie_sessions.codec.base import DecodeError, EncodeError


class Serializer(Protocol):
    def serialize(self, value: Any) -> bytes: ...

    def deserialize(self, data: bytes) -> Any: ...


class JSONSerializer:
    """Serialize values as compact UTF-8 JSON.

    Mapping keys must be strings, at any depth, since JSON would silently
    turn them into strings and the value would not survive a round trip.
    Anything ``json`` cannot represent raises :class:`EncodeError`.
    """

    def serialize(self, value: Any) -> bytes:
        _check_keys(value)
        try:
            return json.dumps(value, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncodeError(f"value is not JSON serializable: {exc}") from exc

    def deserialize(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DecodeError(f"payload is not valid JSON: {exc}") from exc


def _check_keys(value: Any) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise EncodeError(
                    f"mapping keys must be strings, got {type(key).__name__} key {key!r}"
                )
            _check_keys(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_keys(item)


class NopSerializer:
    """Pass raw ``bytes`` through without any conversion."""

    def serialize(self, value: Any) -> bytes:
        if not isinstance(value, (bytes, bytearray)):
            raise EncodeError(
                f"NopSerializer only accepts bytes, got {type(value).__name__}"
            )
        return bytes(value)

    def deserialize(self, data: bytes) -> Any:
        return data
