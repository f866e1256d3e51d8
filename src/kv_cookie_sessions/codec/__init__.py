"""Codec subpackage: authenticated tokens for cookies and stored payloads."""
from __future__ import annotations

from kv_cookie_sessions.codec.base import (
    Codec,
    CodecError,
    DecodeError,
    DecryptionError,
    EncodeError,
    MacInvalidError,
    MultiDecodeError,
    NoCodecsError,
    TimestampError,
    TokenTooLongError,
    ValueTooLongError,
    decode_multi,
    encode_multi,
)
from kv_cookie_sessions.codec.securecookie import (
    HashKeyNotSetError,
    SecureCookieCodec,
    codecs_from_pairs,
    generate_random_key,
)
from kv_cookie_sessions.codec.serializers import JSONSerializer, NopSerializer, Serializer

__all__ = [
    "Codec",
    "CodecError",
    "DecodeError",
    "DecryptionError",
    "EncodeError",
    "HashKeyNotSetError",
    "JSONSerializer",
    "MacInvalidError",
    "MultiDecodeError",
    "NoCodecsError",
    "NopSerializer",
    "SecureCookieCodec",
    "Serializer",
    "TimestampError",
    "TokenTooLongError",
    "ValueTooLongError",
    "codecs_from_pairs",
    "decode_multi",
    "encode_multi",
    "generate_random_key",
]
