"""Authenticated, optionally encrypted cookie tokens.

Token layout before the outer base64url encoding::

    timestamp|value|mac

where ``value`` is the base64url-encoded (and, when a block key is set,
AES-GCM encrypted) serialized payload, and ``mac`` is an HMAC-SHA256 over
``name|timestamp|value``.  Binding the cookie name into the MAC stops a
token issued for one cookie from being replayed under another.

Classes
-------
SecureCookieCodec
    Encodes and decodes values with a hash key and an optional block key.

Functions
---------
codecs_from_pairs
    Build one codec per ``(hash_key, block_key)`` pair for key rotation.
generate_random_key
    Return cryptographically random key material.
"""
from __future__ import annotations

import base64
import binascii
import os
import time
from typing import Any

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from kv_cookie_sessions.codec.base import (
    Codec,
    CodecError,
    DecodeError,
    DecryptionError,
    MacInvalidError,
    TimestampError,
    TokenTooLongError,
    ValueTooLongError,
)
from kv_cookie_sessions.codec.serializers import JSONSerializer, Serializer

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_MAX_AGE: int = 86400 * 30
DEFAULT_MAX_LENGTH: int = 4096

_NONCE_LENGTH: int = 12  # 96-bit nonce per NIST SP 800-38D
_BLOCK_KEY_LENGTHS: frozenset[int] = frozenset({16, 24, 32})


class HashKeyNotSetError(CodecError):
    """Raised when a codec is built without an authentication key."""

    def __init__(self) -> None:
        super().__init__("hash key is not set")


def generate_random_key(length: int = 32) -> bytes:
    """Return ``length`` bytes of cryptographically random key material."""
    return os.urandom(length)


class SecureCookieCodec(Codec):
    """HMAC-authenticated codec with optional AES-GCM encryption.

    Parameters
    ----------
    hash_key:
        Key used to authenticate tokens.  32 or 64 bytes is recommended.
    block_key:
        Optional key used to encrypt the payload; must be 16, 24, or 32
        bytes to select AES-128, AES-192, or AES-256.
    serializer:
        Converts values to and from bytes.  Defaults to JSON.
    max_age:
        Tokens older than this many seconds are rejected.  ``0`` disables
        the check.
    min_age:
        Tokens younger than this many seconds are rejected.  ``0`` (the
        default) disables the check.
    max_length:
        Ceiling on the encoded token length.  ``0`` disables the check.

    Raises
    ------
    HashKeyNotSetError
        If ``hash_key`` is empty.
    ValueError
        If ``block_key`` has an unsupported length.
    """

    def __init__(
        self,
        hash_key: bytes,
        block_key: bytes | None = None,
        *,
        serializer: Serializer | None = None,
        max_age: int = DEFAULT_MAX_AGE,
        min_age: int = 0,
        max_length: int = DEFAULT_MAX_LENGTH,
    ) -> None:
        if not hash_key:
            raise HashKeyNotSetError()
        self._hash_key = bytes(hash_key)
        self._aesgcm: AESGCM | None = None
        if block_key:
            if len(block_key) not in _BLOCK_KEY_LENGTHS:
                raise ValueError(
                    f"Block key must be 16, 24, or 32 bytes, got {len(block_key)}"
                )
            self._aesgcm = AESGCM(bytes(block_key))
        self.serializer: Serializer = serializer or JSONSerializer()
        self.max_age = max_age
        self.min_age = min_age
        self.max_length = max_length

    # ------------------------------------------------------------------
    # Codec interface
    # ------------------------------------------------------------------

    def encode(self, name: str, value: Any) -> str:
        """Serialize, encrypt, sign, and encode ``value`` for ``name``.

        Raises
        ------
        EncodeError
            If the value cannot be serialized.
        ValueTooLongError
            If the resulting token exceeds ``max_length``.
        """
        payload = self.serializer.serialize(value)
        if self._aesgcm is not None:
            nonce = os.urandom(_NONCE_LENGTH)
            payload = nonce + self._aesgcm.encrypt(nonce, payload, None)
        encoded_value = base64.urlsafe_b64encode(payload)
        timestamp = str(self._timestamp()).encode("ascii")
        mac = self._signer(name, timestamp, encoded_value).finalize()
        token = base64.urlsafe_b64encode(timestamp + b"|" + encoded_value + b"|" + mac)
        if self.max_length and len(token) > self.max_length:
            raise ValueTooLongError(
                f"encoded value is too long: {len(token)} > {self.max_length}"
            )
        return token.decode("ascii")

    def decode(self, name: str, token: str) -> Any:
        """Verify and decode ``token`` previously issued for ``name``.

        Raises
        ------
        DecodeError
            On any malformed, tampered, expired, or undecryptable token.
        """
        if self.max_length and len(token) > self.max_length:
            raise TokenTooLongError(
                f"value to decode is too long: {len(token)} > {self.max_length}"
            )
        raw = _strict_b64decode(token)
        parts = raw.split(b"|", 2)
        if len(parts) != 3:
            raise MacInvalidError("token is malformed")
        timestamp, encoded_value, mac = parts

        try:
            self._signer(name, timestamp, encoded_value).verify(mac)
        except InvalidSignature:
            raise MacInvalidError("the value is not valid") from None

        try:
            issued = int(timestamp)
        except ValueError:
            raise TimestampError("invalid timestamp") from None
        now = self._timestamp()
        if self.min_age and issued > now - self.min_age:
            raise TimestampError("timestamp is too new")
        if self.max_age and issued < now - self.max_age:
            raise TimestampError("expired timestamp")

        payload = _strict_b64decode(encoded_value)
        if self._aesgcm is not None:
            if len(payload) <= _NONCE_LENGTH:
                raise DecryptionError("the value could not be decrypted")
            nonce, ciphertext = payload[:_NONCE_LENGTH], payload[_NONCE_LENGTH:]
            try:
                payload = self._aesgcm.decrypt(nonce, ciphertext, None)
            except InvalidTag:
                raise DecryptionError("the value could not be decrypted") from None
        return self.serializer.deserialize(payload)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _signer(self, name: str, timestamp: bytes, encoded_value: bytes) -> hmac.HMAC:
        signer = hmac.HMAC(self._hash_key, hashes.SHA256())
        signer.update(name.encode("utf-8") + b"|" + timestamp + b"|" + encoded_value)
        return signer

    @staticmethod
    def _timestamp() -> int:
        return int(time.time())

    def __repr__(self) -> str:
        return (
            f"SecureCookieCodec(encrypted={self._aesgcm is not None}, "
            f"max_age={self.max_age!r}, max_length={self.max_length!r})"
        )


def _strict_b64decode(data: str | bytes) -> bytes:
    """Decode base64url, rejecting anything that does not re-encode exactly.

    The standard decoder silently drops stray characters and ignores
    unused padding bits, so two different tokens could otherwise decode to
    the same bytes.
    """
    try:
        raw_token = data.encode("ascii") if isinstance(data, str) else data
        decoded = base64.urlsafe_b64decode(raw_token)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"token is not valid base64: {exc}") from exc
    if base64.urlsafe_b64encode(decoded) != raw_token:
        raise DecodeError("token is not canonical base64")
    return decoded


def codecs_from_pairs(*keys: bytes | None, max_age: int | None = None) -> list[SecureCookieCodec]:
    """Return one codec per ``(hash_key, block_key)`` pair.

    Keys are given flat, in pairs: the first key of each pair
    authenticates and the second encrypts.  The block key may be ``None``
    or omitted in the last pair.  Codecs are returned in the same order so
    the first pair issues new tokens and the rest only verify old ones.

    Parameters
    ----------
    keys:
        Alternating hash and block keys.
    max_age:
        Optional token max age applied to every codec.
    """
    codecs: list[SecureCookieCodec] = []
    for index in range(0, len(keys), 2):
        hash_key = keys[index]
        block_key = keys[index + 1] if index + 1 < len(keys) else None
        codec = SecureCookieCodec(hash_key or b"", block_key)
        if max_age is not None:
            codec.max_age = max_age
        codecs.append(codec)
    return codecs
