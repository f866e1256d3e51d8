"""Codec interface and error taxonomy.

A codec turns an arbitrary value into an opaque, URL-safe token bound to
a name, and reverses the operation.  Several codecs can be configured at
once to support key rotation: the first one encodes, and every one of them
is tried in order on decode.

Classes
-------
- Codec              — abstract base for token codecs
- CodecError         — base class for all codec failures
- EncodeError        — a value could not be turned into a token
- DecodeError        — a token failed verification or parsing
- MultiDecodeError   — no configured codec could decode a token

Functions
---------
- encode_multi  — encode with the first codec
- decode_multi  — decode with the first codec that verifies
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Sequence


class CodecError(ValueError):
    """Base class for every codec failure."""


class EncodeError(CodecError):
    """Raised when a value cannot be encoded into a token."""


class DecodeError(CodecError):
    """Raised when a token fails authentication, decryption, or parsing."""


class ValueTooLongError(EncodeError):
    """Raised when an encoded token exceeds the codec's length ceiling."""


class TokenTooLongError(DecodeError):
    """Raised when a token presented for decoding exceeds the ceiling."""


class MacInvalidError(DecodeError):
    """Raised when a token's MAC does not match its content."""


class TimestampError(DecodeError):
    """Raised when a token's timestamp is malformed, too new, or expired."""


class DecryptionError(DecodeError):
    """Raised when an authenticated token cannot be decrypted."""


class NoCodecsError(CodecError):
    """Raised when encode/decode is attempted without any codec."""

    def __init__(self) -> None:
        super().__init__("no codecs provided")


class MultiDecodeError(DecodeError):
    """Raised by :func:`decode_multi` when every codec rejects a token.

    Parameters
    ----------
    errors:
        The individual failure from each codec, in the order they were
        tried.
    """

    def __init__(self, errors: Sequence[CodecError]) -> None:
        self.errors: list[CodecError] = list(errors)
        details = "; ".join(str(err) for err in self.errors)
        super().__init__(f"token rejected by all {len(self.errors)} codecs: {details}")


class Codec(ABC):
    """Encodes values into named tokens and decodes them back.

    Implementations must be safe to call concurrently.
    """

    @abstractmethod
    def encode(self, name: str, value: Any) -> str:
        """Return a token for ``value`` bound to ``name``.

        Raises
        ------
        EncodeError
            If ``value`` cannot be serialized or the token is too long.
        """

    @abstractmethod
    def decode(self, name: str, token: str) -> Any:
        """Return the value carried by ``token``.

        Raises
        ------
        DecodeError
            If ``token`` was not produced by this codec for ``name``, was
            tampered with, or has expired.
        """


def encode_multi(name: str, value: Any, codecs: Sequence[Codec]) -> str:
    """Encode ``value`` with the first codec in ``codecs``.

    Later codecs only exist to decode tokens issued under older keys, so
    new tokens are always produced with the current one.
    """
    if not codecs:
        raise NoCodecsError()
    return codecs[0].encode(name, value)


def decode_multi(name: str, token: str, codecs: Sequence[Codec]) -> Any:
    """Decode ``token`` with the first codec that accepts it.

    Raises
    ------
    NoCodecsError
        If ``codecs`` is empty.
    MultiDecodeError
        If every codec rejects the token.
    """
    if not codecs:
        raise NoCodecsError()
    errors: list[CodecError] = []
    for codec in codecs:
        try:
            return codec.decode(name, token)
        except DecodeError as exc:
            errors.append(exc)
    raise MultiDecodeError(errors)
