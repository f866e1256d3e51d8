"""Abstract base class for key-value store backends.

The session manager only needs three point operations against the
backing store: read a key, write a key with a time-to-live, and delete a
key.  Keys and values are raw ``bytes``; the manager owns encoding and
key namespacing.

Classes
-------
- KeyValueStore  — abstract base for all backends
- StoreError     — raised when a backend cannot complete an operation
"""
from __future__ import annotations

from abc import ABC, abstractmethod


class StoreError(RuntimeError):
    """Raised when the backend is unreachable or fails internally.

    A missing key is *not* a store error; ``get`` returns ``None`` for it.
    """


class KeyValueStore(ABC):
    """Protocol for reading and writing raw session payloads by key.

    Implementations must be safe for concurrent use by many request
    handlers: the manager shares one store instance across all requests
    and never locks it.
    """

    @abstractmethod
    def get(self, key: bytes) -> bytes | None:
        """Return the value stored under ``key``.

        Parameters
        ----------
        key:
            Fully namespaced storage key.

        Returns
        -------
        bytes | None
            The stored value, or ``None`` when the key does not exist or
            has expired.

        Raises
        ------
        StoreError
            If the backend fails.
        """

    @abstractmethod
    def set(self, key: bytes, value: bytes, ttl: int) -> bool:
        """Store ``value`` under ``key``, expiring ``ttl`` seconds from now.

        Parameters
        ----------
        key:
            Fully namespaced storage key.
        value:
            Encoded payload.
        ttl:
            Positive number of seconds before the entry expires.

        Returns
        -------
        bool
            True when the backend acknowledged the write.

        Raises
        ------
        StoreError
            If the backend fails.
        """

    @abstractmethod
    def delete(self, key: bytes) -> bool:
        """Remove ``key`` from the store.

        Deleting a key that does not exist is not an error.

        Returns
        -------
        bool
            True when the backend acknowledged the request.

        Raises
        ------
        StoreError
            If the backend fails.
        """

    def close(self) -> None:
        """Release any resources held by the backend."""

    def __enter__(self) -> KeyValueStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
