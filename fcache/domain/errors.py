"""
Exception hierarchy for the cache.

"Not found" is never an exception: absent and expired keys come back as
``None`` (or :data:`fcache.domain.entities.NO_TTL`).
"""

from __future__ import annotations

from typing import Any, Optional


class CacheError(Exception):
    """Base exception for all cache errors."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


class MalformedRecord(CacheError, ValueError):
    """Raised when a stored value cannot be decoded as an expiry + payload record."""


class KeyExpired(CacheError, KeyError):
    """Raised by ``expire`` when the key is absent or already expired."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""


class StorageFailure(CacheError):
    """Raised when the storage engine fails (open, I/O or transaction error)."""

    def __init__(
        self,
        message: str,
        *,
        cause: Optional[BaseException] = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context=context)
        self.cause = cause


__all__ = ["CacheError", "MalformedRecord", "KeyExpired", "StorageFailure"]
