"""Domain types shared by the cache layers."""

from .entities import KV, NO_TTL
from .errors import CacheError, KeyExpired, MalformedRecord, StorageFailure

__all__ = [
    "KV",
    "NO_TTL",
    "CacheError",
    "KeyExpired",
    "MalformedRecord",
    "StorageFailure",
]
