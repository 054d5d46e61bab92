"""fcache: a persistent, TTL-aware key-value cache in a single SQLite file."""

from .cache import FileCache, new
from .domain import KV, NO_TTL, CacheError, KeyExpired, MalformedRecord, StorageFailure

__all__ = [
    "FileCache",
    "new",
    "KV",
    "NO_TTL",
    "CacheError",
    "KeyExpired",
    "MalformedRecord",
    "StorageFailure",
]
