"""Persistent TTL cache on top of a single SQLite file.

Each entry is stored as ``[8-byte varint expiry][payload]`` (see
:mod:`fcache.infrastructure.record_codec`). Expiry is evaluated lazily: an
entry whose remaining TTL is negative is reported as absent, but its row stays
in the file until it is overwritten or deleted. Nothing sweeps expired rows in
the background.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import timedelta
from pathlib import Path
from typing import Optional, Union

from fcache.domain.entities import KV, NO_TTL, to_bytes, to_text
from fcache.domain.errors import KeyExpired, MalformedRecord, StorageFailure
from fcache.infrastructure import record_codec
from fcache.infrastructure.clock import TTL, Clock, now_millis
from fcache.infrastructure.record_codec import Record
from fcache.logging_config import CacheStats, get_logger
from fcache.repositories.entries import EntriesRepo
from fcache.repositories.sqlite.entries_sqlite import EntriesRepoSqlite

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "f-cache"
DEFAULT_TIMEOUT = 5.0


class FileCache:
    """TTL-aware key-value cache persisted in one database file.

    - ``path`` may start with ``~``; it is expanded to the user's home.
    - The database is opened on first use and reused until :meth:`close`.
    - Every operation runs in exactly one storage transaction.
    - ``clock`` returns the current Unix time in milliseconds.
    """

    def __init__(
        self,
        path: Union[str, Path],
        *,
        bucket: str = DEFAULT_BUCKET,
        timeout: float = DEFAULT_TIMEOUT,
        clock: Optional[Clock] = None,
        stats: Optional[CacheStats] = None,
    ) -> None:
        self.path = Path(path).expanduser()
        self.bucket = bucket
        self.timeout = float(timeout)
        self._clock: Clock = clock or now_millis
        self.stats = stats or CacheStats()
        self._repo: Optional[EntriesRepo] = None
        self._open_lock = threading.Lock()

    @classmethod
    def from_settings(cls, *, clock: Optional[Clock] = None) -> "FileCache":
        """Build a cache from :mod:`fcache.config.settings`.

        Also configures the ``fcache`` logger from the same settings.
        """
        from fcache.config.settings import settings

        get_logger()
        return cls(settings.path, bucket=settings.bucket, timeout=settings.timeout, clock=clock)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    def _open(self) -> EntriesRepo:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self.path),
                timeout=self.timeout,
                isolation_level=None,
                check_same_thread=False,
            )
        except (OSError, sqlite3.Error) as exc:
            logger.error("Failed to open cache file", extra={"path": str(self.path)})
            raise StorageFailure(
                f"cannot open cache at {self.path}: {exc}",
                cause=exc,
                context={"path": str(self.path)},
            ) from exc
        logger.debug("Opened cache file", extra={"path": str(self.path), "bucket": self.bucket})
        return EntriesRepoSqlite(conn, self.bucket)

    def _entries(self) -> EntriesRepo:
        repo = self._repo
        if repo is None:
            with self._open_lock:
                if self._repo is None:
                    self._repo = self._open()
                repo = self._repo
        return repo

    def close(self) -> None:
        """Close the database; the next operation reopens it.

        Logs the read hit-rate when the cache was open and served lookups.
        """
        with self._open_lock:
            if self._repo is None:
                return
            self._repo.close()
            self._repo = None
        if sum(self.stats.snapshot()):
            self.stats.log_hit_rate()

    def __enter__(self) -> "FileCache":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------
    def _decode(self, key: str, raw: bytes) -> Record:
        try:
            return record_codec.decode(raw)
        except MalformedRecord as exc:
            exc.context.setdefault("key", key)
            logger.warning("Malformed cache record", extra={"key": key, "length": len(raw)})
            raise

    def _live_record(self, key: str) -> tuple[Optional[Record], int]:
        raw = self._entries().get(key)
        now = self._clock()
        if raw is None:
            return None, now
        record = self._decode(key, raw)
        if record.is_expired(now):
            return None, now
        return record, now

    def get_bytes(self, key: str) -> Optional[bytes]:
        """Return the stored bytes, or ``None`` if the key is absent or expired."""
        record, _ = self._live_record(key)
        if record is None:
            self.stats.record_miss()
            logger.debug("Cache miss", extra={"key": key})
            return None
        self.stats.record_hit()
        return record.payload

    def get(self, key: str) -> Optional[str]:
        """Return the stored value as text, or ``None`` if absent or expired.

        Bytes that are not valid UTF-8 decode to lone surrogates, so
        ``set(key, get(key), ttl)`` stores the same payload again.
        """
        data = self.get_bytes(key)
        if data is None:
            return None
        return to_text(data)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        record, _ = self._live_record(key)
        return record is not None

    def ttl(self, key: str) -> timedelta:
        """Remaining time to live, or :data:`NO_TTL` if absent or expired."""
        record, now = self._live_record(key)
        if record is None:
            return NO_TTL
        return timedelta(milliseconds=record.remaining_millis(now))

    def range(self) -> list[KV]:
        """Return every live entry in key order.

        Expired rows are skipped but left in place. A malformed row aborts
        the whole scan.
        """
        rows = self._entries().scan()
        now = self._clock()
        out: list[KV] = []
        skipped = 0
        for key, raw in rows:
            record = self._decode(key, raw)
            if record.is_expired(now):
                skipped += 1
                continue
            out.append(
                KV(
                    key=key,
                    data=record.payload,
                    ttl=timedelta(milliseconds=record.remaining_millis(now)),
                )
            )
        logger.debug("Scanned cache", extra={"live": len(out), "expired": skipped})
        return out

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------
    def set_bytes(self, key: str, val: bytes, ttl: TTL) -> None:
        """Store ``val`` under ``key`` for ``ttl``, overwriting any previous entry."""
        raw = record_codec.encode(ttl, val, self._clock())
        self._entries().put(key, raw)
        logger.debug("Cache set", extra={"key": key, "size": len(val)})

    def set(self, key: str, val: str, ttl: TTL) -> None:
        self.set_bytes(key, to_bytes(val), ttl)

    def expire(self, key: str, ttl: TTL) -> None:
        """Give a live key a new deadline of ``now + ttl``.

        Runs as one read-modify-write transaction. Raises :class:`KeyExpired`
        if the key is absent or already expired; the key is not created.
        """

        def refresh(raw: Optional[bytes]) -> Optional[bytes]:
            now = self._clock()
            if raw is None:
                raise KeyExpired(f"key {key!r} does not exist", context={"key": key})
            record = self._decode(key, raw)
            if record.is_expired(now):
                raise KeyExpired(f"key {key!r} has expired", context={"key": key})
            return record_codec.encode(ttl, record.payload, now)

        self._entries().update(key, refresh)
        logger.debug("Cache expire", extra={"key": key})

    def delete(self, key: str) -> None:
        """Remove ``key`` regardless of its expiry; absent keys are ignored."""
        self._entries().delete(key)
        logger.debug("Cache delete", extra={"key": key})


def new(path: Union[str, Path]) -> FileCache:
    """Return a cache backed by the file at ``path`` (``~`` is expanded)."""
    return FileCache(path)
