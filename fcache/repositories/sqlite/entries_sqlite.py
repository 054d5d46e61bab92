from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from fcache.domain.errors import StorageFailure

from ..entries import EntriesRepo, Mutation

logger = logging.getLogger(__name__)


class EntriesRepoSqlite(EntriesRepo):
    """SQLite implementation of :class:`EntriesRepo`.

    The container is a single table named after the bucket. It is created on
    the first write; reads against a missing table see an empty container.
    """

    def __init__(self, conn: sqlite3.Connection, bucket: str) -> None:
        self._conn = conn
        self._conn.isolation_level = None  # explicit BEGIN/COMMIT below
        self._table = '"' + bucket.replace('"', '""') + '"'
        self._bucket = bucket
        self._lock = threading.RLock()

    @contextmanager
    def _transaction(self, *, write: bool) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE" if write else "BEGIN")
            except sqlite3.Error as exc:
                logger.error("Failed to begin transaction", extra={"bucket": self._bucket})
                raise StorageFailure(f"begin transaction failed: {exc}", cause=exc) from exc
            try:
                yield self._conn
            except sqlite3.Error as exc:
                self._conn.rollback()
                logger.error("Transaction failed", extra={"bucket": self._bucket})
                raise StorageFailure(f"transaction failed: {exc}", cause=exc) from exc
            except BaseException:
                self._conn.rollback()
                raise
            try:
                self._conn.execute("COMMIT")
            except sqlite3.Error as exc:
                self._conn.rollback()
                raise StorageFailure(f"commit failed: {exc}", cause=exc) from exc

    def _has_table(self, conn: sqlite3.Connection) -> bool:
        cur = conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (self._bucket,),
        )
        return cur.fetchone() is not None

    def _ensure_table(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                key TEXT PRIMARY KEY,
                value BLOB NOT NULL
            )
            """
        )

    def _select(self, conn: sqlite3.Connection, key: str) -> Optional[bytes]:
        row = conn.execute(f"SELECT value FROM {self._table} WHERE key = ?", (key,)).fetchone()
        if row:
            return bytes(row[0])
        return None

    def _upsert(self, conn: sqlite3.Connection, key: str, value: bytes) -> None:
        conn.execute(
            f"INSERT OR REPLACE INTO {self._table} (key, value) VALUES (?, ?)",
            (key, sqlite3.Binary(value)),
        )

    def get(self, key: str) -> Optional[bytes]:
        with self._transaction(write=False) as conn:
            if not self._has_table(conn):
                return None
            return self._select(conn, key)

    def put(self, key: str, value: bytes) -> None:
        with self._transaction(write=True) as conn:
            self._ensure_table(conn)
            self._upsert(conn, key, value)

    def delete(self, key: str) -> None:
        with self._transaction(write=True) as conn:
            if self._has_table(conn):
                conn.execute(f"DELETE FROM {self._table} WHERE key = ?", (key,))

    def scan(self) -> Iterator[tuple[str, bytes]]:
        # Rows are materialised inside the transaction so callers may raise
        # mid-iteration without leaving it open.
        with self._transaction(write=False) as conn:
            if not self._has_table(conn):
                return iter(())
            rows = conn.execute(f"SELECT key, value FROM {self._table} ORDER BY key").fetchall()
        return ((key, bytes(value)) for key, value in rows)

    def update(self, key: str, mutate: Mutation) -> None:
        with self._transaction(write=True) as conn:
            current = self._select(conn, key) if self._has_table(conn) else None
            new_value = mutate(current)
            if new_value is not None:
                self._ensure_table(conn)
                self._upsert(conn, key, new_value)

    def close(self) -> None:
        with self._lock:
            self._conn.close()
