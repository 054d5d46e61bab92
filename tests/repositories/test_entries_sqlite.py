from __future__ import annotations

import sqlite3
from typing import Optional

import pytest

from fcache.domain.errors import StorageFailure
from fcache.repositories.sqlite.entries_sqlite import EntriesRepoSqlite


def _repo(bucket: str = "f-cache") -> EntriesRepoSqlite:
    return EntriesRepoSqlite(sqlite3.connect(":memory:", check_same_thread=False), bucket)


def _tables(repo: EntriesRepoSqlite) -> list[str]:
    cur = repo._conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
    return [row[0] for row in cur.fetchall()]


def test_reads_before_first_write_see_empty_container() -> None:
    repo = _repo()
    assert repo.get("k") is None
    assert list(repo.scan()) == []
    repo.delete("k")
    assert _tables(repo) == []


def test_put_creates_table_and_overwrites() -> None:
    repo = _repo()
    repo.put("k", b"one")
    assert _tables(repo) == ["f-cache"]
    repo.put("k", b"two")
    assert repo.get("k") == b"two"
    repo.delete("k")
    assert repo.get("k") is None
    repo.delete("k")


def test_scan_is_ordered_by_key_bytes() -> None:
    repo = _repo()
    for key in ["b", "a", "B", "10", "9", "é"]:
        repo.put(key, key.encode())
    assert [k for k, _ in repo.scan()] == ["10", "9", "B", "a", "b", "é"]


def test_bucket_name_is_quoted() -> None:
    repo = _repo('odd "name"')
    repo.put("k", b"v")
    assert repo.get("k") == b"v"
    assert _tables(repo) == ['odd "name"']


def test_update_writes_result_in_one_transaction() -> None:
    repo = _repo()
    repo.put("k", b"v")
    seen: list[Optional[bytes]] = []

    def mutate(raw: Optional[bytes]) -> Optional[bytes]:
        seen.append(raw)
        return b"v2"

    repo.update("k", mutate)
    assert seen == [b"v"]
    assert repo.get("k") == b"v2"


def test_update_returning_none_leaves_row() -> None:
    repo = _repo()
    repo.update("missing", lambda raw: None)
    assert repo.get("missing") is None
    assert _tables(repo) == []


def test_update_rolls_back_when_mutation_raises() -> None:
    repo = _repo()
    repo.put("k", b"v")

    def boom(raw: Optional[bytes]) -> Optional[bytes]:
        repo._conn.execute('DELETE FROM "f-cache" WHERE key = ?', ("k",))
        raise LookupError("nope")

    with pytest.raises(LookupError):
        repo.update("k", boom)
    assert repo.get("k") == b"v"
    assert not repo._conn.in_transaction


def test_sqlite_errors_become_storage_failure() -> None:
    repo = _repo()
    repo.put("k", b"v")

    def broken(raw: Optional[bytes]) -> Optional[bytes]:
        repo._conn.execute("SELECT * FROM no_such_table")
        return None

    with pytest.raises(StorageFailure) as excinfo:
        repo.update("k", broken)
    assert isinstance(excinfo.value.cause, sqlite3.OperationalError)
    assert isinstance(excinfo.value.__cause__, sqlite3.OperationalError)
    assert not repo._conn.in_transaction


def test_closed_connection_raises_storage_failure() -> None:
    repo = _repo()
    repo.close()
    with pytest.raises(StorageFailure):
        repo.get("k")
