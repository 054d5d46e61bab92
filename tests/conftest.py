from __future__ import annotations

import logging
from collections.abc import Generator
from dataclasses import dataclass
from pathlib import Path

import pytest

from fcache.cache import FileCache
from fcache.logging_config import LOG_NAME


@dataclass
class FakeClock:
    """Millisecond wall clock that only moves when told to."""

    t: int = 1_700_000_000_000

    def now(self) -> int:
        return self.t

    def advance(self, ms: int) -> None:
        self.t += ms


@pytest.fixture(autouse=True)
def reset_logger_handlers() -> Generator[None, None, None]:
    """Ensure every test starts and ends with an unconfigured ``fcache`` logger."""

    def _reset() -> None:
        logger = logging.getLogger(LOG_NAME)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True
        logger.setLevel(logging.NOTSET)

    _reset()
    yield
    _reset()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "cache.db"


@pytest.fixture()
def cache(db_path: Path, clock: FakeClock) -> Generator[FileCache, None, None]:
    c = FileCache(db_path, clock=clock.now)
    try:
        yield c
    finally:
        c.close()
