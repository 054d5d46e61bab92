from __future__ import annotations

import time
from datetime import timedelta
from typing import Callable, Union

Clock = Callable[[], int]
TTL = Union[timedelta, int, float]


def now_millis() -> int:
    """Current wall-clock time as Unix milliseconds."""
    return time.time_ns() // 1_000_000


def to_millis(ttl: TTL) -> int:
    """Convert a ``timedelta`` or a number of seconds to whole milliseconds.

    Float seconds go through ``timedelta`` so they land on the microsecond
    grid first. Anything finer than a millisecond is truncated toward zero.
    """
    if isinstance(ttl, bool) or not isinstance(ttl, (timedelta, int, float)):
        raise TypeError(f"ttl must be a timedelta or a number of seconds, got {type(ttl).__name__}")
    if isinstance(ttl, int):
        return ttl * 1_000
    if isinstance(ttl, float):
        try:
            ttl = timedelta(seconds=ttl)
        except OverflowError:
            # beyond timedelta's range; sub-ms precision is meaningless here
            return int(ttl * 1_000)
    micros = (ttl.days * 86_400 + ttl.seconds) * 1_000_000 + ttl.microseconds
    millis = abs(micros) // 1_000
    return millis if micros >= 0 else -millis
