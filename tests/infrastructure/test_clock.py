from __future__ import annotations

import time
from datetime import timedelta

import pytest

from fcache.infrastructure.clock import now_millis, to_millis


def test_now_millis_tracks_time(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("time.time_ns", lambda: 1_700_000_000_123_456_789)
    assert now_millis() == 1_700_000_000_123


def test_now_millis_is_unix_ms() -> None:
    assert abs(now_millis() - time.time() * 1000) < 1_000


@pytest.mark.parametrize(
    "ttl, expected",
    [
        (timedelta(minutes=1), 60_000),
        (timedelta(microseconds=999), 0),
        (timedelta(0), 0),
        (2, 2_000),
        (0.0015, 1),
        (-1, -1_000),
        (1.005, 1_005),
        (-0.0015, -1),
        (timedelta(microseconds=-1_500), -1),
        (10**15, 10**18),
    ],
)
def test_to_millis(ttl: object, expected: int) -> None:
    assert to_millis(ttl) == expected  # type: ignore[arg-type]


def test_to_millis_rejects_other_types() -> None:
    with pytest.raises(TypeError):
        to_millis(True)
    with pytest.raises(TypeError):
        to_millis(None)  # type: ignore[arg-type]
