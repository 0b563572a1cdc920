"""Tests for the fixed-window burst limiters."""

from __future__ import annotations

import threading
from datetime import timedelta
from pathlib import Path

import pytest

from newsletter_ingest.ingestion.limiter import InMemoryBurstLimiter, parse_window
from newsletter_ingest.storage import SqliteBurstLimiter


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_in_memory_limiter_allows_five_then_denies_until_rollover() -> None:
    clock = FakeClock()
    limiter = InMemoryBurstLimiter(clock=clock)

    results = [
        limiter.check_burst_limit("gmail-api", "daily-fetch", 5, "1h")
        for _ in range(6)
    ]
    assert results == [True] * 5 + [False]

    clock.advance(3599)
    assert limiter.check_burst_limit("gmail-api", "daily-fetch", 5, "1h") is False

    clock.advance(1)
    assert limiter.check_burst_limit("gmail-api", "daily-fetch", 5, "1h") is True


def test_in_memory_limiter_keys_are_independent() -> None:
    limiter = InMemoryBurstLimiter(clock=FakeClock())
    assert limiter.check_burst_limit("gmail-api", "daily-fetch", 1, 60)
    assert not limiter.check_burst_limit("gmail-api", "daily-fetch", 1, 60)
    assert limiter.check_burst_limit("gmail-api", "health", 1, 60)
    assert limiter.check_burst_limit("other-api", "daily-fetch", 1, 60)


def test_in_memory_limiter_rejects_non_positive_ceiling() -> None:
    with pytest.raises(ValueError):
        InMemoryBurstLimiter().check_burst_limit("r", "o", 0, "1h")


@pytest.mark.parametrize(
    ("window", "expected"),
    [
        ("30s", 30.0),
        ("15m", 900.0),
        ("1h", 3600.0),
        ("1d", 86400.0),
        ("250ms", 0.25),
        (timedelta(minutes=2), 120.0),
        (45, 45.0),
    ],
)
def test_parse_window_accepts_supported_forms(window, expected) -> None:
    assert parse_window(window) == pytest.approx(expected)


@pytest.mark.parametrize("window", ["", "1w", "soon", 0, "-5s"])
def test_parse_window_rejects_invalid_values(window) -> None:
    with pytest.raises(ValueError):
        parse_window(window)


def test_sqlite_limiter_shares_state_between_instances(tmp_path: Path) -> None:
    db_path = tmp_path / "burst.db"
    clock = FakeClock()
    first = SqliteBurstLimiter(db_path, clock=clock)
    second = SqliteBurstLimiter(db_path, clock=clock)

    allowed = [
        limiter.check_burst_limit("gmail-api", "daily-fetch", 5, "1h")
        for limiter in (first, second, first, second, first)
    ]
    assert allowed == [True] * 5
    assert second.check_burst_limit("gmail-api", "daily-fetch", 5, "1h") is False

    clock.advance(3600)
    assert first.check_burst_limit("gmail-api", "daily-fetch", 5, "1h") is True


def test_sqlite_limiter_denial_has_no_side_effect(tmp_path: Path) -> None:
    clock = FakeClock()
    limiter = SqliteBurstLimiter(tmp_path / "burst.db", clock=clock)
    assert limiter.check_burst_limit("gmail-api", "daily-fetch", 1, "10m")
    for _ in range(3):
        clock.advance(60)
        assert not limiter.check_burst_limit("gmail-api", "daily-fetch", 1, "10m")

    clock.advance(420)
    assert limiter.check_burst_limit("gmail-api", "daily-fetch", 1, "10m")


def test_sqlite_limiter_reset_clears_counters(tmp_path: Path) -> None:
    limiter = SqliteBurstLimiter(tmp_path / "burst.db", clock=FakeClock())
    assert limiter.check_burst_limit("gmail-api", "daily-fetch", 1, "1h")
    limiter.reset()
    assert limiter.check_burst_limit("gmail-api", "daily-fetch", 1, "1h")


def _race(limiter, threads: int = 20) -> list[bool]:
    barrier = threading.Barrier(threads)
    results: list[bool] = []
    results_lock = threading.Lock()

    def attempt() -> None:
        barrier.wait()
        allowed = limiter.check_burst_limit("gmail-api", "daily-fetch", 5, "1h")
        with results_lock:
            results.append(allowed)

    workers = [threading.Thread(target=attempt) for _ in range(threads)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()
    return results


def test_in_memory_limiter_is_atomic_under_contention() -> None:
    results = _race(InMemoryBurstLimiter())
    assert len(results) == 20
    assert results.count(True) == 5


def test_sqlite_limiter_is_atomic_under_contention(tmp_path: Path) -> None:
    limiter = SqliteBurstLimiter(tmp_path / "burst.db", timeout_seconds=30.0)
    results = _race(limiter)
    assert len(results) == 20
    assert results.count(True) == 5
