"""Tests for bounded-concurrency fan-out."""

from __future__ import annotations

import asyncio

import pytest

from newsletter_ingest.ingestion.orchestrator import process_all


def test_results_preserve_input_order_under_jitter() -> None:
    delays = [0.05, 0.01, 0.04, 0.0, 0.03, 0.02, 0.015, 0.0, 0.025, 0.005]
    in_flight = 0
    peak = 0

    async def worker(index: int) -> str:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(delays[index])
        in_flight -= 1
        return f"result-{index}"

    results = asyncio.run(process_all(list(range(10)), worker, concurrency=3))

    assert results == [f"result-{index}" for index in range(10)]
    assert peak == 3


def test_failing_unit_becomes_none_without_affecting_siblings() -> None:
    async def worker(index: int) -> int:
        await asyncio.sleep(0)
        if index == 2:
            raise RuntimeError("broken message")
        return index * 10

    results = asyncio.run(process_all([0, 1, 2, 3, 4], worker, concurrency=2))

    assert results == [0, 10, None, 30, 40]


def test_none_results_are_kept_in_place() -> None:
    async def worker(value: int) -> int | None:
        return None if value % 2 else value

    assert asyncio.run(process_all([0, 1, 2], worker)) == [0, None, 2]


def test_empty_input_returns_empty_list() -> None:
    async def worker(value: int) -> int:
        return value

    assert asyncio.run(process_all([], worker)) == []


def test_concurrency_must_be_positive() -> None:
    async def worker(value: int) -> int:
        return value

    with pytest.raises(ValueError):
        asyncio.run(process_all([1], worker, concurrency=0))
