"""Bounded-concurrency fan-out over message references."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from ..core.logging import log_error

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


async def process_all(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R | None]],
    *,
    concurrency: int = 5,
) -> list[R | None]:
    """Run ``worker`` over ``items`` with at most ``concurrency`` in flight.

    Results keep the input order regardless of completion order. A worker
    that raises contributes ``None`` at its index; the others still run.
    """
    if concurrency < 1:
        raise ValueError("concurrency must be at least 1")

    semaphore = asyncio.Semaphore(concurrency)
    results: list[R | None] = [None] * len(items)

    async def run(index: int, item: T) -> None:
        async with semaphore:
            try:
                results[index] = await worker(item)
            except Exception as exc:  # pylint: disable=broad-except
                log_error(LOGGER, exc, operation="process_all", index=index)
                results[index] = None

    await asyncio.gather(*(run(index, item) for index, item in enumerate(items)))
    return results


__all__ = ["process_all"]
