"""Fixed-window burst limiting for expensive remote operations."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import timedelta
from threading import Lock

from ..core.datetime_utils import parse_window
from ..core.interfaces import BurstLimiter
from ..core.models import BurstState

LOGGER = logging.getLogger(__name__)


def make_key(resource: str, operation: str) -> str:
    """Compose the limiter key for a resource/operation pair."""
    return f"{operation}:{resource}"


class InMemoryBurstLimiter(BurstLimiter):
    """Process-local limiter; counters reset lazily once their window expires."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = Lock()
        self._states: dict[str, BurstState] = {}

    def check_burst_limit(
        self,
        resource: str,
        operation: str,
        max_calls: int,
        window: timedelta | float | str,
    ) -> bool:
        """Record one use of ``(resource, operation)`` if under ``max_calls``."""
        if max_calls < 1:
            raise ValueError("max_calls must be positive")
        window_seconds = parse_window(window)
        key = make_key(resource, operation)

        with self._lock:
            now = self._clock()
            state = self._states.get(key)
            if state is None or now >= state.window_expires_at:
                state = BurstState(count=0, window_expires_at=now + window_seconds)
                self._states[key] = state
            if state.count >= max_calls:
                LOGGER.warning(
                    "Burst limit reached for %s (%s/%s)", key, state.count, max_calls
                )
                return False
            state.count += 1
            LOGGER.debug("Burst usage for %s: %s/%s", key, state.count, max_calls)
            return True

    def reset(self) -> None:
        """Forget all recorded usage."""
        with self._lock:
            self._states.clear()


__all__ = ["InMemoryBurstLimiter", "make_key", "parse_window"]
