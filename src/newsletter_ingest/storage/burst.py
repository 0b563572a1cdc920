"""Burst limiter whose counters live in SQLite and are shared across processes."""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Callable
from datetime import timedelta
from pathlib import Path

from ..core.interfaces import BurstLimiter
from ..ingestion.limiter import make_key, parse_window
from .sqlite import apply_migrations, connect

LOGGER = logging.getLogger(__name__)


class SqliteBurstLimiter(BurstLimiter):
    """Fixed-window limiter persisted in the ``burst_state`` table.

    Each check opens its own connection and runs inside ``BEGIN IMMEDIATE``
    so concurrent processes serialise on the read-then-write.
    """

    def __init__(
        self,
        db_path: Path | str,
        *,
        clock: Callable[[], float] = time.time,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._db_path = Path(db_path)
        self._clock = clock
        self._timeout_seconds = timeout_seconds
        connection = self._connect()
        try:
            apply_migrations(connection)
        finally:
            connection.close()

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

        connection = self._connect()
        try:
            connection.execute("BEGIN IMMEDIATE")
            try:
                allowed, count = self._consume(connection, key, max_calls, window_seconds)
            except BaseException:
                connection.execute("ROLLBACK")
                raise
            connection.execute("COMMIT")
        finally:
            connection.close()

        if allowed:
            LOGGER.debug("Burst usage for %s: %s/%s", key, count, max_calls)
        else:
            LOGGER.warning("Burst limit reached for %s (%s/%s)", key, count, max_calls)
        return allowed

    def reset(self) -> None:
        """Forget all recorded usage."""
        connection = self._connect()
        try:
            with connection:
                connection.execute("DELETE FROM burst_state")
        finally:
            connection.close()

    def _connect(self) -> sqlite3.Connection:
        return connect(
            self._db_path, timeout=self._timeout_seconds, isolation_level=None
        )

    def _consume(
        self,
        connection: sqlite3.Connection,
        key: str,
        max_calls: int,
        window_seconds: float,
    ) -> tuple[bool, int]:
        now = self._clock()
        row = connection.execute(
            "SELECT count, window_expires_at FROM burst_state WHERE key = ?",
            (key,),
        ).fetchone()
        if row is None or now >= row["window_expires_at"]:
            count, expires_at = 0, now + window_seconds
        else:
            count, expires_at = int(row["count"]), float(row["window_expires_at"])

        if count >= max_calls:
            return False, count

        count += 1
        connection.execute(
            """
            INSERT INTO burst_state (key, count, window_expires_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                count=excluded.count,
                window_expires_at=excluded.window_expires_at
            """,
            (key, count, expires_at),
        )
        return True, count


__all__ = ["SqliteBurstLimiter"]
