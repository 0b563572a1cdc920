"""Datetime helpers shared across the application."""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta

__all__ = [
    "end_of_day",
    "ensure_utc",
    "parse_datetime",
    "parse_window",
    "serialize_datetime",
    "start_of_day",
    "utcnow",
]


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC ``datetime``."""
    return datetime.now(tz=UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` converted to UTC, treating naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def serialize_datetime(value: datetime | None) -> str | None:
    """Serialise ``value`` to an ISO 8601 string in UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC).isoformat()
    return value.astimezone(UTC).isoformat()


def parse_datetime(value: str | None, *, assume_utc: bool = False) -> datetime | None:
    """Parse an ISO 8601 string into a ``datetime`` instance."""
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None and assume_utc:
        return parsed.replace(tzinfo=UTC)
    return parsed


def start_of_day(value: datetime) -> datetime:
    """Return midnight at the start of ``value``'s day."""
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(value: datetime) -> datetime:
    """Return the last representable millisecond of ``value``'s day."""
    return start_of_day(value) + timedelta(days=1, milliseconds=-1)


_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d)\s*$", re.IGNORECASE)
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, "d": 86400.0}


def parse_window(window: timedelta | float | str) -> float:
    """Return ``window`` in seconds; strings look like ``30s``, ``15m`` or ``1h``."""
    if isinstance(window, timedelta):
        seconds = window.total_seconds()
    elif isinstance(window, (int, float)):
        seconds = float(window)
    else:
        match = _DURATION_PATTERN.match(window)
        if match is None:
            raise ValueError(f"Unrecognised window duration: {window!r}")
        amount, unit = match.groups()
        seconds = float(amount) * _UNIT_SECONDS[unit.lower()]
    if seconds <= 0:
        raise ValueError("Window duration must be positive")
    return seconds
