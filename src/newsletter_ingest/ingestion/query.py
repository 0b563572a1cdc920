"""Translate a trailing day count into a Gmail search expression."""

from __future__ import annotations

from datetime import datetime, timedelta

from ..core.datetime_utils import end_of_day, start_of_day, utcnow
from ..core.models import FetchWindow

GMAIL_DATE_FORMAT = "%Y/%m/%d"
EXCLUDED_FOLDERS = ("spam", "trash")


def build_fetch_window(days_back: int, *, now: datetime | None = None) -> FetchWindow:
    """Return the window from ``days_back`` days ago through the end of today."""
    if days_back < 0:
        raise ValueError("days_back must be zero or positive")
    current = now or utcnow()
    return FetchWindow(
        start_date=start_of_day(current - timedelta(days=days_back)),
        end_date=end_of_day(current),
        days_back=days_back,
    )


def build_query(window: FetchWindow, *, sender_domain: str = "substack.com") -> str:
    """Build the provider query restricted to ``sender_domain`` within ``window``.

    Gmail treats ``before:`` as exclusive, so the bound is the day after
    ``window.end_date`` to keep messages received today.
    """
    exclusive_end = window.end_date + timedelta(days=1)
    terms = [
        f"from:{sender_domain}",
        f"after:{window.start_date.strftime(GMAIL_DATE_FORMAT)}",
        f"before:{start_of_day(exclusive_end).strftime(GMAIL_DATE_FORMAT)}",
    ]
    terms.extend(f"-in:{folder}" for folder in EXCLUDED_FOLDERS)
    return " ".join(terms)


__all__ = ["build_fetch_window", "build_query"]
