"""Tests for the fetch window and Gmail query builder."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from newsletter_ingest.ingestion.query import build_fetch_window, build_query

NOW = datetime(2025, 10, 14, 15, 42, 7, tzinfo=UTC)


def test_window_spans_whole_days() -> None:
    window = build_fetch_window(30, now=NOW)

    assert window.start_date == datetime(2025, 9, 14, tzinfo=UTC)
    assert window.end_date == datetime(2025, 10, 14, 23, 59, 59, 999000, tzinfo=UTC)
    assert window.days_back == 30


def test_zero_days_back_covers_today_only() -> None:
    window = build_fetch_window(0, now=NOW)
    assert window.start_date == datetime(2025, 10, 14, tzinfo=UTC)


def test_negative_days_back_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_fetch_window(-1, now=NOW)


def test_query_contains_sender_dates_and_exclusions() -> None:
    query = build_query(build_fetch_window(30, now=NOW))
    assert query == (
        "from:substack.com after:2025/09/14 before:2025/10/15 -in:spam -in:trash"
    )


def test_query_honours_custom_sender_domain() -> None:
    query = build_query(build_fetch_window(1, now=NOW), sender_domain="beehiiv.com")
    assert query.startswith("from:beehiiv.com after:2025/10/13 ")
