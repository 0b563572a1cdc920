"""End-to-end newsletter ingestion run."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import cast

import httpx

from ..core.config import AppSettings, load_app_settings
from ..core.datetime_utils import serialize_datetime, utcnow
from ..core.interfaces import (
    BurstLimiter,
    EmailRepository,
    MailboxProvider,
    RateLimitExceeded,
)
from ..core.logging import log_error, log_event
from ..core.models import ExtractedEmail, IngestionReport
from ..storage import SqliteBurstLimiter, SqliteEmailRepository
from ..transport.gmail_client import GmailClient
from .extractor import MessageExtractor
from .orchestrator import process_all
from .pagination import PaginationFetcher
from .query import build_fetch_window, build_query
from .writer import StoreWriter

LOGGER = logging.getLogger(__name__)


class NewsletterIngestionPipeline:
    """Discover, extract, and store newsletters received in a trailing window."""

    def __init__(
        self,
        mailbox: MailboxProvider,
        repository: EmailRepository,
        limiter: BurstLimiter,
        settings: AppSettings | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._mailbox = mailbox
        self._limiter = limiter
        self._settings = settings or AppSettings()
        self._clock = clock
        gmail = self._settings.gmail
        ingestion = self._settings.ingestion
        self._fetcher = PaginationFetcher(mailbox, page_size=gmail.page_size)
        self._extractor = MessageExtractor(
            mailbox,
            min_text_length=ingestion.min_text_length,
            max_html_length=ingestion.max_html_length,
            hosting_domain=gmail.sender_domain,
            clock=clock,
        )
        self._writer = StoreWriter(repository)
        self._last_report: IngestionReport | None = None

    @property
    def last_report(self) -> IngestionReport | None:
        """Summary of the most recent successful run."""
        return self._last_report

    async def fetch_daily_substacks(
        self, days_back: int | None = None
    ) -> list[ExtractedEmail]:
        """Run one ingestion cycle and return the emails that were stored.

        Raises :class:`RateLimitExceeded` before any network traffic when the
        burst ceiling is reached. Listing and storage failures propagate;
        per-message failures are dropped.
        """
        started = time.perf_counter()
        days = self._settings.ingestion.days_back if days_back is None else days_back
        window = build_fetch_window(days, now=self._clock())
        query = build_query(window, sender_domain=self._settings.gmail.sender_domain)

        burst = self._settings.burst
        allowed = await asyncio.to_thread(
            self._limiter.check_burst_limit,
            burst.resource,
            burst.operation,
            burst.max_calls,
            burst.window,
        )
        if not allowed:
            exc = RateLimitExceeded(
                f"Rate limit exceeded for {burst.operation} on {burst.resource}: "
                f"at most {burst.max_calls} run(s) per {burst.window}"
            )
            log_error(
                LOGGER,
                exc,
                operation="fetch_daily_substacks",
                duration_ms=_elapsed_ms(started),
            )
            raise exc

        try:
            log_event(
                LOGGER,
                "fetch_started",
                days_back=days,
                start_date=serialize_datetime(window.start_date),
                end_date=serialize_datetime(window.end_date),
                query=query,
            )
            refs = await self._fetcher.fetch_all(query)
            log_event(LOGGER, "messages_found", count=len(refs), query=query)

            results = await process_all(
                refs,
                self._extractor.extract,
                concurrency=self._settings.ingestion.concurrency,
            )
            emails = [email for email in results if email is not None]
            log_event(
                LOGGER,
                "processing_completed",
                total_messages=len(refs),
                successful=len(emails),
                failed=len(refs) - len(emails),
            )

            stored = await asyncio.to_thread(self._writer.store, emails)
        except Exception as exc:  # pylint: disable=broad-except
            log_error(
                LOGGER,
                exc,
                operation="fetch_daily_substacks",
                days_back=days,
                duration_ms=_elapsed_ms(started),
            )
            raise

        duration = time.perf_counter() - started
        self._last_report = IngestionReport(
            fetch_window=window,
            discovered=len(refs),
            extracted=len(emails),
            stored=stored,
            duration_seconds=round(duration, 3),
        )
        log_event(
            LOGGER,
            "fetch_completed",
            emails_processed=len(emails),
            emails_stored=stored,
            duration_ms=round(duration * 1000, 2),
        )
        return emails


async def run_pipeline(
    settings: AppSettings,
    *,
    days_back: int | None = None,
    refresh_token: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> IngestionReport:
    """Build the Gmail/SQLite pipeline from ``settings`` and run it once."""
    limiter = await asyncio.to_thread(SqliteBurstLimiter, settings.storage.db_path)
    repository = await asyncio.to_thread(SqliteEmailRepository, settings.storage)
    try:
        async with GmailClient(
            settings.gmail, refresh_token=refresh_token, transport=transport
        ) as mailbox:
            pipeline = NewsletterIngestionPipeline(
                mailbox, repository, limiter, settings
            )
            await pipeline.fetch_daily_substacks(days_back)
    finally:
        repository.close()
    return cast(IngestionReport, pipeline.last_report)


def run_ingestion(
    settings: AppSettings | None = None,
    *,
    days_back: int | None = None,
    refresh_token: str | None = None,
) -> IngestionReport:
    """Synchronous wrapper around :func:`run_pipeline` for scripts and the CLI."""
    app_settings = settings or load_app_settings()
    return asyncio.run(
        run_pipeline(app_settings, days_back=days_back, refresh_token=refresh_token)
    )


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


__all__ = ["NewsletterIngestionPipeline", "run_ingestion", "run_pipeline"]
