"""Aggregate counts over stored newsletters and a mailbox health probe."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta

from ..core.datetime_utils import utcnow
from ..core.interfaces import EmailRepository, MailboxProvider
from ..core.logging import log_error, log_event
from ..core.models import IngestionStats, NewsletterCount

LOGGER = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=7)
TOP_NEWSLETTER_WINDOW = timedelta(days=30)
TOP_NEWSLETTER_LIMIT = 10


def rank_newsletters(
    names: list[str], *, limit: int = TOP_NEWSLETTER_LIMIT
) -> tuple[NewsletterCount, ...]:
    """Count ``names`` and return the ``limit`` most frequent, ties by name."""
    counts = Counter(names)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return tuple(NewsletterCount(name=name, count=count) for name, count in ranked[:limit])


class StatsReporter:
    """Read-only reporting over the repository plus a provider connectivity check."""

    def __init__(
        self, repository: EmailRepository, mailbox: MailboxProvider | None = None
    ) -> None:
        self._repository = repository
        self._mailbox = mailbox

    def get_stats(self, *, now: datetime | None = None) -> IngestionStats:
        """Return totals, the last 7 days' count and the top 10 newsletters.

        Repository failures are logged and reported as zeroed stats.
        """
        current = now or utcnow()
        try:
            total = self._repository.count_emails()
            recent = self._repository.count_emails(
                received_since=current - RECENT_WINDOW
            )
            names = self._repository.list_newsletter_names(
                received_since=current - TOP_NEWSLETTER_WINDOW
            )
        except Exception as exc:  # pylint: disable=broad-except
            log_error(LOGGER, exc, operation="get_stats")
            return IngestionStats(total_emails=0, recent_emails=0, top_newsletters=())

        stats = IngestionStats(
            total_emails=total,
            recent_emails=recent,
            top_newsletters=rank_newsletters(names),
        )
        log_event(
            LOGGER,
            "stats_fetched",
            total_emails=stats.total_emails,
            recent_emails=stats.recent_emails,
            newsletters=len(stats.top_newsletters),
        )
        return stats

    async def test_connection(self) -> bool:
        """Return ``True`` when the mailbox profile reports an email address."""
        if self._mailbox is None:
            log_event(LOGGER, "health_check", status="unconfigured")
            return False
        try:
            profile = await self._mailbox.get_profile()
        except Exception as exc:  # pylint: disable=broad-except
            log_error(LOGGER, exc, operation="test_connection")
            log_event(LOGGER, "health_check", level=logging.WARNING, status="unhealthy")
            return False

        healthy = bool(profile.get("emailAddress"))
        log_event(
            LOGGER,
            "health_check",
            status="healthy" if healthy else "unhealthy",
        )
        return healthy


__all__ = ["StatsReporter", "rank_newsletters"]
