"""Protocol interfaces and error types for decoupling components."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Any, Protocol

from .models import MessagePage, StoredEmailRow


class IngestionError(RuntimeError):
    """Base class for failures raised by the ingestion pipeline."""


class RateLimitExceeded(IngestionError):
    """Raised before any network work when the burst ceiling is reached."""


class ProviderListError(IngestionError):
    """Raised when a listing page fails; the continuation chain is abandoned."""


class ProviderFetchError(IngestionError):
    """Raised when a single message cannot be fetched."""


class ParseError(IngestionError):
    """Raised when a fetched message does not match the expected schema."""


class ContentTooShortError(IngestionError):
    """Raised when a message yields too little text to be worth storing."""


class StorageError(IngestionError):
    """Raised when a batch cannot be written to the relational store."""


class MailboxProvider(Protocol):
    """Abstraction over a paged mailbox API such as Gmail."""

    async def list_messages(
        self, query: str, *, page_token: str | None = None, page_size: int = 100
    ) -> MessagePage:
        """Return one page of message references matching ``query``."""
        raise NotImplementedError

    async def get_message(self, message_id: str) -> dict[str, Any]:
        """Return the full payload for a single message."""
        raise NotImplementedError

    async def get_profile(self) -> dict[str, Any]:
        """Return the mailbox owner's profile."""
        raise NotImplementedError


class EmailRepository(Protocol):
    """Abstraction for newsletter persistence."""

    def upsert_emails(self, rows: Sequence[StoredEmailRow]) -> int:
        """Insert or overwrite rows keyed by ``message_id``; return rows written."""
        raise NotImplementedError

    def fetch_email(self, message_id: str) -> StoredEmailRow | None:
        """Retrieve a stored email by its message id."""
        raise NotImplementedError

    def count_emails(self, *, received_since: datetime | None = None) -> int:
        """Count stored emails, optionally only those received after a cutoff."""
        raise NotImplementedError

    def list_newsletter_names(self, *, received_since: datetime) -> list[str]:
        """Return the newsletter name of every email received after a cutoff."""
        raise NotImplementedError

    def close(self) -> None:
        """Close database connections if necessary."""
        raise NotImplementedError


class BurstLimiter(Protocol):
    """Caps how often an expensive operation may run per resource."""

    def check_burst_limit(
        self,
        resource: str,
        operation: str,
        max_calls: int,
        window: timedelta | float | str,
    ) -> bool:
        """Record one use and return ``True`` if the ceiling allows it."""
        raise NotImplementedError


__all__ = [
    "BurstLimiter",
    "ContentTooShortError",
    "EmailRepository",
    "IngestionError",
    "MailboxProvider",
    "ParseError",
    "ProviderFetchError",
    "ProviderListError",
    "RateLimitExceeded",
    "StorageError",
]
