"""Persist extracted newsletters as sanitised rows."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from ..core.interfaces import EmailRepository, StorageError
from ..core.logging import log_error, log_event
from ..core.models import ExtractedEmail, StoredEmailRow
from .redaction import redact_sensitive_data

LOGGER = logging.getLogger(__name__)


def to_row(email: ExtractedEmail) -> StoredEmailRow:
    """Project ``email`` onto the stored shape with secrets redacted."""
    return StoredEmailRow(
        message_id=email.message_id,
        subject=redact_sensitive_data(email.subject),
        sender=redact_sensitive_data(email.sender),
        newsletter_name=email.newsletter_name,
        received_at=email.received_at,
        processed_at=email.processed_at,
        raw_html=redact_sensitive_data(email.html),
        clean_text=redact_sensitive_data(email.text),
    )


class StoreWriter:
    """Upsert batches of extracted emails keyed by ``message_id``."""

    def __init__(self, repository: EmailRepository) -> None:
        self._repository = repository

    def store(self, emails: Sequence[ExtractedEmail]) -> int:
        """Write ``emails`` in one batch and return the number of rows written.

        Duplicate ``message_id`` values within the batch collapse to the last
        occurrence. Any repository failure is raised as :class:`StorageError`
        and nothing from the batch is kept.
        """
        if not emails:
            return 0

        deduplicated: dict[str, StoredEmailRow] = {}
        for email in emails:
            deduplicated[email.message_id] = to_row(email)
        rows = list(deduplicated.values())

        try:
            written = self._repository.upsert_emails(rows)
        except Exception as exc:  # pylint: disable=broad-except
            log_error(LOGGER, exc, operation="store_emails", count=len(rows))
            log_event(
                LOGGER,
                "email_storage_failed",
                level=logging.ERROR,
                count=len(rows),
                error=str(exc),
            )
            if isinstance(exc, StorageError):
                raise
            raise StorageError(f"Failed to store emails: {exc}") from exc

        log_event(LOGGER, "emails_stored", count=written)
        return written


__all__ = ["StoreWriter", "to_row"]
