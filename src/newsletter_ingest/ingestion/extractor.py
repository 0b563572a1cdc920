"""Turn a single message reference into a clean newsletter record."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime
from email.utils import parsedate_to_datetime

from pydantic import ValidationError

from ..core.datetime_utils import ensure_utc, utcnow
from ..core.interfaces import (
    ContentTooShortError,
    MailboxProvider,
    ParseError,
    ProviderFetchError,
)
from ..core.logging import log_error, log_event
from ..core.models import ExtractedEmail, MessageRef, RawMessage
from .identity import DEFAULT_HOSTING_DOMAIN, extract_newsletter_name
from .mime import extract_html, get_header
from .text import DEFAULT_MAX_HTML_LENGTH, html_to_text

LOGGER = logging.getLogger(__name__)

DEFAULT_SUBJECT = "No Subject"
DEFAULT_SENDER = "Unknown Sender"
DEFAULT_MIN_TEXT_LENGTH = 100


class MessageExtractor:
    """Fetch, validate, and normalise one message; failures map to ``None``."""

    def __init__(
        self,
        mailbox: MailboxProvider,
        *,
        min_text_length: int = DEFAULT_MIN_TEXT_LENGTH,
        max_html_length: int = DEFAULT_MAX_HTML_LENGTH,
        hosting_domain: str = DEFAULT_HOSTING_DOMAIN,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._mailbox = mailbox
        self._min_text_length = min_text_length
        self._max_html_length = max_html_length
        self._hosting_domain = hosting_domain
        self._clock = clock

    async def extract(self, ref: MessageRef) -> ExtractedEmail | None:
        """Return the extracted email for ``ref`` or ``None`` if it is unusable."""
        started = time.perf_counter()
        try:
            return await self._extract(ref, started)
        except ContentTooShortError as exc:
            LOGGER.warning("Skipping message %s: %s", ref.provider_id, exc)
            return None
        except Exception as exc:  # pylint: disable=broad-except
            log_error(
                LOGGER,
                exc,
                operation="process_message",
                message_id=ref.provider_id,
                processing_ms=_elapsed_ms(started),
            )
            return None

    async def _extract(self, ref: MessageRef, started: float) -> ExtractedEmail:
        if not ref.provider_id:
            raise ParseError("Message reference is missing its id")

        try:
            payload = await self._mailbox.get_message(ref.provider_id)
        except Exception as exc:
            raise ProviderFetchError(
                f"Failed to fetch message {ref.provider_id}: {exc}"
            ) from exc

        try:
            message = RawMessage.model_validate(payload)
        except ValidationError as exc:
            raise ParseError(
                f"Message {ref.provider_id} does not match the expected schema"
            ) from exc

        subject = get_header(message, "Subject") or DEFAULT_SUBJECT
        sender = get_header(message, "From") or DEFAULT_SENDER
        received_at = _parse_received_at(get_header(message, "Date"), self._clock)
        message_id = get_header(message, "Message-ID") or message.id
        newsletter_name = extract_newsletter_name(sender, domain=self._hosting_domain)

        html = extract_html(message)
        text = html_to_text(html, max_length=self._max_html_length)

        if len(text) < self._min_text_length:
            log_event(
                LOGGER,
                "message_skipped",
                message_id=message.id,
                reason="insufficient_content",
                text_length=len(text),
            )
            raise ContentTooShortError(
                f"insufficient content ({len(text)} < {self._min_text_length} chars)"
            )

        log_event(
            LOGGER,
            "message_processed",
            message_id=message.id,
            newsletter_name=newsletter_name,
            subject=subject[:100],
            text_length=len(text),
            html_length=len(html),
            processing_ms=_elapsed_ms(started),
        )
        return ExtractedEmail(
            id=message.id,
            message_id=message_id,
            subject=subject,
            sender=sender,
            newsletter_name=newsletter_name,
            html=html,
            text=text,
            received_at=received_at,
            processed_at=self._clock(),
        )


def _parse_received_at(
    header_value: str | None, clock: Callable[[], datetime]
) -> datetime:
    if header_value:
        try:
            parsed = ensure_utc(parsedate_to_datetime(header_value))
        except (TypeError, ValueError, IndexError):
            parsed = None
        if parsed is not None:
            return parsed
    return clock()


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


__all__ = ["MessageExtractor"]
