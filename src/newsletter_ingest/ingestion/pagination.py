"""Sequential walk over a paged message listing."""

from __future__ import annotations

import logging

from ..core.interfaces import MailboxProvider, ProviderListError
from ..core.logging import log_error, log_event
from ..core.models import MessageRef
from ..transport.gmail_client import GmailError

LOGGER = logging.getLogger(__name__)


class PaginationFetcher:
    """Follow continuation tokens until the listing is exhausted."""

    def __init__(self, mailbox: MailboxProvider, *, page_size: int = 100) -> None:
        if page_size <= 0:
            raise ValueError("page_size must be positive")
        self._mailbox = mailbox
        self._page_size = page_size

    async def fetch_all(self, query: str) -> list[MessageRef]:
        """Return every message reference matching ``query``.

        A failure on any page raises :class:`ProviderListError`; references
        gathered from earlier pages are discarded because the token chain
        cannot be resumed.
        """
        messages: list[MessageRef] = []
        page_token: str | None = None
        page_count = 0

        while True:
            try:
                page = await self._mailbox.list_messages(
                    query, page_token=page_token, page_size=self._page_size
                )
            except Exception as exc:  # pylint: disable=broad-except
                log_error(
                    LOGGER,
                    exc,
                    operation="fetch_all",
                    page=page_count + 1,
                    query=query,
                )
                raise ProviderListError(_explain_listing_failure(exc)) from exc

            messages.extend(page.messages)
            page_count += 1
            log_event(
                LOGGER,
                "gmail_api_page_fetched",
                page=page_count,
                messages_in_page=len(page.messages),
                total_messages=len(messages),
            )

            page_token = page.next_page_token
            if not page_token:
                break

        return messages


def _explain_listing_failure(exc: BaseException) -> str:
    message = str(exc)
    if "Mail service not enabled" in message:
        return (
            "Gmail is not enabled for this Google account. Sign in with an "
            "account that has Gmail access."
        )
    if isinstance(exc, GmailError) and exc.status_code == 403:
        return (
            "This Google account does not have permission to access Gmail: "
            f"{message}"
        )
    return f"Failed to list messages: {message}"


__all__ = ["PaginationFetcher"]
