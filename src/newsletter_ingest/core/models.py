"""Core domain models used across the application."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


@dataclass(slots=True, frozen=True)
class MessageRef:
    """Opaque handle for a message returned by the listing endpoint."""

    provider_id: str
    thread_id: str | None = None


@dataclass(slots=True, frozen=True)
class MessagePage:
    """One page of a paged message listing."""

    messages: tuple[MessageRef, ...]
    next_page_token: str | None
    result_size_estimate: int | None = None


class MessageHeader(BaseModel):
    """Single ``name: value`` header of a MIME part."""

    name: str
    value: str


class MessageBody(BaseModel):
    """Body of a MIME part; ``data`` is base64url encoded."""

    data: str | None = None
    size: int | None = None


class MessagePart(BaseModel):
    """Node of the provider's MIME tree."""

    model_config = ConfigDict(populate_by_name=True)

    mime_type: str = Field(default="", alias="mimeType")
    headers: list[MessageHeader] = Field(default_factory=list)
    body: MessageBody | None = None
    parts: list[MessagePart] = Field(default_factory=list)


MessagePart.model_rebuild()


class RawMessage(BaseModel):
    """Full provider payload for a single message."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    thread_id: str | None = Field(default=None, alias="threadId")
    payload: MessagePart


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class ExtractedEmail:
    """Canonical newsletter record produced by the extractor."""

    id: str
    message_id: str
    subject: str
    sender: str
    newsletter_name: str
    html: str
    text: str
    received_at: datetime
    processed_at: datetime


# pylint: disable=too-many-instance-attributes
@dataclass(slots=True)
class StoredEmailRow:
    """Sanitised projection of an email as written to the ``emails`` table."""

    message_id: str
    subject: str
    sender: str
    newsletter_name: str
    received_at: datetime
    processed_at: datetime
    raw_html: str
    clean_text: str
    processing_status: str = "completed"


@dataclass(slots=True, frozen=True)
class FetchWindow:
    """Date range covered by a single ingestion run."""

    start_date: datetime
    end_date: datetime
    days_back: int


@dataclass(slots=True)
class BurstState:
    """Usage counter for one limiter key within its current window."""

    count: int
    window_expires_at: float


@dataclass(slots=True, frozen=True)
class NewsletterCount:
    """Number of stored emails attributed to a newsletter."""

    name: str
    count: int


@dataclass(slots=True)
class IngestionStats:
    """Aggregate counts reported for stored newsletters."""

    total_emails: int
    recent_emails: int
    top_newsletters: tuple[NewsletterCount, ...]


@dataclass(slots=True)
class IngestionReport:
    """Outcome summary for an ingestion run."""

    fetch_window: FetchWindow
    discovered: int
    extracted: int
    stored: int
    duration_seconds: float


__all__ = [
    "BurstState",
    "ExtractedEmail",
    "FetchWindow",
    "IngestionReport",
    "IngestionStats",
    "MessageBody",
    "MessageHeader",
    "MessagePage",
    "MessagePart",
    "MessageRef",
    "NewsletterCount",
    "RawMessage",
    "StoredEmailRow",
]
