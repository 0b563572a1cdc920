"""Helpers for walking the provider's MIME part tree."""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Iterable

from ..core.models import MessagePart, RawMessage

LOGGER = logging.getLogger(__name__)

HTML_MIME_TYPE = "text/html"


def get_header(message: RawMessage, name: str) -> str | None:
    """Return the first non-empty top-level header matching ``name``."""
    wanted = name.lower()
    for header in message.payload.headers:
        if header.name.lower() == wanted and header.value:
            return header.value
    return None


def decode_body(data: str | None) -> str:
    """Decode base64url ``data`` as UTF-8; undecodable input yields ``""``."""
    if not data:
        return ""
    padded = data + "=" * (-len(data) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as exc:
        LOGGER.warning("Failed to decode base64 body: %s", exc)
        return ""
    return raw.decode("utf-8", errors="replace")


def _body_data(part: MessagePart) -> str | None:
    return part.body.data if part.body is not None and part.body.data else None


def _html_leaves(parts: Iterable[MessagePart]) -> Iterable[MessagePart]:
    """Yield HTML parts in order, looking one level into nested parts."""
    for part in parts:
        if part.mime_type == HTML_MIME_TYPE and _body_data(part):
            yield part
        for nested in part.parts:
            if nested.mime_type == HTML_MIME_TYPE and _body_data(nested):
                yield nested


def extract_html(message: RawMessage) -> str:
    """Recover the HTML payload of ``message`` with ordered fallbacks.

    1. the first ``text/html`` part (including one level of nesting);
    2. the top-level payload when it is itself ``text/html``;
    3. whatever top-level body exists, even if it is not HTML;
    4. the empty string.
    """
    payload = message.payload
    for part in _html_leaves(payload.parts):
        return decode_body(_body_data(part))

    # Steps 2 and 3 both read the top-level body; only the MIME type differs.
    top_level = _body_data(payload)
    if top_level:
        if payload.mime_type != HTML_MIME_TYPE:
            LOGGER.debug("Using non-HTML %s body as content", payload.mime_type)
        return decode_body(top_level)
    return ""


__all__ = ["decode_body", "extract_html", "get_header"]
