"""Tests for MIME tree helpers."""

from __future__ import annotations

import base64

from newsletter_ingest.core.models import RawMessage
from newsletter_ingest.ingestion.mime import decode_body, extract_html, get_header


def _encode(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def _message(payload: dict) -> RawMessage:
    return RawMessage.model_validate({"id": "m1", "payload": payload})


def test_get_header_is_case_insensitive() -> None:
    message = _message(
        {"headers": [{"name": "subject", "value": "Weekly"}, {"name": "From", "value": ""}]}
    )
    assert get_header(message, "Subject") == "Weekly"
    assert get_header(message, "FROM") is None
    assert get_header(message, "Date") is None


def test_decode_body_tolerates_missing_padding() -> None:
    assert decode_body(_encode("hello newsletter")) == "hello newsletter"


def test_decode_body_returns_empty_for_garbage() -> None:
    assert decode_body("a") == ""
    assert decode_body(None) == ""


def test_first_html_part_wins() -> None:
    message = _message(
        {
            "mimeType": "multipart/alternative",
            "parts": [
                {"mimeType": "text/plain", "body": {"data": _encode("plain")}},
                {"mimeType": "text/html", "body": {"data": _encode("<p>first</p>")}},
                {"mimeType": "text/html", "body": {"data": _encode("<p>second</p>")}},
            ],
        }
    )
    assert extract_html(message) == "<p>first</p>"


def test_html_nested_one_level_is_found() -> None:
    message = _message(
        {
            "mimeType": "multipart/mixed",
            "parts": [
                {
                    "mimeType": "multipart/alternative",
                    "parts": [
                        {"mimeType": "text/plain", "body": {"data": _encode("plain")}},
                        {"mimeType": "text/html", "body": {"data": _encode("<b>nested</b>")}},
                    ],
                }
            ],
        }
    )
    assert extract_html(message) == "<b>nested</b>"


def test_top_level_html_body_is_used() -> None:
    message = _message({"mimeType": "text/html", "body": {"data": _encode("<i>top</i>")}})
    assert extract_html(message) == "<i>top</i>"


def test_plain_text_body_is_used_when_no_html_exists() -> None:
    message = _message({"mimeType": "text/plain", "body": {"data": _encode("just text")}})
    assert extract_html(message) == "just text"


def test_empty_payload_yields_empty_string() -> None:
    assert extract_html(_message({"mimeType": "multipart/mixed"})) == ""
