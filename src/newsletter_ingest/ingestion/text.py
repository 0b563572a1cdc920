"""Layered HTML to plain text conversion for newsletter bodies."""

from __future__ import annotations

import html as html_lib
import logging
import re
import time

from bs4 import BeautifulSoup

from ..core.logging import log_event

LOGGER = logging.getLogger(__name__)

DEFAULT_REMOVE_SELECTORS: tuple[str, ...] = (
    "script",
    "style",
    "nav",
    "footer",
    "header",
    ".unsubscribe",
    ".footer",
    ".header",
    '[data-testid="unsubscribe"]',
    ".social-links",
    ".sharing-buttons",
)

NEWSLETTER_REMOVE_SELECTORS: tuple[str, ...] = DEFAULT_REMOVE_SELECTORS + (
    ".newsletter-header",
    ".newsletter-footer",
    ".subscription-links",
    ".social-media",
    ".advertisement",
    ".ads",
)

# Anything this short from a richer strategy is treated as a parsing miss.
MIN_PARSED_LENGTH = 50
DEFAULT_MAX_HTML_LENGTH = 50_000

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.I)
_STYLE_RE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.I)
_TAG_RE = re.compile(r"<[^>]*>")
_ENTITY_RE = re.compile(r"&\w+;")
_WHITESPACE_RE = re.compile(r"\s+")


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim the ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def parse_with_soup(
    raw_html: str, remove_selectors: tuple[str, ...] = NEWSLETTER_REMOVE_SELECTORS
) -> str:
    """Structured conversion: drop chrome elements and read the body text."""
    soup = BeautifulSoup(raw_html, "html.parser")
    for selector in remove_selectors:
        for node in soup.select(selector):
            node.extract()
    root = soup.body or soup
    return collapse_whitespace(root.get_text(separator=" "))


def parse_with_regex(
    raw_html: str, remove_selectors: tuple[str, ...] = NEWSLETTER_REMOVE_SELECTORS
) -> str:
    """Regex conversion used when the structured parser fails or finds nothing."""
    text = _SCRIPT_RE.sub("", raw_html)
    text = _STYLE_RE.sub("", text)
    for selector in remove_selectors:
        if selector.startswith("["):
            continue
        if selector.startswith("."):
            class_name = re.escape(selector[1:])
            pattern = (
                r"<(\w+)[^>]*class\s*=\s*[\"'][^\"']*\b"
                + class_name
                + r"\b[^\"']*[\"'][^>]*>.*?</\1>"
            )
        else:
            tag = re.escape(selector)
            pattern = rf"<{tag}\b[^>]*>.*?</{tag}>"
        text = re.sub(pattern, "", text, flags=re.I | re.S)
    text = _TAG_RE.sub(" ", text)
    return collapse_whitespace(html_lib.unescape(text))


def strip_tags(raw_html: str) -> str:
    """Last-resort conversion: drop script/style blocks, then blank tags and entities."""
    text = _SCRIPT_RE.sub(" ", raw_html)
    text = _STYLE_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    text = _ENTITY_RE.sub(" ", text)
    return collapse_whitespace(text)


def html_to_text(
    raw_html: str,
    *,
    max_length: int = DEFAULT_MAX_HTML_LENGTH,
    remove_selectors: tuple[str, ...] = NEWSLETTER_REMOVE_SELECTORS,
) -> str:
    """Convert ``raw_html`` to normalised text, degrading through fallbacks.

    The structured parser runs first, then the regex parser, then a plain
    tag strip which cannot fail. Plain-text input passes through unchanged
    apart from whitespace normalisation.
    """
    if not raw_html:
        return ""

    truncated = raw_html[:max_length]
    started = time.perf_counter()

    for method, strategy in (
        ("soup", parse_with_soup),
        ("regex", parse_with_regex),
    ):
        try:
            text = strategy(truncated, remove_selectors)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.warning("%s HTML parsing failed: %s", method, exc)
            _log_parse(
                "html_parsing_failed", method, truncated, "", started, error=str(exc)
            )
            continue
        if len(text) > MIN_PARSED_LENGTH:
            _log_parse("html_parsing_success", method, truncated, text, started)
            return text

    text = strip_tags(truncated)
    _log_parse("html_parsing_success", "fallback", truncated, text, started)
    return text


def _log_parse(
    event: str,
    method: str,
    raw_html: str,
    text: str,
    started: float,
    **extra: str,
) -> None:
    log_event(
        LOGGER,
        event,
        level=logging.DEBUG,
        method=method,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
        html_length=len(raw_html),
        text_length=len(text),
        **extra,
    )


__all__ = [
    "DEFAULT_REMOVE_SELECTORS",
    "NEWSLETTER_REMOVE_SELECTORS",
    "collapse_whitespace",
    "html_to_text",
    "parse_with_regex",
    "parse_with_soup",
    "strip_tags",
]
