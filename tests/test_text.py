"""Tests for HTML to text conversion."""

from __future__ import annotations

from unittest import mock

from newsletter_ingest.ingestion import text
from newsletter_ingest.ingestion.text import html_to_text, parse_with_regex, strip_tags

ARTICLE = (
    "Today we look at how small teams ship reliable software without burning out."
)

NEWSLETTER_HTML = f"""
<html>
  <head><style>p {{ color: red; }}</style><script>track();</script></head>
  <body>
    <header>Site header</header>
    <nav>Home | Archive</nav>
    <div class="newsletter-header">Issue #12</div>
    <p>{ARTICLE}</p>
    <div class="social-links">Share on X</div>
    <div class="unsubscribe">Unsubscribe here</div>
    <a data-testid="unsubscribe" href="#">Manage</a>
    <footer>Footer text</footer>
  </body>
</html>
"""


def test_soup_conversion_drops_chrome_and_collapses_whitespace() -> None:
    result = html_to_text(NEWSLETTER_HTML)

    assert result == ARTICLE
    for removed in ("Site header", "Home", "Issue #12", "Share on X", "Unsubscribe", "Manage", "Footer", "track"):
        assert removed not in result


def test_regex_fallback_used_when_soup_fails() -> None:
    with mock.patch.object(text, "parse_with_soup", side_effect=RuntimeError("boom")):
        result = html_to_text(NEWSLETTER_HTML)

    assert ARTICLE in result
    assert "Site header" not in result
    assert "track" not in result


def test_short_output_falls_through_to_tag_strip() -> None:
    result = html_to_text("<p>Hi &amp; bye</p>")
    assert result == "Hi bye"


def test_regex_parser_unescapes_entities() -> None:
    html = "<div><p>Fish &amp; chips are a classic British dish served with salt.</p></div>"
    assert parse_with_regex(html) == "Fish & chips are a classic British dish served with salt."


def test_strip_tags_replaces_tags_and_entities() -> None:
    assert strip_tags("<b>one</b>&nbsp;<i>two</i>") == "one two"


def test_input_is_truncated_before_parsing() -> None:
    html = "<p>" + "word " * 100 + "</p>"
    result = html_to_text(html, max_length=103)
    assert len(result) <= 100
    assert result.startswith("word word")


def test_plain_text_passes_through_normalised() -> None:
    plain = "Line one of a plain text newsletter.\n\n   Line two follows with more words."
    assert html_to_text(plain) == (
        "Line one of a plain text newsletter. Line two follows with more words."
    )


def test_empty_input_returns_empty_string() -> None:
    assert html_to_text("") == ""


def test_tag_strip_drops_stylesheet_and_script_bodies() -> None:
    css = "body{font-family:Helvetica,Arial,sans-serif;margin:0;padding:0}" * 3
    html = (
        f"<html><head><style>{css}</style><script>var t = 1;</script></head>"
        "<body><p>Hi</p></body></html>"
    )

    assert html_to_text(html) == "Hi"
    assert strip_tags(f"<style>{css}</style>ok") == "ok"
