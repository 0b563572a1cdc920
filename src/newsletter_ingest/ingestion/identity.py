"""Derive a newsletter name from a ``From`` header.

Each matcher returns a name or ``None``; :func:`extract_newsletter_name`
tries them in order and falls back to :data:`UNKNOWN_NEWSLETTER`.
"""

from __future__ import annotations

import re
from collections.abc import Callable

UNKNOWN_NEWSLETTER = "Unknown Newsletter"
DEFAULT_HOSTING_DOMAIN = "substack.com"

NameMatcher = Callable[[str, str], str | None]


def _domain_pattern(domain: str) -> str:
    return re.escape(domain.lower())


def match_display_name(sender: str, domain: str) -> str | None:
    """``"Morning Brew <crew@morningbrew.substack.com>"`` -> ``"Morning Brew"``."""
    match = re.match(
        rf"^(.+?)\s*<[^>]*@[^>]*{_domain_pattern(domain)}>", sender, re.IGNORECASE
    )
    if match is None:
        return None
    name = match.group(1).strip().strip('"').strip()
    return name or None


def match_subdomain(sender: str, domain: str) -> str | None:
    """``"<news@daily-digest.substack.com>"`` -> ``"Daily Digest"``."""
    match = re.search(
        rf"<[^>]*@([^>]+?)\.{_domain_pattern(domain)}>", sender, re.IGNORECASE
    )
    if match is None:
        return None
    words = re.sub(r"[-_.]", " ", match.group(1)).split()
    return " ".join(word.capitalize() for word in words) or None


def match_raw_prefix(sender: str, domain: str) -> str | None:
    """Use whatever precedes ``<``, e.g. ``"Acme Corp"`` as-is."""
    del domain
    name = sender.split("<", 1)[0].strip()
    return name or None


DEFAULT_MATCHERS: tuple[NameMatcher, ...] = (
    match_display_name,
    match_subdomain,
    match_raw_prefix,
)


def extract_newsletter_name(
    sender: str,
    *,
    domain: str = DEFAULT_HOSTING_DOMAIN,
    matchers: tuple[NameMatcher, ...] = DEFAULT_MATCHERS,
) -> str:
    """Return the first name produced by ``matchers`` for ``sender``."""
    for matcher in matchers:
        name = matcher(sender, domain)
        if name:
            return name
    return UNKNOWN_NEWSLETTER


__all__ = [
    "DEFAULT_MATCHERS",
    "UNKNOWN_NEWSLETTER",
    "extract_newsletter_name",
    "match_display_name",
    "match_raw_prefix",
    "match_subdomain",
]
