"""Scrub secret-shaped substrings from text before it is persisted."""

from __future__ import annotations

import re

# Order matters: bearer and key=value forms must win over the bare token rule.
SENSITIVE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("BEARER_TOKEN", re.compile(r"\bBearer\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE)),
    (
        "CREDENTIAL",
        re.compile(
            r"\b(?:password|passwd|secret|token|api[_-]?key)\s*[=:]\s*[^\s&\"'<>]+",
            re.IGNORECASE,
        ),
    ),
    ("SSN", re.compile(r"\b\d{3}-\d{2}-\d{4}\b")),
    ("CREDIT_CARD", re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b")),
    ("API_KEY", re.compile(r"\b[A-Za-z0-9]{32,}\b")),
)


def redact_sensitive_data(text: str) -> str:
    """Replace every sensitive match in ``text`` with ``[REDACTED_<TYPE>]``."""
    if not text:
        return text
    for label, pattern in SENSITIVE_PATTERNS:
        text = pattern.sub(f"[REDACTED_{label}]", text)
    return text


__all__ = ["SENSITIVE_PATTERNS", "redact_sensitive_data"]
