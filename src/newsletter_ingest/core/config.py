"""Application configuration models and loader utilities."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, cast

from dotenv import dotenv_values
from pydantic import BaseModel, Field, field_validator

from .datetime_utils import parse_window


class GmailSettings(BaseModel):
    """Settings controlling Gmail API access."""

    client_id: str | None = Field(default=None, description="OAuth client ID")
    client_secret: str | None = Field(
        default=None, description="OAuth client secret"
    )
    refresh_token: str | None = Field(
        default=None, description="Long-lived OAuth refresh token"
    )
    user_id: str = Field(default="me", description="Gmail user to query")
    sender_domain: str = Field(
        default="substack.com", description="Newsletter hosting domain"
    )
    page_size: int = Field(
        default=100, ge=1, le=500, description="Messages requested per page"
    )
    timeout_seconds: float = Field(
        default=30.0, gt=0, description="Per-request timeout for Gmail calls"
    )
    api_base_url: str = Field(
        default="https://gmail.googleapis.com/gmail/v1",
        description="Gmail REST API base URL",
    )
    token_url: str = Field(
        default="https://oauth2.googleapis.com/token",
        description="OAuth token endpoint",
    )


class IngestionSettings(BaseModel):
    """Settings controlling a fetch run."""

    days_back: int = Field(default=30, ge=0, description="Trailing window in days")
    concurrency: int = Field(
        default=5, ge=1, description="Messages extracted concurrently"
    )
    min_text_length: int = Field(
        default=100, ge=0, description="Shortest clean text worth storing"
    )
    max_html_length: int = Field(
        default=50_000, ge=1, description="HTML truncation limit before parsing"
    )


class BurstLimitSettings(BaseModel):
    """Ceiling applied to whole fetch runs."""

    resource: str = Field(default="gmail-api")
    operation: str = Field(default="daily-fetch")
    max_calls: int = Field(default=5, ge=1)
    window: str = Field(default="1h", description="Window such as 30m, 1h or 1d")

    @field_validator("window")
    @classmethod
    def check_window(cls, value: str) -> str:
        parse_window(value)
        return value


class StorageSettings(BaseModel):
    """Settings for local persistence."""

    db_path: Path = Field(
        default=Path("./newsletter_ingest.db"), description="SQLite database path"
    )


class LoggingSettings(BaseModel):
    """Logging preferences."""

    level: str = Field(default="INFO", description="Root logging level")
    structured: bool = Field(
        default=False, description="Toggle JSON structured logging"
    )


class AppSettings(BaseModel):
    """Aggregated application configuration."""

    gmail: GmailSettings = Field(default_factory=GmailSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    burst: BurstLimitSettings = Field(default_factory=BurstLimitSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


ENV_PREFIX = "NEWSLETTER_INGEST_"

# Unprefixed variables honoured when the prefixed ones are absent.
LEGACY_ENV_KEYS: dict[str, tuple[str, ...]] = {
    "GOOGLE_CLIENT_ID": ("gmail", "client_id"),
    "GOOGLE_CLIENT_SECRET": ("gmail", "client_secret"),
    "GOOGLE_REFRESH_TOKEN": ("gmail", "refresh_token"),
}


def _normalize_key(raw_key: str) -> list[str]:
    """Convert an environment variable key into a nested attribute path."""
    trimmed = raw_key.removeprefix(ENV_PREFIX)
    return [segment.lower() for segment in trimmed.split("__") if segment]


def _merge_into_tree(tree: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a value to a nested dictionary given a path."""
    cursor = tree
    for segment in path[:-1]:
        next_node = cursor.setdefault(segment, {})
        cursor = cast(dict[str, Any], next_node)
    cursor[path[-1]] = value


def _normalize_value(value: Any) -> Any:
    if isinstance(value, str) and value == "":
        return None
    if isinstance(value, str):
        lowercase_value = value.lower()
        if lowercase_value == "true":
            return True
        if lowercase_value == "false":
            return False
    return value


def _lookup(tree: dict[str, Any], path: tuple[str, ...]) -> Any:
    cursor: Any = tree
    for segment in path:
        if not isinstance(cursor, dict) or segment not in cursor:
            return None
        cursor = cursor[segment]
    return cursor


def _collect_env_values(
    env_file: Path | str | None, *, include_environment: bool = True
) -> dict[str, Any]:
    """Load configuration values from environment variables and optional file."""
    collected: dict[str, Any] = {}

    file_values: dict[str, str | None] = {}
    if env_file:
        env_path = Path(env_file)
        if env_path.is_file():
            file_values = {
                key: value for key, value in dotenv_values(env_path).items() if key
            }

    env_values: dict[str, str] = dict(os.environ) if include_environment else {}
    combined: dict[str, Any] = {**file_values, **env_values}

    for key, value in combined.items():
        if not key.startswith(ENV_PREFIX):
            continue
        path = _normalize_key(key)
        if not path:
            continue
        _merge_into_tree(collected, path, _normalize_value(value))

    for legacy_key, path in LEGACY_ENV_KEYS.items():
        legacy_value = _normalize_value(combined.get(legacy_key))
        if legacy_value is None or _lookup(collected, path) is not None:
            continue
        _merge_into_tree(collected, list(path), legacy_value)

    return collected


@lru_cache(maxsize=1)
def load_app_settings(
    env_file: Path | str | None = None,
    *,
    include_environment: bool = True,
    **overrides: Any,
) -> AppSettings:
    """Load application settings, applying env files and overrides."""
    collected = _collect_env_values(env_file, include_environment=include_environment)
    if overrides:
        collected.update(overrides)
    return AppSettings.model_validate(collected)


__all__ = [
    "AppSettings",
    "BurstLimitSettings",
    "GmailSettings",
    "IngestionSettings",
    "LoggingSettings",
    "StorageSettings",
    "load_app_settings",
]
