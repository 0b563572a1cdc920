"""Core utilities for configuration, logging, and shared models."""

from .config import AppSettings, GmailSettings, IngestionSettings, load_app_settings
from .logging import configure_logging, log_error, log_event

__all__ = [
    "AppSettings",
    "GmailSettings",
    "IngestionSettings",
    "configure_logging",
    "load_app_settings",
    "log_error",
    "log_event",
]
