"""Logging configuration helpers and named pipeline events."""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import UTC, datetime
from typing import Any

from .config import LoggingSettings

EVENT_ATTR = "event"
PAYLOAD_ATTR = "payload"


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        document: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        event = getattr(record, EVENT_ATTR, None)
        if event is not None:
            document["event"] = event
            document.update(getattr(record, PAYLOAD_ATTR, None) or {})
        if record.exc_info:
            document["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(document, default=str)


def _structured_formatter() -> dict[str, Any]:
    """Return a dictConfig fragment for structured JSON logs."""
    return {"()": JsonFormatter}


def _plain_formatter() -> dict[str, Any]:
    """Return a dictConfig fragment for human readable logs."""
    return {
        "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
    }


def configure_logging(settings: LoggingSettings) -> None:
    """Configure application logging according to provided settings."""
    formatter = _structured_formatter() if settings.structured else _plain_formatter()

    dict_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": formatter,
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": settings.level,
            },
        },
        "root": {
            "handlers": ["console"],
            "level": settings.level,
        },
    }

    logging.config.dictConfig(dict_config)


def log_event(
    logger: logging.Logger,
    name: str,
    *,
    level: int = logging.INFO,
    **payload: Any,
) -> None:
    """Emit a named pipeline event with a structured payload."""
    logger.log(
        level,
        "%s %s",
        name,
        json.dumps(payload, default=str, sort_keys=True),
        extra={EVENT_ATTR: name, PAYLOAD_ATTR: payload},
    )


def log_error(logger: logging.Logger, exc: BaseException, **context: Any) -> None:
    """Record a failure together with the operation context it occurred in."""
    payload = {"error": str(exc), "error_type": type(exc).__name__, **context}
    logger.error(
        "error %s",
        json.dumps(payload, default=str, sort_keys=True),
        exc_info=(type(exc), exc, exc.__traceback__),
        extra={EVENT_ATTR: "error", PAYLOAD_ATTR: payload},
    )


__all__ = ["JsonFormatter", "configure_logging", "log_error", "log_event"]
