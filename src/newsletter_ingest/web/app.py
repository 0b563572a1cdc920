"""FastAPI application exposing ingestion, stats, and health endpoints."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from dataclasses import asdict
from typing import Any

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, status as http_status
from fastapi.responses import JSONResponse

from newsletter_ingest.core import AppSettings, load_app_settings
from newsletter_ingest.core.datetime_utils import serialize_datetime
from newsletter_ingest.core.interfaces import (
    ProviderListError,
    RateLimitExceeded,
    StorageError,
)
from newsletter_ingest.core.models import IngestionReport, IngestionStats
from newsletter_ingest.ingestion import StatsReporter
from newsletter_ingest.ingestion.pipeline import run_pipeline
from newsletter_ingest.storage import SqliteEmailRepository
from newsletter_ingest.transport import GmailClient

LOGGER = logging.getLogger(__name__)

MAX_DAYS_BACK = 365


def create_app(
    settings: AppSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    app_settings = settings or load_app_settings()
    app = FastAPI(title="Newsletter Ingest")

    def get_repository() -> Iterator[SqliteEmailRepository]:
        with SqliteEmailRepository(app_settings.storage) as repository:
            yield repository

    @app.get("/health")
    async def health(
        repository: SqliteEmailRepository = Depends(get_repository),  # noqa: B008
    ) -> JSONResponse:
        """Probe the Gmail connection."""
        async with GmailClient(app_settings.gmail, transport=transport) as mailbox:
            healthy = await StatsReporter(repository, mailbox).test_connection()
        return JSONResponse(
            {"status": "healthy" if healthy else "unhealthy", "gmail": healthy},
            status_code=(
                http_status.HTTP_200_OK
                if healthy
                else http_status.HTTP_503_SERVICE_UNAVAILABLE
            ),
        )

    @app.get("/stats")
    async def stats(
        repository: SqliteEmailRepository = Depends(get_repository),  # noqa: B008
    ) -> dict[str, Any]:
        """Return totals and the most active newsletters."""
        stats = await asyncio.to_thread(StatsReporter(repository).get_stats)
        return _serialize_stats(stats)

    @app.post("/ingest")
    async def ingest(
        days_back: int | None = Query(  # noqa: B008
            default=None, ge=0, le=MAX_DAYS_BACK
        ),
    ) -> dict[str, Any]:
        """Run one ingestion cycle and return its report."""
        try:
            report = await run_pipeline(
                app_settings, days_back=days_back, transport=transport
            )
        except RateLimitExceeded as exc:
            raise HTTPException(
                status_code=http_status.HTTP_429_TOO_MANY_REQUESTS, detail=str(exc)
            ) from exc
        except ProviderListError as exc:
            raise HTTPException(
                status_code=http_status.HTTP_502_BAD_GATEWAY, detail=str(exc)
            ) from exc
        except StorageError as exc:
            raise HTTPException(
                status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=str(exc),
            ) from exc
        LOGGER.info("Ingestion via HTTP stored %s email(s)", report.stored)
        return _serialize_report(report)

    return app


def _serialize_stats(stats: IngestionStats) -> dict[str, Any]:
    return {
        "total_emails": stats.total_emails,
        "recent_emails": stats.recent_emails,
        "top_newsletters": [asdict(entry) for entry in stats.top_newsletters],
    }


def _serialize_report(report: IngestionReport) -> dict[str, Any]:
    window = report.fetch_window
    return {
        "fetch_window": {
            "start_date": serialize_datetime(window.start_date),
            "end_date": serialize_datetime(window.end_date),
            "days_back": window.days_back,
        },
        "discovered": report.discovered,
        "extracted": report.extracted,
        "stored": report.stored,
        "duration_seconds": report.duration_seconds,
    }


__all__ = ["create_app"]
