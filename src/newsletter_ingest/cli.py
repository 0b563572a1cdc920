"""Command-line entry point for Newsletter Ingest."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from newsletter_ingest.core import AppSettings, configure_logging, load_app_settings
from newsletter_ingest.core.interfaces import IngestionError
from newsletter_ingest.ingestion import StatsReporter
from newsletter_ingest.ingestion.pipeline import run_ingestion
from newsletter_ingest.storage import SqliteEmailRepository
from newsletter_ingest.transport import GmailClient


def build_parser() -> argparse.ArgumentParser:
    """Create and configure the CLI argument parser."""
    parser = argparse.ArgumentParser(description="Newsletter ingestion from Gmail")
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to a .env file containing configuration overrides.",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="info",
        choices=["info", "fetch", "stats", "health"],
        help="Operation to execute.",
    )
    parser.add_argument(
        "--days-back",
        dest="days_back",
        type=int,
        default=None,
        help="Trailing window in days for the fetch command (default: from settings).",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Messages extracted in parallel by the fetch command.",
    )
    return parser


def execute(args: argparse.Namespace, settings: AppSettings) -> int:
    """Execute the requested CLI command and return the process exit code."""
    command = args.command
    if command == "info":
        configured = bool(settings.gmail.refresh_token and settings.gmail.client_id)
        if configured:
            print("Newsletter Ingest is ready.")
        else:
            print("Configure Gmail OAuth credentials to get started.")
        print(f"Sender domain: {settings.gmail.sender_domain}")
        print(f"Database path: {settings.storage.db_path}")
        return 0
    if command == "fetch":
        return _run_fetch(settings, days_back=args.days_back, concurrency=args.concurrency)
    if command == "stats":
        return _run_stats(settings)
    if command == "health":
        return _run_health(settings)
    return 2


def main() -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    settings = load_app_settings(env_file=args.env_file)
    configure_logging(settings.logging)
    raise SystemExit(execute(args, settings))


def _run_fetch(
    settings: AppSettings, *, days_back: int | None, concurrency: int | None
) -> int:
    """Run an ingestion cycle and report the outcome."""
    if concurrency is not None:
        settings = settings.model_copy(
            update={
                "ingestion": settings.ingestion.model_copy(
                    update={"concurrency": concurrency}
                )
            }
        )
    try:
        report = run_ingestion(settings, days_back=days_back)
    except (IngestionError, ValueError) as exc:
        print(f"Fetch failed: {exc}")
        return 1

    print(
        f"Found {report.discovered} message(s), extracted {report.extracted}, "
        f"stored {report.stored} in {report.duration_seconds:.1f}s."
    )
    return 0


def _run_stats(settings: AppSettings) -> int:
    with SqliteEmailRepository(settings.storage) as repository:
        stats = StatsReporter(repository).get_stats()
    print(f"Total emails: {stats.total_emails}")
    print(f"Received in the last 7 days: {stats.recent_emails}")
    if stats.top_newsletters:
        print("Top newsletters (30 days):")
        for entry in stats.top_newsletters:
            print(f"  {entry.count:>4}  {entry.name}")
    return 0


def _run_health(settings: AppSettings) -> int:
    async def probe() -> bool:
        with SqliteEmailRepository(settings.storage) as repository:
            async with GmailClient(settings.gmail) as mailbox:
                return await StatsReporter(repository, mailbox).test_connection()

    healthy = asyncio.run(probe())
    print("Gmail connection: " + ("healthy" if healthy else "unhealthy"))
    return 0 if healthy else 1


if __name__ == "__main__":  # pragma: no cover
    main()
