"""SQLite-backed newsletter repository implementation."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from threading import Lock
from types import TracebackType

from ..core.config import StorageSettings
from ..core.datetime_utils import parse_datetime, serialize_datetime
from ..core.interfaces import EmailRepository, StorageError
from ..core.models import StoredEmailRow

LOGGER = logging.getLogger(__name__)

SCHEMA_DIR = Path(__file__).resolve().parent / "schema"


def connect(db_path: Path | str, **kwargs: object) -> sqlite3.Connection:
    """Open ``db_path``, creating parent directories as needed."""
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    connection = sqlite3.connect(path, **kwargs)  # type: ignore[arg-type]
    connection.row_factory = sqlite3.Row
    return connection


def apply_migrations(connection: sqlite3.Connection) -> None:
    """Run every bundled ``*.sql`` script in name order; scripts are idempotent."""
    for migration in sorted(SCHEMA_DIR.glob("*.sql")):
        LOGGER.debug("Applying migration %s", migration.name)
        connection.executescript(migration.read_text(encoding="utf-8"))
    connection.commit()


class SqliteEmailRepository(EmailRepository):
    """Persist newsletters in the ``emails`` table using SQLite."""

    def __init__(self, settings: StorageSettings) -> None:
        """Open the database and apply migrations."""
        self._settings = settings
        self._lock = Lock()
        self._connection = connect(settings.db_path, check_same_thread=False)
        apply_migrations(self._connection)

    # Context manager helpers -------------------------------------------------
    def __enter__(self) -> SqliteEmailRepository:
        """Enter context manager scope."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Ensure the connection is closed when exiting context manager."""
        self.close()

    # EmailRepository API -----------------------------------------------------
    def upsert_emails(self, rows: Sequence[StoredEmailRow]) -> int:
        """Insert or overwrite ``rows`` by ``message_id`` in one transaction."""
        if not rows:
            return 0
        for row in rows:
            if not row.message_id:
                raise ValueError("Email message_id is required")

        LOGGER.debug("Upserting %s email(s)", len(rows))
        try:
            with self._lock, self._connection:
                self._connection.executemany(
                    """
                    INSERT INTO emails (
                        message_id,
                        subject,
                        sender,
                        newsletter_name,
                        received_at,
                        processed_at,
                        raw_html,
                        clean_text,
                        processing_status
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(message_id) DO UPDATE SET
                        subject=excluded.subject,
                        sender=excluded.sender,
                        newsletter_name=excluded.newsletter_name,
                        received_at=excluded.received_at,
                        processed_at=excluded.processed_at,
                        raw_html=excluded.raw_html,
                        clean_text=excluded.clean_text,
                        processing_status=excluded.processing_status,
                        updated_at=CURRENT_TIMESTAMP
                    """,
                    [
                        (
                            row.message_id,
                            row.subject,
                            row.sender,
                            row.newsletter_name,
                            serialize_datetime(row.received_at),
                            serialize_datetime(row.processed_at),
                            row.raw_html,
                            row.clean_text,
                            row.processing_status,
                        )
                        for row in rows
                    ],
                )
        except sqlite3.Error as exc:
            LOGGER.error("Failed to upsert %s email(s): %s", len(rows), exc)
            raise StorageError(f"Failed to upsert emails: {exc}") from exc
        return len(rows)

    def fetch_email(self, message_id: str) -> StoredEmailRow | None:
        """Retrieve a stored email by ``message_id``."""
        with self._lock:
            row = self._connection.execute(
                """
                SELECT
                    message_id,
                    subject,
                    sender,
                    newsletter_name,
                    received_at,
                    processed_at,
                    raw_html,
                    clean_text,
                    processing_status
                FROM emails
                WHERE message_id = ?
                """,
                (message_id,),
            ).fetchone()
        if row is None:
            return None
        return StoredEmailRow(
            message_id=row["message_id"],
            subject=row["subject"],
            sender=row["sender"],
            newsletter_name=row["newsletter_name"],
            received_at=parse_datetime(row["received_at"], assume_utc=True),
            processed_at=parse_datetime(row["processed_at"], assume_utc=True),
            raw_html=row["raw_html"] or "",
            clean_text=row["clean_text"] or "",
            processing_status=row["processing_status"],
        )

    def count_emails(self, *, received_since: datetime | None = None) -> int:
        """Return the number of stored emails, optionally after a cutoff."""
        query = ["SELECT COUNT(*) FROM emails"]
        params: list[object] = []
        if received_since is not None:
            query.append("WHERE received_at >= ?")
            params.append(serialize_datetime(received_since))
        with self._lock:
            (count,) = self._connection.execute(" ".join(query), params).fetchone()
        return int(count)

    def list_newsletter_names(self, *, received_since: datetime) -> list[str]:
        """Return the newsletter name of each email received after a cutoff."""
        with self._lock:
            rows = self._connection.execute(
                "SELECT newsletter_name FROM emails WHERE received_at >= ?",
                (serialize_datetime(received_since),),
            ).fetchall()
        return [row["newsletter_name"] for row in rows]

    def close(self) -> None:
        """Close the underlying SQLite connection."""
        self._connection.close()


__all__ = ["SqliteEmailRepository", "apply_migrations", "connect"]
