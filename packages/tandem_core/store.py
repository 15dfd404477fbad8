"""Audit, notification, and commit record storage for Tandem.

Provides a SQLite-backed store holding the human-readable audit log,
recorded notifications, and commit records keyed by revision.

Execution Context:
    Library module - imported by orchestrator, workspace, and CLI log command

Dependencies:
    - sqlite3: Database operations (stdlib)
    - uuid: ID generation (stdlib)

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

import json
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import asdict
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from tandem_core.models import CommitRecord
from tandem_core.models import CommitStatus

logger = logging.getLogger(__name__)


# ---- Data Model Classes -------------------------------------------------------------------------------------


@dataclass
class AuditEntry:
    """One line of the audit log.

    Attributes:
        id: Unique entry identifier.
        timestamp: ISO 8601 timestamp.
        category: Operation category (commit, branch, revert, discard...).
        message: Human-readable message, may contain a link.
    """

    id: str
    timestamp: str
    category: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> AuditEntry:
        return cls(
            id=row["id"],
            timestamp=row["timestamp"],
            category=row["category"],
            message=row["message"],
        )


@dataclass
class Notification:
    """A notification handed to the delivery channel.

    Attributes:
        id: Unique notification identifier.
        timestamp: ISO 8601 timestamp.
        subject: Notification subject.
        body: Notification body.
        delivered: Whether a delivery callback accepted it.
    """

    id: str
    timestamp: str
    subject: str
    body: str
    delivered: bool = False

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Notification:
        return cls(
            id=row["id"],
            timestamp=row["timestamp"],
            subject=row["subject"],
            body=row["body"],
            delivered=bool(row["delivered"]),
        )


# ---- Tandem Store Class -------------------------------------------------------------------------------------


class TandemStore:
    """SQLite-backed storage for audit lines, notifications, and commit records.

    Attributes:
        db_path: Path to SQLite database file.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize store with SQLite database.

        Args:
            db_path: Path to tandem.db file (``:memory:`` for tests).
        """
        self.db_path = db_path if str(db_path) == ":memory:" else Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self._ensure_schema()

    @property
    def _connection(self) -> sqlite3.Connection:
        """Get or create database connection.

        Returns:
            SQLite connection with row factory.
        """
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path))
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
        return self._conn

    def _ensure_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        conn = self._connection
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS audit_log (
                id TEXT PRIMARY KEY,
                timestamp TEXT NOT NULL,
                category TEXT NOT NULL,
                message TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS notifications (
                id TEXT PRIMARY KEY,
                timestamp TEXT NOT NULL,
                subject TEXT NOT NULL,
                body TEXT NOT NULL,
                delivered INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS commit_records (
                revision TEXT PRIMARY KEY,
                branch TEXT,
                message TEXT NOT NULL,
                files JSON NOT NULL,
                files_changed INTEGER NOT NULL,
                snapshot_id TEXT,
                status TEXT NOT NULL,
                method TEXT,
                timestamp TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_audit_category ON audit_log(category);
            CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp);
        """)
        conn.commit()

    @staticmethod
    def generate_id() -> str:
        return str(uuid4())

    # ---- Audit Operations -----------------------------------------------------------------------------------

    def add_audit(
        self,
        message: str,
        category: str,
    ) -> AuditEntry:
        """Append a line to the audit log.

        Args:
            message: Human-readable message.
            category: Operation category.

        Returns:
            Created AuditEntry.
        """
        entry = AuditEntry(
            id=self.generate_id(),
            timestamp=datetime.now().isoformat(),
            category=category,
            message=message,
        )
        conn = self._connection
        conn.execute(
            "INSERT INTO audit_log (id, timestamp, category, message) VALUES (?, ?, ?, ?)",
            [entry.id, entry.timestamp, entry.category, entry.message],
        )
        conn.commit()
        return entry

    def get_audit(
        self,
        category: str | None = None,
        limit: int = 50,
    ) -> list[AuditEntry]:
        """Get audit lines, newest first.

        Args:
            category: Filter by category.
            limit: Maximum results to return.

        Returns:
            List of audit entries.
        """
        sql = "SELECT * FROM audit_log"
        params: list[Any] = []
        if category:
            sql += " WHERE category = ?"
            params.append(category)
        sql += " ORDER BY timestamp DESC, rowid DESC LIMIT ?"
        params.append(limit)

        cursor = self._connection.execute(sql, params)
        return [AuditEntry.from_row(row) for row in cursor.fetchall()]

    # ---- Notification Operations ----------------------------------------------------------------------------

    def add_notification(
        self,
        subject: str,
        body: str,
        delivered: bool = False,
    ) -> Notification:
        notification = Notification(
            id=self.generate_id(),
            timestamp=datetime.now().isoformat(),
            subject=subject,
            body=body,
            delivered=delivered,
        )
        conn = self._connection
        conn.execute(
            """
            INSERT INTO notifications (id, timestamp, subject, body, delivered)
            VALUES (?, ?, ?, ?, ?)
            """,
            [notification.id, notification.timestamp, subject, body, int(delivered)],
        )
        conn.commit()
        return notification

    def get_notifications(self, limit: int = 50) -> list[Notification]:
        cursor = self._connection.execute(
            "SELECT * FROM notifications ORDER BY timestamp DESC, rowid DESC LIMIT ?",
            [limit],
        )
        return [Notification.from_row(row) for row in cursor.fetchall()]

    # ---- Commit Record Operations ---------------------------------------------------------------------------

    def save_commit_record(
        self,
        record: CommitRecord,
    ) -> None:
        """Persist a committed record keyed by its revision.

        Args:
            record: Committed CommitRecord.

        Raises:
            RuntimeError: If the record is not committed or the revision
                already has a committed record.
        """
        if record.status is not CommitStatus.COMMITTED or not record.revision:
            msg = "Only committed records with a revision can be saved"
            raise RuntimeError(msg)

        conn = self._connection
        try:
            conn.execute(
                """
                INSERT INTO commit_records
                    (revision, branch, message, files, files_changed, snapshot_id, status, method, timestamp)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    record.revision,
                    record.branch,
                    record.message,
                    json.dumps(record.files),
                    record.files_changed,
                    record.snapshot_id,
                    record.status.value,
                    record.method,
                    record.timestamp,
                ],
            )
            conn.commit()
        except sqlite3.IntegrityError as integrity_error:
            msg = f"Commit record for {record.revision} already exists"
            raise RuntimeError(msg) from integrity_error

    def get_commit_record(
        self,
        revision: str,
    ) -> CommitRecord | None:
        cursor = self._connection.execute(
            "SELECT * FROM commit_records WHERE revision = ?",
            [revision],
        )
        row = cursor.fetchone()
        if row is None:
            return None
        data = dict(row)
        data["files"] = json.loads(data["files"])
        return CommitRecord.from_dict(data)

    def count_commit_records(self) -> int:
        return self._connection.execute("SELECT COUNT(*) FROM commit_records").fetchone()[0]

    # ---- Utility Methods ------------------------------------------------------------------------------------

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> TandemStore:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


# ---- Audit and Notification Facades -------------------------------------------------------------------------


class AuditLog:
    """Records one human-readable line per completed operation."""

    def __init__(self, store: TandemStore) -> None:
        self.store = store

    def log(
            self,
            message: str,
            category: str,
    ) -> AuditEntry:
        logger.info(f"[{category}] {message}")
        return self.store.add_audit(message, category)


class Notifier:
    """Records notifications and hands them to an optional delivery callback.

    Attributes:
        store: Store the notification is recorded in.
        deliver: Callable taking (subject, body); delivery is external.
    """

    def __init__(
            self,
            store: TandemStore,
            deliver: Callable[[str, str], None] | None = None,
    ) -> None:
        self.store = store
        self.deliver = deliver

    def notify(
            self,
            subject: str,
            body: str,
    ) -> Notification:
        """Record a notification and attempt delivery.

        Delivery failures are logged; the notification is still recorded
        as undelivered.

        Args:
            subject: Notification subject.
            body: Notification body.

        Returns:
            Recorded Notification.
        """
        delivered = False
        if self.deliver is not None:
            try:
                self.deliver(subject, body)
                delivered = True
            except Exception as delivery_error:
                logger.warning(f"Notification delivery failed: {delivery_error}")
        return self.store.add_notification(subject, body, delivered=delivered)
