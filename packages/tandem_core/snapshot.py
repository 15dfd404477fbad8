"""Data-store snapshots for Tandem.

Dumps tables of the managed SQLite database to per-table ``.sql`` files
inside the working tree and, when a repository driver is attached,
commits them so every snapshot pairs with a git revision. Restores
read the dump files back either from the working tree or from a
specific revision.

Execution Context:
    Library module - imported by orchestrator and workspace modules

Dependencies:
    - sqlite3: Managed database access (stdlib)
    - tandem_core.driver: Committing and reading dump files

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

import hashlib
import logging
import sqlite3
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Protocol

from tandem_core.driver import RepositoryDriver
from tandem_core.errors import DriverError
from tandem_core.models import SnapshotRecord

logger = logging.getLogger(__name__)


# ---- Constants ----------------------------------------------------------------------------------------------


DUMP_SUFFIX = ".sql"
SNAPSHOT_MESSAGE = "Backed up the database"


# ---- Protocol -----------------------------------------------------------------------------------------------


class SnapshotStore(Protocol):
    """Contract the orchestrator relies on for data snapshots."""

    def snapshot(self, tables: Sequence[str] | None = None) -> SnapshotRecord: ...

    def restore(self, snapshot_id: str | None = None, tables: Sequence[str] | None = None) -> list[str]: ...

    def import_untracked(self, unit_ids: Sequence[str]) -> list[str]: ...

    def untracked_units(self) -> list[str]: ...


# ---- SQLite Snapshot Store ----------------------------------------------------------------------------------


class SqliteSnapshotStore:
    """Snapshot store for a SQLite database.

    Attributes:
        db_path: Managed database file.
        dump_dir: Directory inside the working tree for dump files.
        driver: Repository driver used to commit and read dumps.
    """

    def __init__(
            self,
            db_path: Path | str,
            dump_dir: Path | str,
            driver: RepositoryDriver | None = None,
            working_dir: Path | str | None = None,
    ) -> None:
        self.db_path = Path(db_path)
        self.dump_dir = Path(dump_dir)
        self.driver = driver
        self.working_dir = Path(working_dir).resolve() if working_dir else self.dump_dir.parent.resolve()

    # ---- Database Helpers -----------------------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        if not self.db_path.exists():
            msg = f"Database not found at {self.db_path}"
            raise DriverError(msg)
        return sqlite3.connect(str(self.db_path))

    def list_tables(self) -> list[str]:
        """List user tables in the managed database.

        Returns:
            Sorted table names, excluding sqlite internals.
        """
        conn = self._connect()
        try:
            return self.list_tables_with(conn)
        finally:
            conn.close()

    def tracked_tables(self) -> list[str]:
        if not self.dump_dir.is_dir():
            return []
        return sorted(path.stem for path in self.dump_dir.glob(f"*{DUMP_SUFFIX}"))

    def untracked_units(self) -> list[str]:
        """List dump files whose tables are missing from the database.

        Returns:
            Table names that can be imported.
        """
        existing = set(self.list_tables())
        return [table for table in self.tracked_tables() if table not in existing]

    def dump_path(self, table: str) -> Path:
        return self.dump_dir / f"{table}{DUMP_SUFFIX}"

    def _relative_to_tree(self, path: Path) -> str:
        try:
            return path.resolve().relative_to(self.working_dir).as_posix()
        except ValueError as path_error:
            msg = f"Dump directory {self.dump_dir} is outside the working tree {self.working_dir}"
            raise DriverError(msg) from path_error

    def _relative_dump_path(self, table: str) -> str:
        return self._relative_to_tree(self.dump_path(table))

    @staticmethod
    def dump_table(
            conn: sqlite3.Connection,
            table: str,
    ) -> str:
        """Render one table as SQL statements.

        Args:
            conn: Open database connection.
            table: Table name.

        Returns:
            SQL text that recreates the table and its rows.

        Raises:
            DriverError: If the table does not exist.
        """
        schema = conn.execute(
            "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?",
            [table],
        ).fetchone()
        if schema is None:
            msg = f"Table '{table}' does not exist"
            raise DriverError(msg)

        quoted = table.replace('"', '""')
        lines = [f'DROP TABLE IF EXISTS "{quoted}";', f"{schema[0]};"]

        columns = [row[1] for row in conn.execute(f'PRAGMA table_info("{quoted}")')]
        selects = ", ".join(f"quote(\"{column.replace(chr(34), chr(34) * 2)}\")" for column in columns)
        for row in conn.execute(f'SELECT {selects} FROM "{quoted}"'):
            lines.append(f'INSERT INTO "{quoted}" VALUES({", ".join(row)});')

        indexes = conn.execute(
            "SELECT sql FROM sqlite_master WHERE type = 'index' AND tbl_name = ? AND sql IS NOT NULL",
            [table],
        )
        lines.extend(f"{row[0]};" for row in indexes)
        return "\n".join(lines) + "\n"

    def _load_dump(
            self,
            sql: str,
    ) -> None:
        conn = self._connect()
        try:
            conn.executescript(f"BEGIN;\n{sql}COMMIT;\n")
        except sqlite3.Error as sql_error:
            conn.rollback()
            msg = f"Failed to import dump: {sql_error}"
            raise DriverError(msg) from sql_error
        finally:
            conn.close()

    # ---- Snapshot -------------------------------------------------------------------------------------------

    def snapshot(
            self,
            tables: Sequence[str] | None = None,
    ) -> SnapshotRecord:
        """Dump tables and commit the dump files.

        Args:
            tables: Tables to include; None for every table.

        Returns:
            SnapshotRecord for the dump, with the revision the dump
            files are committed in when a driver is attached.

        Raises:
            DriverError: If dumping or committing fails.
        """
        method = "full" if tables is None else "tables"
        conn = self._connect()
        try:
            selected = list(tables) if tables is not None else self.list_tables_with(conn)
            self.dump_dir.mkdir(parents=True, exist_ok=True)
            digest = hashlib.sha256()
            for table in selected:
                sql = self.dump_table(conn, table)
                self.dump_path(table).write_text(sql, encoding="utf-8")
                digest.update(sql.encode())
        finally:
            conn.close()

        record = SnapshotRecord(
            id=digest.hexdigest()[:12],
            created_at=datetime.now().isoformat(),
            method=method,
            tables=selected,
        )

        if self.driver is not None:
            record.committed = self._commit_dumps(selected)
            record.revision = self.driver.current_revision()
            if record.revision:
                record.id = record.revision

        logger.info(f"Snapshot {record.id} taken ({method}, {len(selected)} table(s))")
        return record

    @staticmethod
    def list_tables_with(conn: sqlite3.Connection) -> list[str]:
        rows = conn.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%'"
        ).fetchall()
        return sorted(row[0] for row in rows)

    def _commit_dumps(
            self,
            tables: Sequence[str],
    ) -> bool:
        """Stage dump files and commit them if anything changed."""
        if not tables:
            return False

        paths = [self._relative_dump_path(table) for table in tables]
        self.driver.run("add", ["-A", "--", *paths])
        unchanged = self.driver.run("diff", ["--cached", "--quiet", "--", *paths], check=False)
        if unchanged.success:
            return False
        self.driver.commit(SNAPSHOT_MESSAGE)
        return True

    # ---- Restore --------------------------------------------------------------------------------------------

    def _read_dump(
            self,
            table: str,
            revision: str | None,
    ) -> str:
        if revision is None:
            path = self.dump_path(table)
            if not path.exists():
                msg = f"No dump file for table '{table}'"
                raise DriverError(msg)
            return path.read_text(encoding="utf-8")

        if self.driver is None:
            msg = "Restoring from a revision requires a repository driver"
            raise DriverError(msg)
        result = self.driver.run("show", [f"{revision}:{self._relative_dump_path(table)}"])
        return result.output

    def _tables_at(
            self,
            revision: str | None,
    ) -> list[str]:
        if revision is None or self.driver is None:
            return self.tracked_tables()

        rel_dir = self._relative_to_tree(self.dump_dir)
        result = self.driver.run("ls-tree", ["--name-only", revision, f"{rel_dir}/"])
        return sorted(
            Path(line).stem for line in result.lines if line.endswith(DUMP_SUFFIX)
        )

    def restore(
            self,
            snapshot_id: str | None = None,
            tables: Sequence[str] | None = None,
    ) -> list[str]:
        """Import dump files into the database.

        Args:
            snapshot_id: Revision to read dumps from; None reads the
                working tree.
            tables: Tables to restore; None for every dumped table.

        Returns:
            Tables that were restored.

        Raises:
            DriverError: If a dump cannot be read or imported.
        """
        selected = list(tables) if tables is not None else self._tables_at(snapshot_id)
        for table in selected:
            self._load_dump(self._read_dump(table, snapshot_id))

        source = snapshot_id or "working tree"
        logger.info(f"Restored {len(selected)} table(s) from {source}")
        return selected

    def import_untracked(
            self,
            unit_ids: Sequence[str],
    ) -> list[str]:
        """Import dump files for tables that do not exist yet.

        Args:
            unit_ids: Table names to import.

        Returns:
            Tables that were imported.

        Raises:
            DriverError: If a requested table has no dump file.
        """
        for table in unit_ids:
            self._load_dump(self._read_dump(table, None))
        return list(unit_ids)
