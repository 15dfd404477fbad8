"""Workspace management for Tandem.

Handles the .tandem directory holding configuration and the Tandem
store, and wires the driver, snapshot store, and orchestrator for a
working tree.

Execution Context:
    Library module - imported by CLI commands

Dependencies:
    - python-dotenv: Load .env files from the workspace root
    - tandem_core.models: WorkspaceConfig
    - tandem_core.orchestrator: Operation orchestration

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from tandem_core.driver import GitDriver
from tandem_core.models import WorkspaceConfig
from tandem_core.orchestrator import Orchestrator
from tandem_core.snapshot import SqliteSnapshotStore
from tandem_core.store import TandemStore


# ---- Constants ----------------------------------------------------------------------------------------------


TANDEM_DIR = ".tandem"
CONFIG_FILE = "config.json"
STORE_DB = "tandem.db"
DATABASE_ENV = "TANDEM_DATABASE"
ENV_FILE = ".env"
SQLITE_SIDECARS = ("-journal", "-wal", "-shm")


# ---- Workspace Class ----------------------------------------------------------------------------------------


class Workspace:
    """A git working tree paired with a managed database.

    Attributes:
        root: Root of the git working tree.
        tandem_dir: Path to the .tandem directory.
    """

    def __init__(
            self,
            root: Path | str,
    ) -> None:
        self.root = Path(root).resolve()
        self.tandem_dir = self.root / TANDEM_DIR

    # ---- Path Properties ------------------------------------------------------------------------------------

    @property
    def config_path(self) -> Path:
        """Path to config.json."""
        return self.tandem_dir / CONFIG_FILE

    @property
    def store_path(self) -> Path:
        """Path to tandem.db."""
        return self.tandem_dir / STORE_DB

    def exists(self) -> bool:
        return self.config_path.is_file()

    # ---- Initialization -------------------------------------------------------------------------------------

    def init(
            self,
            database: str = "",
            project_name: str = "",
            site_name: str = "",
            dump_dir: str = "data",
            remote: str = "origin",
    ) -> WorkspaceConfig:
        """Create the .tandem directory and its configuration.

        The directory, and the database when it lives inside the
        working tree, are excluded from git so hard resets and cleans
        never touch them.

        Args:
            database: Path to the managed SQLite database.
            project_name: Name of the project.
            site_name: Name used in notifications.
            dump_dir: Working tree directory for dump files.
            remote: Git remote name.

        Returns:
            The saved WorkspaceConfig.

        Raises:
            RuntimeError: If the workspace already exists or the dump
                directory lies outside the working tree.
        """
        if self.exists():
            msg = f"Tandem workspace already exists at {self.tandem_dir}"
            raise RuntimeError(msg)
        if self._tree_path(self.root / dump_dir) is None:
            msg = f"Dump directory {dump_dir} must be inside {self.root}"
            raise RuntimeError(msg)

        try:
            self.tandem_dir.mkdir(parents=True, exist_ok=True)
            config = WorkspaceConfig(
                project_name=project_name or self.root.name,
                site_name=site_name,
                database=database,
                dump_dir=dump_dir,
                remote=remote,
            )
            config.save(self.config_path)

            with TandemStore(self.store_path):
                pass  # Schema created on open

        except Exception as init_error:
            msg = f"Failed to initialize workspace: {init_error}"
            raise RuntimeError(msg) from init_error

        self.exclude_from_git(config)
        return config

    def exclude_from_git(
            self,
            config: WorkspaceConfig | None = None,
    ) -> None:
        """Add .tandem/ and an in-tree database to .git/info/exclude.

        Excluded paths survive ``git clean``, which discard and revert
        run. The database entry is anchored to the root and also covers
        the SQLite journal files next to it.

        Args:
            config: Workspace configuration naming the database; None
                excludes only the .tandem directory.
        """
        git_dir = self.root / ".git"
        if not git_dir.is_dir():
            return

        entries = [f"{TANDEM_DIR}/"]
        if config is not None and config.database:
            database = self._tree_path(self.database_path(config))
            if database:
                entries.append(f"/{database}")
                entries.extend(f"/{database}{suffix}" for suffix in SQLITE_SIDECARS)

        exclude_path = git_dir / "info" / "exclude"
        exclude_path.parent.mkdir(parents=True, exist_ok=True)
        content = exclude_path.read_text() if exclude_path.exists() else ""
        existing = content.splitlines()
        missing = [entry for entry in entries if entry not in existing]
        if missing:
            separator = "" if not content or content.endswith("\n") else "\n"
            exclude_path.write_text(f"{content}{separator}" + "".join(f"{entry}\n" for entry in missing))

    def _tree_path(self, path: Path) -> str | None:
        """Path relative to the root in posix form, or None when outside it."""
        try:
            return path.resolve().relative_to(self.root).as_posix()
        except ValueError:
            return None

    # ---- Config Operations ----------------------------------------------------------------------------------

    def get_config(self) -> WorkspaceConfig:
        """Load workspace configuration.

        The ``TANDEM_DATABASE`` environment variable overrides the
        configured database path. A .env file in the workspace root is
        loaded first; variables already set in the shell take precedence.

        Raises:
            RuntimeError: If config cannot be loaded.
        """
        if not self.config_path.exists():
            msg = f"Config file not found at {self.config_path}"
            raise RuntimeError(msg)

        env_path = self.root / ENV_FILE
        if env_path.exists():
            load_dotenv(env_path)

        config = WorkspaceConfig.load(self.config_path)
        database = os.getenv(DATABASE_ENV)
        if database:
            config.database = database
        return config

    def update_config(
            self,
            config: WorkspaceConfig,
    ) -> None:
        config.save(self.config_path)

    # ---- Wiring ---------------------------------------------------------------------------------------------

    def database_path(self, config: WorkspaceConfig) -> Path:
        """Resolve the managed database path against the workspace root."""
        if not config.database:
            msg = f"No database configured. Set it in {self.config_path} or {DATABASE_ENV}."
            raise RuntimeError(msg)
        path = Path(config.database)
        return path if path.is_absolute() else self.root / path

    def driver(self, config: WorkspaceConfig | None = None) -> GitDriver:
        config = config or self.get_config()
        return GitDriver(self.root, remote=config.remote)

    def orchestrator(self) -> Orchestrator:
        """Build an orchestrator wired to this workspace.

        Caller is responsible for closing ``orchestrator.store``.

        Returns:
            Orchestrator for this workspace.
        """
        config = self.get_config()
        self.exclude_from_git(config)
        driver = self.driver(config)
        snapshots = SqliteSnapshotStore(
            db_path=self.database_path(config),
            dump_dir=self.root / config.dump_dir,
            driver=driver,
            working_dir=self.root,
        )
        return Orchestrator(
            driver=driver,
            snapshots=snapshots,
            store=TandemStore(self.store_path),
            config=config,
        )


# ---- Module Functions ---------------------------------------------------------------------------------------


def find_workspace(
        start_path: Path | str | None = None,
) -> Workspace | None:
    """Find a Tandem workspace in the current or parent directories.

    Args:
        start_path: Directory to start searching from.

    Returns:
        Workspace if found, None otherwise.
    """
    current = Path(start_path or Path.cwd()).resolve()

    while True:
        workspace = Workspace(current)
        if workspace.exists():
            return workspace
        if current == current.parent:
            return None
        current = current.parent
