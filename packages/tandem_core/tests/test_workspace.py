"""Tests for workspace management.

Execution Context:
    Test module - run via pytest

Dependencies:
    - pytest: Test framework
    - tandem_core.workspace: Module under test
"""
from __future__ import annotations

from pathlib import Path

import pytest

from tandem_core.driver import GitDriver
from tandem_core.models import WorkspaceConfig
from tandem_core.snapshot import SqliteSnapshotStore
from tandem_core.workspace import DATABASE_ENV
from tandem_core.workspace import Workspace
from tandem_core.workspace import find_workspace


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    """Initialized workspace without a git repository."""
    ws = Workspace(tmp_path / "site")
    ws.root.mkdir()
    ws.init(database="site.db", site_name="Demo")
    return ws


# ---- Init Tests ---------------------------------------------------------------------------------------------


class TestInit:
    """Tests for Workspace.init."""

    def test_creates_config_and_store(self, workspace: Workspace) -> None:
        """Test init writes config.json and tandem.db."""
        assert workspace.exists()
        assert workspace.store_path.is_file()

        config = workspace.get_config()
        assert config.project_name == "site"
        assert config.site_name == "Demo"
        assert config.database == "site.db"
        assert config.dump_dir == "data"

    def test_init_twice_raises(self, workspace: Workspace) -> None:
        """Test an existing workspace is not overwritten."""
        with pytest.raises(RuntimeError, match="already exists"):
            workspace.init(database="other.db")

    def test_excluded_from_git(self, git_repo: Path) -> None:
        """Test .tandem/ is added to the repository exclude file."""
        Workspace(git_repo).init(database="site.db")

        exclude = (git_repo / ".git" / "info" / "exclude").read_text()
        assert ".tandem/" in exclude.splitlines()

    def test_exclude_is_idempotent(self, git_repo: Path) -> None:
        """Test repeated exclusion adds a single entry."""
        workspace = Workspace(git_repo)
        exclude_path = git_repo / ".git" / "info" / "exclude"
        exclude_path.write_text("*.log")

        workspace.exclude_from_git()
        workspace.exclude_from_git()

        assert exclude_path.read_text() == "*.log\n.tandem/\n"

    def test_in_tree_database_excluded(self, git_repo: Path) -> None:
        """Test a database inside the tree and its journals are excluded."""
        Workspace(git_repo).init(database="db/site.db")

        exclude = (git_repo / ".git" / "info" / "exclude").read_text().splitlines()
        assert "/db/site.db" in exclude
        assert "/db/site.db-journal" in exclude
        assert "/db/site.db-wal" in exclude
        assert "/db/site.db-shm" in exclude

    def test_outside_database_not_excluded(self, git_repo: Path, tmp_path: Path) -> None:
        """Test a database outside the tree adds no entry."""
        Workspace(git_repo).init(database=str(tmp_path / "site.db"))

        exclude = (git_repo / ".git" / "info" / "exclude").read_text().splitlines()
        assert [line for line in exclude if "site.db" in line] == []

    def test_in_tree_database_survives_clean(self, git_repo: Path) -> None:
        """Test hard reset with clean leaves an in-tree database in place."""
        Workspace(git_repo).init(database="site.db")
        (git_repo / "site.db").write_bytes(b"data")
        (git_repo / "page.txt").write_text("x")
        GitDriver(git_repo).stage_files(["page.txt"])
        GitDriver(git_repo).commit("First")

        GitDriver(git_repo).reset("--hard", "HEAD", clean=True)

        assert (git_repo / "site.db").read_bytes() == b"data"

    def test_dump_dir_outside_root_rejected(self, tmp_path: Path) -> None:
        """Test a dump directory outside the working tree is refused."""
        workspace = Workspace(tmp_path / "site")
        workspace.root.mkdir()

        with pytest.raises(RuntimeError, match="must be inside"):
            workspace.init(database="site.db", dump_dir="../dumps")

        assert not workspace.exists()

    def test_excluded_dir_survives_clean(self, git_repo: Path) -> None:
        """Test hard reset with clean leaves the workspace in place."""
        workspace = Workspace(git_repo)
        workspace.init(database="site.db")
        (git_repo / "page.txt").write_text("x")
        GitDriver(git_repo).stage_files(["page.txt"])
        GitDriver(git_repo).commit("First")

        GitDriver(git_repo).reset("--hard", "HEAD", clean=True)

        assert workspace.exists()


# ---- Config Tests -------------------------------------------------------------------------------------------


class TestConfig:
    """Tests for configuration loading and database resolution."""

    def test_env_overrides_database(self, workspace: Workspace, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test TANDEM_DATABASE replaces the configured path."""
        monkeypatch.setenv(DATABASE_ENV, "/srv/site.db")

        assert workspace.get_config().database == "/srv/site.db"

    def test_env_file_sets_database(self, workspace: Workspace, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a .env file in the root supplies TANDEM_DATABASE."""
        monkeypatch.setenv(DATABASE_ENV, "unset")
        monkeypatch.delenv(DATABASE_ENV)
        (workspace.root / ".env").write_text(f"{DATABASE_ENV}=from-env-file.db\n")

        assert workspace.get_config().database == "from-env-file.db"

    def test_shell_wins_over_env_file(self, workspace: Workspace, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test variables already set are not replaced by the .env file."""
        monkeypatch.setenv(DATABASE_ENV, "/srv/site.db")
        (workspace.root / ".env").write_text(f"{DATABASE_ENV}=from-env-file.db\n")

        assert workspace.get_config().database == "/srv/site.db"

    def test_missing_config_raises(self, tmp_path: Path) -> None:
        """Test loading config outside a workspace fails."""
        with pytest.raises(RuntimeError, match="Config file not found"):
            Workspace(tmp_path).get_config()

    def test_update_config(self, workspace: Workspace) -> None:
        """Test updated config is persisted."""
        config = workspace.get_config()
        config.remote = "upstream"

        workspace.update_config(config)

        assert workspace.get_config().remote == "upstream"

    def test_relative_database_path(self, workspace: Workspace) -> None:
        """Test relative database paths resolve against the root."""
        path = workspace.database_path(WorkspaceConfig(database="db/site.db"))

        assert path == workspace.root / "db" / "site.db"

    def test_absolute_database_path(self, workspace: Workspace, tmp_path: Path) -> None:
        """Test absolute database paths are kept."""
        target = tmp_path / "elsewhere.db"

        assert workspace.database_path(WorkspaceConfig(database=str(target))) == target

    def test_unset_database_raises(self, workspace: Workspace) -> None:
        """Test a missing database path is reported."""
        with pytest.raises(RuntimeError, match="No database configured"):
            workspace.database_path(WorkspaceConfig())


# ---- Wiring Tests -------------------------------------------------------------------------------------------


class TestWiring:
    """Tests for orchestrator construction."""

    def test_orchestrator(self, workspace: Workspace) -> None:
        """Test the orchestrator is wired to this workspace."""
        orchestrator = workspace.orchestrator()
        try:
            assert isinstance(orchestrator.driver, GitDriver)
            assert orchestrator.driver.working_dir == workspace.root
            assert isinstance(orchestrator.snapshots, SqliteSnapshotStore)
            assert orchestrator.snapshots.db_path == workspace.root / "site.db"
            assert orchestrator.snapshots.dump_dir == workspace.root / "data"
            assert orchestrator.site_name == "Demo"
        finally:
            orchestrator.store.close()

    def test_orchestrator_excludes_env_database(
        self, git_repo: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a database moved into the tree by the environment is excluded."""
        workspace = Workspace(git_repo)
        workspace.init(database="/srv/site.db")
        monkeypatch.setenv(DATABASE_ENV, "local.db")

        workspace.orchestrator().store.close()

        exclude = (git_repo / ".git" / "info" / "exclude").read_text().splitlines()
        assert "/local.db" in exclude


class TestFindWorkspace:
    """Tests for find_workspace."""

    def test_finds_in_parent(self, workspace: Workspace) -> None:
        """Test lookup walks up from a nested directory."""
        nested = workspace.root / "a" / "b"
        nested.mkdir(parents=True)

        found = find_workspace(nested)

        assert found is not None
        assert found.root == workspace.root

    def test_not_found(self, tmp_path: Path) -> None:
        """Test None when no workspace exists above the path."""
        assert find_workspace(tmp_path) is None
