"""Shared test configuration and fixtures for tandem_core tests.

Provides:
- Mock collaborators (repository driver, snapshot store) wired into an
  Orchestrator backed by an in-memory TandemStore, plus a call recorder
  that captures the order of driver, snapshot, and event calls.
- Real git repository fixtures for integration tests; these skip when
  the ``git`` executable is unavailable.
"""
from __future__ import annotations

import shutil
import sqlite3
import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from tandem_core.events import ALL_EVENTS
from tandem_core.models import SnapshotRecord
from tandem_core.orchestrator import Orchestrator
from tandem_core.store import TandemStore


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


# ---------------------------------------------------------------------------
# Mock collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def policy() -> dict[str, str]:
    """Mutable policy flags read through the mock driver's git config."""
    return {}


@pytest.fixture
def mock_driver(policy: dict[str, str]) -> MagicMock:
    """Repository driver mock on branch 'main' at revision 'abc123'."""
    driver = MagicMock()
    driver.remote = "origin"
    driver.current_branch.return_value = "main"
    driver.current_revision.return_value = "abc123"
    driver.is_dirty.return_value = False
    driver.get_config.side_effect = lambda namespace, key: policy.get(key)
    return driver


@pytest.fixture
def mock_snapshots() -> MagicMock:
    """Snapshot store mock returning a full snapshot record."""
    snapshots = MagicMock()
    snapshots.snapshot.return_value = SnapshotRecord(
        id="snap01",
        created_at="2024-01-01T00:00:00",
        method="full",
        tables=["posts"],
        committed=True,
    )
    snapshots.restore.return_value = ["posts"]
    return snapshots


@pytest.fixture
def store() -> TandemStore:
    """In-memory Tandem store."""
    tandem_store = TandemStore(":memory:")
    yield tandem_store
    tandem_store.close()


@pytest.fixture
def recorder(mock_driver: MagicMock, mock_snapshots: MagicMock) -> MagicMock:
    """Parent mock recording driver and snapshot calls in order."""
    manager = MagicMock()
    manager.attach_mock(mock_driver, "driver")
    manager.attach_mock(mock_snapshots, "snapshots")
    return manager


@pytest.fixture
def orchestrator(
    mock_driver: MagicMock,
    mock_snapshots: MagicMock,
    store: TandemStore,
    recorder: MagicMock,
) -> Orchestrator:
    """Orchestrator over mocks; every fired event is also recorded."""
    orch = Orchestrator(mock_driver, mock_snapshots, store)
    orch.events.subscribe(ALL_EVENTS, recorder.event)
    return orch


def call_names(recorder: MagicMock, *prefixes: str) -> list[str]:
    """Names of recorded calls, optionally filtered by prefix.

    Event calls are reported as ``event:<name>``.
    """
    names = []
    for recorded in recorder.mock_calls:
        name, _args, kwargs = recorded
        if name == "event":
            name = f"event:{kwargs['event']}"
        if not prefixes or name.startswith(prefixes):
            names.append(name)
    return names


# ---------------------------------------------------------------------------
# Real git repositories
# ---------------------------------------------------------------------------


def git(repo: Path, *args: str) -> str:
    """Run git in ``repo`` and return stripped stdout."""
    completed = subprocess.run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return completed.stdout.strip()


def configure_identity(repo: Path) -> None:
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "commit.gpgsign", "false")


def commit_file(repo: Path, name: str, content: str, message: str) -> str:
    """Write a file, commit it, and return the new revision."""
    path = repo / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    git(repo, "add", "-A")
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Empty git repository on branch 'main' with a test identity."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q", "-b", "main")
    configure_identity(repo)
    return repo


@pytest.fixture
def repo_with_history(git_repo: Path) -> tuple[Path, list[str]]:
    """Repository with three commits of page.txt; returns (path, revisions)."""
    revisions = [
        commit_file(git_repo, "page.txt", "version 1\n", "First"),
        commit_file(git_repo, "page.txt", "version 2\n", "Second"),
        commit_file(git_repo, "page.txt", "version 3\n", "Third"),
    ]
    return git_repo, revisions


@pytest.fixture
def site_db(tmp_path: Path) -> Path:
    """Managed SQLite database outside the working tree."""
    db_path = tmp_path / "site.db"
    conn = sqlite3.connect(str(db_path))
    conn.executescript("""
        CREATE TABLE posts (id INTEGER PRIMARY KEY, title TEXT NOT NULL);
        CREATE TABLE options (name TEXT PRIMARY KEY, value TEXT);
        CREATE INDEX idx_posts_title ON posts(title);
        INSERT INTO posts (title) VALUES ('Hello'), ('It''s here');
        INSERT INTO options VALUES ('site', 'Demo');
    """)
    conn.commit()
    conn.close()
    return db_path
