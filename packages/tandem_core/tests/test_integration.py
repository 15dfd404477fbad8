"""End-to-end tests for the orchestrator over a real repository and database.

Execution Context:
    Test module - run via pytest

Dependencies:
    - pytest: Test framework
    - git: Executable on PATH
    - tandem_core: Orchestrator, GitDriver, SqliteSnapshotStore, TandemStore
"""
from __future__ import annotations

import shutil
import sqlite3
from pathlib import Path

import pytest

from conftest import commit_file
from conftest import configure_identity
from conftest import git
from conftest import requires_git
from tandem_core.driver import GitDriver
from tandem_core.models import CheckoutRequest
from tandem_core.models import CommitRequest
from tandem_core.models import CreateBranchRequest
from tandem_core.models import DiscardRequest
from tandem_core.models import FileCommit
from tandem_core.models import Outcome
from tandem_core.models import PullRequest
from tandem_core.models import RevertRequest
from tandem_core.models import RevertScope
from tandem_core.models import SnapshotCommit
from tandem_core.orchestrator import Orchestrator
from tandem_core.settings import IMPORT_CHECKOUTS
from tandem_core.settings import IMPORT_PULLS
from tandem_core.snapshot import SqliteSnapshotStore
from tandem_core.store import TandemStore
from tandem_core.workspace import Workspace


pytestmark = requires_git


def post_count(db_path: Path) -> int:
    conn = sqlite3.connect(str(db_path))
    try:
        return conn.execute("SELECT count(*) FROM posts").fetchone()[0]
    finally:
        conn.close()


def add_post(db_path: Path, title: str) -> None:
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("INSERT INTO posts (title) VALUES (?)", [title])
        conn.commit()
    finally:
        conn.close()


def build_orchestrator(repo: Path, db_path: Path) -> Orchestrator:
    driver = GitDriver(repo)
    snapshots = SqliteSnapshotStore(db_path, repo / "data", driver=driver, working_dir=repo)
    return Orchestrator(driver, snapshots, TandemStore(":memory:"))


@pytest.fixture
def site(repo_with_history: tuple[Path, list[str]], site_db: Path):
    """Orchestrator over the three-commit repository and the fixture database."""
    repo, revisions = repo_with_history
    orchestrator = build_orchestrator(repo, site_db)
    yield orchestrator, repo, revisions
    orchestrator.store.close()


@pytest.fixture
def tree_site(repo_with_history: tuple[Path, list[str]], site_db: Path):
    """Workspace whose database file sits untracked inside the working tree."""
    repo, revisions = repo_with_history
    shutil.copy(site_db, repo / "site.db")
    Workspace(repo).init(database="site.db")
    orchestrator = Workspace(repo).orchestrator()
    yield orchestrator, repo, revisions
    orchestrator.store.close()


# ---- Commit Tests -------------------------------------------------------------------------------------------


class TestCommit:
    """Tests for file and snapshot commits."""

    def test_repeated_snapshot_is_nothing_to_do(self, site) -> None:
        """Test a second backup of unchanged data makes no commit."""
        orchestrator, repo, _ = site

        first = orchestrator.handle(CommitRequest(message="Backup 1", change=SnapshotCommit()))
        second = orchestrator.handle(CommitRequest(message="Backup 2", change=SnapshotCommit()))

        assert first.ok
        assert second.status == Outcome.NOTHING_TO_DO
        assert git(repo, "rev-parse", "HEAD") == first.data["revision"]
        assert orchestrator.store.count_commit_records() == 1

    def test_snapshot_after_data_change(self, site) -> None:
        """Test a backup following a data change commits again."""
        orchestrator, _, _ = site
        orchestrator.handle(CommitRequest(message="Backup 1", change=SnapshotCommit()))
        add_post(orchestrator.snapshots.db_path, "Third post")

        outcome = orchestrator.handle(CommitRequest(message="Backup 2", change=SnapshotCommit()))

        assert outcome.ok
        assert orchestrator.store.count_commit_records() == 2

    def test_snapshot_after_file_commit(self, site) -> None:
        """Test unchanged dumps after a file commit do not reuse its record."""
        orchestrator, repo, _ = site
        orchestrator.handle(CommitRequest(message="Backup", change=SnapshotCommit()))
        (repo / "about.txt").write_text("about")
        orchestrator.handle(CommitRequest(message="About", change=FileCommit(paths=("about.txt",))))

        outcome = orchestrator.handle(CommitRequest(message="Backup again", change=SnapshotCommit()))

        assert outcome.status == Outcome.NOTHING_TO_DO
        assert orchestrator.store.count_commit_records() == 2


# ---- Revert Tests -------------------------------------------------------------------------------------------


class TestRevertFiles:
    """Tests for reverting the file tree."""

    def test_tree_matches_revision(self, site) -> None:
        """Test the new commit's tree equals the target revision's tree."""
        orchestrator, repo, revisions = site
        first, _, tip = revisions

        outcome = orchestrator.handle(RevertRequest(branch="main", revision=first))

        assert outcome.status == Outcome.SUCCESS
        assert (repo / "page.txt").read_text() == "version 1\n"
        assert git(repo, "diff", "--stat", first, "HEAD") == ""
        assert outcome.data["new_revision"] == git(repo, "rev-parse", "HEAD")

    def test_history_preserved(self, site) -> None:
        """Test the revert adds a commit on top of the old tip."""
        orchestrator, repo, revisions = site
        first, _, tip = revisions

        orchestrator.handle(RevertRequest(branch="main", revision=first))

        assert git(repo, "rev-list", "--count", "HEAD") == "4"
        assert git(repo, "rev-parse", "HEAD~1") == tip
        assert git(repo, "log", "-1", "--pretty=%s") == f"Reverted to commit: #{first}."
        assert git(repo, "status", "--porcelain") == ""

    def test_uncommitted_changes_discarded(self, site) -> None:
        """Test local edits and untracked files do not leak into the revert."""
        orchestrator, repo, revisions = site
        (repo / "page.txt").write_text("local edit\n")
        (repo / "scratch.txt").write_text("scratch")

        orchestrator.handle(RevertRequest(branch="main", revision=revisions[1]))

        assert (repo / "page.txt").read_text() == "version 2\n"
        assert not (repo / "scratch.txt").exists()
        assert git(repo, "diff", "--stat", revisions[1], "HEAD") == ""

    def test_unknown_revision_makes_no_commit(self, site) -> None:
        """Test a missing revision leaves the branch at its tip."""
        orchestrator, repo, revisions = site

        outcome = orchestrator.handle(RevertRequest(branch="main", revision="0" * 40))

        assert outcome.status == Outcome.DRIVER_ERROR
        assert git(repo, "rev-parse", "HEAD") == revisions[-1]
        assert git(repo, "rev-list", "--count", "HEAD") == "3"
        assert orchestrator.store.get_notifications() == []

    def test_single_commit_history(self, git_repo: Path, site_db: Path) -> None:
        """Test reverting the only commit fails without creating a commit."""
        only = commit_file(git_repo, "page.txt", "only\n", "Only")
        orchestrator = build_orchestrator(git_repo, site_db)

        outcome = orchestrator.handle(RevertRequest(branch="main", revision=only))

        assert outcome.status == Outcome.DRIVER_ERROR
        assert git(git_repo, "rev-list", "--count", "HEAD") == "1"
        orchestrator.store.close()

    def test_revert_other_branch(self, site) -> None:
        """Test reverting a branch that is not checked out."""
        orchestrator, repo, revisions = site
        git(repo, "checkout", "-q", "-b", "dev")
        commit_file(repo, "page.txt", "dev version\n", "Dev")

        orchestrator.handle(RevertRequest(branch="main", revision=revisions[0]))

        assert git(repo, "symbolic-ref", "--short", "HEAD") == "main"
        assert (repo / "page.txt").read_text() == "version 1\n"
        assert git(repo, "rev-list", "--count", "dev") == "4"

    def test_revert_records_notification(self, site) -> None:
        """Test a completed revert writes audit and notification entries."""
        orchestrator, _, revisions = site

        orchestrator.handle(RevertRequest(branch="main", revision=revisions[0]))

        assert len(orchestrator.store.get_notifications()) == 1
        assert orchestrator.store.get_audit(category="revert")[0].message.startswith("Reverted to commit")


class TestRevertData:
    """Tests for reverting data alongside files."""

    def test_revert_both(self, site) -> None:
        """Test files and data return to the snapshot revision."""
        orchestrator, repo, _ = site
        db_path = orchestrator.snapshots.db_path
        first = orchestrator.handle(CommitRequest(message="Backup", change=SnapshotCommit()))
        add_post(db_path, "Third post")
        orchestrator.handle(CommitRequest(message="Backup", change=SnapshotCommit()))
        assert post_count(db_path) == 3

        backup = first.data["revision"]
        outcome = orchestrator.handle(RevertRequest(branch="main", revision=backup, scope=RevertScope.BOTH))

        assert outcome.ok
        assert outcome.data["tables"] == ["options", "posts"]
        assert post_count(db_path) == 2
        assert git(repo, "diff", "--stat", backup, "HEAD") == ""

    def test_revert_both_with_in_tree_database(self, tree_site) -> None:
        """Test a revert keeps an in-tree database and restores its data."""
        orchestrator, repo, _ = tree_site
        db_path = repo / "site.db"
        first = orchestrator.handle(CommitRequest(message="Backup", change=SnapshotCommit()))
        add_post(db_path, "Third post")
        orchestrator.handle(CommitRequest(message="Backup", change=SnapshotCommit()))

        outcome = orchestrator.handle(
            RevertRequest(branch="main", revision=first.data["revision"], scope=RevertScope.BOTH)
        )

        assert outcome.ok
        assert db_path.is_file()
        assert post_count(db_path) == 2
        assert git(repo, "status", "--porcelain") == ""


# ---- Checkout / Discard Tests -------------------------------------------------------------------------------


class TestCheckoutImport:
    """Tests for checkout with data import."""

    def test_data_follows_branch(self, site) -> None:
        """Test each branch's committed data is restored on checkout."""
        orchestrator, repo, _ = site
        db_path = orchestrator.snapshots.db_path
        orchestrator.settings.set_flag(IMPORT_CHECKOUTS, True)
        orchestrator.handle(CommitRequest(message="Main data", change=SnapshotCommit()))

        orchestrator.handle(CreateBranchRequest(name="dev", checkout=True))
        add_post(db_path, "Dev only")
        orchestrator.handle(CommitRequest(message="Dev data", change=SnapshotCommit()))

        assert orchestrator.handle(CheckoutRequest(branch="main")).ok
        assert post_count(db_path) == 2

        assert orchestrator.handle(CheckoutRequest(branch="dev")).ok
        assert post_count(db_path) == 3

    def test_failed_checkout(self, site) -> None:
        """Test checking out a missing branch reports a driver error."""
        orchestrator, repo, _ = site

        outcome = orchestrator.handle(CheckoutRequest(branch="missing"))

        assert outcome.status == Outcome.DRIVER_ERROR
        assert git(repo, "symbolic-ref", "--short", "HEAD") == "main"


class TestDiscard:
    """Tests for discard."""

    def test_discard_everything(self, site) -> None:
        """Test staged, unstaged, and untracked changes are removed."""
        orchestrator, repo, _ = site
        (repo / "page.txt").write_text("edited\n")
        (repo / "staged.txt").write_text("staged")
        git(repo, "add", "staged.txt")
        (repo / "untracked").mkdir()
        (repo / "untracked" / "file.txt").write_text("x")

        outcome = orchestrator.handle(DiscardRequest())

        assert outcome.ok
        assert git(repo, "status", "--porcelain") == ""
        assert (repo / "page.txt").read_text() == "version 3\n"

    def test_discard_keeps_in_tree_database(self, tree_site) -> None:
        """Test discard cleans untracked files but not the managed database."""
        orchestrator, repo, _ = tree_site
        (repo / "scratch.txt").write_text("scratch")

        outcome = orchestrator.handle(DiscardRequest())

        assert outcome.ok
        assert not (repo / "scratch.txt").exists()
        assert (repo / "site.db").is_file()
        assert post_count(repo / "site.db") == 2


# ---- Pull Tests ---------------------------------------------------------------------------------------------


class TestPull:
    """Tests for pull against a bare remote."""

    @pytest.fixture
    def clone(self, site, tmp_path: Path) -> Path:
        _, repo, _ = site
        remote = tmp_path / "remote.git"
        git(tmp_path, "init", "-q", "--bare", "-b", "main", str(remote))
        git(repo, "remote", "add", "origin", str(remote))
        git(repo, "push", "-q", "origin", "main")

        clone = tmp_path / "clone"
        git(tmp_path, "clone", "-q", str(remote), str(clone))
        configure_identity(clone)
        return clone

    def test_pull_incoming_commits(self, site, clone: Path) -> None:
        """Test pulled commits are listed and applied."""
        orchestrator, repo, _ = site
        incoming = commit_file(clone, "news.txt", "news", "News")
        git(clone, "push", "-q", "origin", "main")
        (repo / "page.txt").write_text("local edit\n")

        outcome = orchestrator.handle(PullRequest())

        assert outcome.ok
        assert [line.split()[0] for line in outcome.data["commits"]] == [incoming]
        assert (repo / "news.txt").read_text() == "news"
        assert (repo / "page.txt").read_text() == "version 3\n"
        assert git(repo, "status", "--porcelain") == ""
        assert outcome.data["undo_revision"] is None

    def test_pull_with_import_sets_backup(self, site, clone: Path) -> None:
        """Test the undo revision is stored and data restored after the pull."""
        orchestrator, repo, _ = site
        db_path = orchestrator.snapshots.db_path
        orchestrator.settings.set_flag(IMPORT_PULLS, True)
        commit_file(clone, "news.txt", "news", "News")
        git(clone, "push", "-q", "origin", "main")

        outcome = orchestrator.handle(PullRequest())

        assert outcome.ok
        undo = outcome.data["undo_revision"]
        assert undo
        assert orchestrator.settings.last_snapshot == undo
        assert git(repo, "cat-file", "-t", undo) == "commit"
        assert (repo / "news.txt").exists()
        assert post_count(db_path) == 2

    def test_pull_without_remote(self, site) -> None:
        """Test a missing remote is reported as a driver error."""
        orchestrator, _, _ = site

        outcome = orchestrator.handle(PullRequest())

        assert outcome.status == Outcome.DRIVER_ERROR
        assert outcome.data["error"] == "RemoteError"
