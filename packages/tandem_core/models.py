"""Data models for Tandem.

Defines repository state, commit and snapshot records, workspace
configuration, the request values accepted by the orchestrator, and
the structured outcome returned to the boundary layer.

Execution Context:
    Library module - imported by other tandem_core modules

Dependencies:
    - dataclasses: Data class decorators
    - enum: Status and scope enumerations

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

import json
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from dataclasses import replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


# ---- Enumerations -------------------------------------------------------------------------------------------


class CommitStatus(str, Enum):
    """Lifecycle of a commit record."""

    PENDING = "pending"
    COMMITTED = "committed"


class RevertScope(str, Enum):
    """What a revert restores."""

    FILES = "files"
    DATA = "data"
    BOTH = "both"

    @property
    def includes_files(self) -> bool:
        return self in (RevertScope.FILES, RevertScope.BOTH)

    @property
    def includes_data(self) -> bool:
        return self in (RevertScope.DATA, RevertScope.BOTH)


# ---- State and Record Classes -------------------------------------------------------------------------------


@dataclass(frozen=True)
class RepositoryState:
    """Point-in-time view of the working tree.

    Attributes:
        branch: Checked out branch name (None when detached).
        revision: Commit hash HEAD points to (None before the first commit).
        remote: Name of the configured remote.
        dirty: True if uncommitted or untracked changes exist.
    """

    branch: str | None
    revision: str | None
    remote: str
    dirty: bool


@dataclass
class SnapshotRecord:
    """Captured copy of the managed data store.

    Attributes:
        id: Snapshot identifier.
        created_at: ISO 8601 creation timestamp.
        method: "full" for every table, "tables" for a partial list.
        tables: Tables included in the snapshot.
        revision: Revision the dump files were committed in, if any.
        committed: Whether the snapshot made a new commit.
    """

    id: str
    created_at: str
    method: str = "full"
    tables: list[str] = field(default_factory=list)
    revision: str | None = None
    committed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CommitRecord:
    """Logical record of one change set.

    A record starts out pending while files are staged and becomes
    committed once the driver produced a revision. Committed records
    are never modified.

    Attributes:
        revision: Commit hash (empty while pending).
        branch: Branch the commit was made on.
        message: Commit message.
        files: Paths included in the commit.
        files_changed: Number of paths changed.
        snapshot_id: Snapshot paired with this revision, if any.
        status: Pending or committed.
        method: Snapshot method for data commits.
        timestamp: ISO 8601 timestamp.
    """

    revision: str
    branch: str | None
    message: str
    files: list[str] = field(default_factory=list)
    files_changed: int = 0
    snapshot_id: str | None = None
    status: CommitStatus = CommitStatus.PENDING
    method: str | None = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @classmethod
    def pending(
            cls,
            message: str,
            files: list[str],
            branch: str | None = None,
    ) -> CommitRecord:
        """Create a pending record for a file commit.

        Args:
            message: Commit message.
            files: Paths being staged.
            branch: Branch the commit targets.

        Returns:
            Pending CommitRecord.
        """
        return cls(
            revision="",
            branch=branch,
            message=message,
            files=list(files),
            files_changed=len(files),
        )

    def committed(
            self,
            revision: str,
            branch: str | None = None,
    ) -> CommitRecord:
        """Return a committed copy of this record.

        Args:
            revision: Revision produced by the commit.
            branch: Branch the commit landed on.

        Returns:
            New CommitRecord with committed status.

        Raises:
            RuntimeError: If the record is already committed.
        """
        if self.status is CommitStatus.COMMITTED:
            msg = f"Commit record {self.revision} is already committed"
            raise RuntimeError(msg)
        return replace(
            self,
            revision=revision,
            branch=branch if branch is not None else self.branch,
            status=CommitStatus.COMMITTED,
        )

    def to_dict(
            self,
    ) -> dict[str, Any]:
        """Convert record to dictionary for JSON serialization.

        Returns:
            Dictionary representation of the record.
        """
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(
            cls,
            data: dict[str, Any],
    ) -> CommitRecord:
        """Create record from dictionary.

        Args:
            data: Dictionary with record fields.

        Returns:
            CommitRecord instance.
        """
        values = dict(data)
        values["status"] = CommitStatus(values.get("status", CommitStatus.PENDING.value))
        return cls(**values)


# ---- Configuration ------------------------------------------------------------------------------------------


@dataclass
class WorkspaceConfig:
    """Workspace configuration stored in .tandem/config.json.

    Attributes:
        version: Tandem format version.
        project_name: Project name.
        site_name: Name used in notifications.
        database: Path to the managed SQLite database.
        dump_dir: Working tree directory holding per-table dump files.
        remote: Git remote name.
        commit_url: Format string for revision links, takes ``revision``.
    """

    version: str = "1.0"
    project_name: str = ""
    site_name: str = ""
    database: str = ""
    dump_dir: str = "data"
    remote: str = "origin"
    commit_url: str = "revisions/{revision}"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(
            cls,
            data: dict[str, Any],
    ) -> WorkspaceConfig:
        """Create config from dictionary, ignoring unknown keys.

        Args:
            data: Dictionary with config fields.

        Returns:
            WorkspaceConfig instance.
        """
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        return cls(**known)

    def save(
            self,
            config_path: Path,
    ) -> None:
        """Save config to file.

        Args:
            config_path: Path to config.json file.
        """
        config_path.write_text(json.dumps(self.to_dict(), indent=2))

    @classmethod
    def load(
            cls,
            config_path: Path,
    ) -> WorkspaceConfig:
        """Load config from file.

        Args:
            config_path: Path to config.json file.

        Returns:
            WorkspaceConfig instance.

        Raises:
            RuntimeError: If config file cannot be loaded.
        """
        try:
            data = json.loads(config_path.read_text())
            return cls.from_dict(data)
        except Exception as file_error:
            msg = f"Failed to load config from {config_path}: {file_error}"
            raise RuntimeError(msg) from file_error

    def link_for(self, revision: str) -> str:
        return self.commit_url.format(revision=revision)


# ---- Request Values -----------------------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckoutRequest:
    branch: str
    new_branch: bool = False


@dataclass(frozen=True)
class FileCommit:
    """Stage and commit a set of paths.

    Attributes:
        paths: Paths to stage.
        quick_stage: Stage exactly ``paths``, replacing anything already staged.
    """

    paths: tuple[str, ...]
    quick_stage: bool = True


@dataclass(frozen=True)
class SnapshotCommit:
    """Snapshot the data store without file changes."""


@dataclass(frozen=True)
class CommitRequest:
    message: str
    change: FileCommit | SnapshotCommit | None = None


@dataclass(frozen=True)
class CreateBranchRequest:
    name: str
    checkout: bool = False


@dataclass(frozen=True)
class DeleteBranchRequest:
    name: str
    delete_remote: bool = False


@dataclass(frozen=True)
class DiscardRequest:
    pass


@dataclass(frozen=True)
class InitRequest:
    pass


@dataclass(frozen=True)
class ImportRequest:
    units: tuple[str, ...] = ()


@dataclass(frozen=True)
class MergeRequest:
    branch: str
    import_data: bool = False


@dataclass(frozen=True)
class PullRequest:
    pass


@dataclass(frozen=True)
class PushRequest:
    pass


@dataclass(frozen=True)
class RevertRequest:
    """Revert a branch to an older revision.

    Attributes:
        branch: Branch to revert.
        revision: Revision whose state is restored.
        scope: Files, data, or both.
        echo_redirect: Report an inline acknowledgment instead of a redirect.
    """

    branch: str
    revision: str
    scope: RevertScope = RevertScope.FILES
    echo_redirect: bool = False


@dataclass(frozen=True)
class RevertFilesRequest:
    branch: str
    revision: str


# ---- Outcome ------------------------------------------------------------------------------------------------


@dataclass
class Outcome:
    """Structured result handed to the presentation layer.

    Attributes:
        status: success, validation_error, nothing_to_do, driver_error, or refused.
        message: Human-readable summary.
        data: Operation-specific values (branch, revision, commits...).
        redirect: Whether the caller should redirect instead of echoing.
    """

    status: str
    message: str = ""
    data: dict[str, Any] = field(default_factory=dict)
    redirect: bool = True

    SUCCESS = "success"
    VALIDATION_ERROR = "validation_error"
    NOTHING_TO_DO = "nothing_to_do"
    DRIVER_ERROR = "driver_error"
    REFUSED = "refused"

    @property
    def ok(self) -> bool:
        return self.status in (Outcome.SUCCESS, Outcome.REFUSED)

    @classmethod
    def success(cls, message: str = "", **data: Any) -> Outcome:
        return cls(status=cls.SUCCESS, message=message, data=data)
