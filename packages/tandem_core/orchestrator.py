"""Operation orchestration for Tandem.

Sequences repository driver and snapshot store calls for each user
intent so the working tree and the data store stay consistent and
recoverable. Every operation fires its ``pre_*`` event before any
mutation and its ``post_*`` event only after full success. Nothing is
rolled back: a failure leaves whatever state the last completed step
produced.

Execution Context:
    Library module - imported by workspace and CLI commands

Dependencies:
    - tandem_core.driver: Version control operations
    - tandem_core.snapshot: Data-store snapshots
    - tandem_core.settings: Policy flags
    - tandem_core.events: Lifecycle observers
    - tandem_core.store: Audit log, notifications, commit records

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

import logging
import re
from typing import Any

from tandem_core.driver import RepositoryDriver
from tandem_core.errors import DriverError
from tandem_core.errors import NothingToDoError
from tandem_core.errors import PolicyViolation
from tandem_core.errors import ValidationError
from tandem_core.events import EventBus
from tandem_core.models import CheckoutRequest
from tandem_core.models import CommitRecord
from tandem_core.models import CommitRequest
from tandem_core.models import CommitStatus
from tandem_core.models import CreateBranchRequest
from tandem_core.models import DeleteBranchRequest
from tandem_core.models import DiscardRequest
from tandem_core.models import FileCommit
from tandem_core.models import ImportRequest
from tandem_core.models import InitRequest
from tandem_core.models import MergeRequest
from tandem_core.models import Outcome
from tandem_core.models import PullRequest
from tandem_core.models import PushRequest
from tandem_core.models import RevertFilesRequest
from tandem_core.models import RevertRequest
from tandem_core.models import RevertScope
from tandem_core.models import SnapshotCommit
from tandem_core.models import WorkspaceConfig
from tandem_core.settings import AUTO_PUSH
from tandem_core.settings import IMPORT_CHECKOUTS
from tandem_core.settings import IMPORT_PULLS
from tandem_core.settings import LAST_DB_BACKUP
from tandem_core.settings import PolicySettings
from tandem_core.snapshot import SnapshotStore
from tandem_core.store import AuditLog
from tandem_core.store import Notifier
from tandem_core.store import TandemStore

logger = logging.getLogger(__name__)


# ---- Constants ----------------------------------------------------------------------------------------------


REVERT_MESSAGE = "Reverted to commit: #{revision}."
PREVIOUS_HEAD = "HEAD@{1}"
_WHITESPACE = re.compile(r"\s+")


def normalize_branch_name(name: str) -> str:
    """Replace whitespace runs in a branch name with hyphens."""
    return _WHITESPACE.sub("-", name.strip())


# ---- Orchestrator Class -------------------------------------------------------------------------------------


class Orchestrator:
    """Runs one operation per user intent against a repository and data store.

    Requests handed to the orchestrator are already authenticated and
    validated for shape by the boundary layer; the orchestrator only
    checks the semantic preconditions of each operation.

    Attributes:
        driver: Repository driver for the working tree.
        snapshots: Snapshot store for the managed data.
        settings: Policy flags.
        events: Lifecycle event bus.
        store: Audit log, notifications, and commit records.
        config: Workspace configuration.
    """

    def __init__(
            self,
            driver: RepositoryDriver,
            snapshots: SnapshotStore,
            store: TandemStore,
            settings: PolicySettings | None = None,
            events: EventBus | None = None,
            config: WorkspaceConfig | None = None,
            notifier: Notifier | None = None,
    ) -> None:
        self.driver = driver
        self.snapshots = snapshots
        self.store = store
        self.settings = settings or PolicySettings(driver)
        self.events = events or EventBus()
        self.config = config or WorkspaceConfig()
        self.audit = AuditLog(store)
        self.notifier = notifier or Notifier(store)

    @property
    def site_name(self) -> str:
        return self.config.site_name or self.config.project_name or "Tandem"

    # ---- Dispatch -------------------------------------------------------------------------------------------

    def handle(
            self,
            request: Any,
    ) -> Outcome:
        """Resolve a request value to its operation and run it.

        Args:
            request: One of the request dataclasses from tandem_core.models.

        Returns:
            Outcome of the operation; errors are converted, never raised.
        """
        operations = {
            CheckoutRequest: self.checkout,
            CommitRequest: self.commit,
            CreateBranchRequest: self.create_branch,
            DeleteBranchRequest: self.delete_branch,
            DiscardRequest: lambda _request: self.discard(),
            InitRequest: lambda _request: self.init_repo(),
            ImportRequest: self.import_untracked,
            MergeRequest: self.merge,
            PullRequest: lambda _request: self.pull(),
            PushRequest: lambda _request: self.push(),
            RevertRequest: self.revert,
            RevertFilesRequest: self.revert_files,
        }
        operation = operations.get(type(request))
        if operation is None:
            return Outcome(
                status=Outcome.NOTHING_TO_DO,
                message=f"Unsupported request: {type(request).__name__}",
            )

        try:
            return operation(request)
        except ValidationError as validation_error:
            return Outcome(status=Outcome.VALIDATION_ERROR, message=str(validation_error))
        except NothingToDoError as nothing_error:
            return Outcome(status=Outcome.NOTHING_TO_DO, message=str(nothing_error))
        except DriverError as driver_error:
            logger.error(f"{type(request).__name__} failed: {driver_error}")
            return Outcome(
                status=Outcome.DRIVER_ERROR,
                message=str(driver_error),
                data={"error": type(driver_error).__name__},
            )

    # ---- Checkout -------------------------------------------------------------------------------------------

    def checkout(
            self,
            request: CheckoutRequest,
    ) -> Outcome:
        """Switch the working tree to another branch.

        With ``import-checkouts`` enabled, the data store is snapshotted
        before the switch and, unless the branch is brand new, restored
        from the new branch tip afterwards.

        Args:
            request: Target branch and new-branch flag.

        Returns:
            Success outcome with the branch and revision.

        Raises:
            ValidationError: If no branch is given.
            DriverError: If the reset or checkout fails; no import is
                attempted after a failed checkout.
        """
        branch = request.branch.strip()
        if not branch:
            raise ValidationError("A branch name is required")

        import_data = self.settings.is_enabled(IMPORT_CHECKOUTS)
        if import_data:
            self.snapshots.snapshot()

        self.events.fire("pre_checkout", branch=branch)

        self.driver.reset("--hard", "HEAD")
        self.driver.checkout(branch)

        revision = self.driver.current_revision()
        if import_data and not request.new_branch:
            self.snapshots.restore(revision)

        self.audit.log(f"Checked out branch: {branch}.", "checkout")
        self.events.fire("post_checkout", branch=branch)
        return Outcome.success(f"Switched to branch '{branch}'", branch=branch, revision=revision)

    # ---- Commit ---------------------------------------------------------------------------------------------

    def commit(
            self,
            request: CommitRequest,
    ) -> Outcome:
        """Commit staged files or a data snapshot.

        Args:
            request: Message plus a FileCommit or SnapshotCommit change.

        Returns:
            Success outcome carrying the committed CommitRecord.

        Raises:
            ValidationError: If the message is empty.
            NothingToDoError: If neither files nor a snapshot were requested,
                or the snapshot found no data changes to commit.
            DriverError: If staging, committing, or snapshotting fails.
        """
        message = (request.message or "").strip()
        if not message:
            raise ValidationError("A commit message is required")

        change = request.change
        if isinstance(change, FileCommit) and change.paths:
            record = self._commit_files(message, change)
        elif isinstance(change, SnapshotCommit):
            record = self._commit_snapshot(message)
        else:
            raise NothingToDoError("Nothing to commit: no files staged and no snapshot requested")

        self.store.save_commit_record(record)
        self.audit.log(f"Committed #{record.revision[:8]}: {message}", "commit")
        self.events.fire("post_commit", record=record)
        return Outcome.success(
            f"Committed {record.files_changed} file(s)",
            record=record,
            revision=record.revision,
        )

    def _commit_files(
            self,
            message: str,
            change: FileCommit,
    ) -> CommitRecord:
        paths = list(change.paths)
        self.driver.stage_files(paths, quick_stage=change.quick_stage)

        pending = CommitRecord.pending(message, paths, branch=self.driver.current_branch())
        self.driver.commit(message)
        return pending.committed(self.driver.current_revision())

    def _commit_snapshot(
            self,
            message: str,
    ) -> CommitRecord:
        snapshot = self.snapshots.snapshot()
        if not snapshot.committed:
            raise NothingToDoError("Nothing to commit: the database is unchanged since the last snapshot")

        revision = self.driver.current_revision()
        if not revision:
            raise DriverError("Snapshot did not produce a revision")

        return CommitRecord(
            revision=revision,
            branch=self.driver.current_branch(),
            message=message,
            files=[],
            files_changed=0,
            snapshot_id=revision,
            status=CommitStatus.COMMITTED,
            method=snapshot.method,
        )

    # ---- Branches -------------------------------------------------------------------------------------------

    def create_branch(
            self,
            request: CreateBranchRequest,
    ) -> Outcome:
        """Create a branch, optionally switching to it.

        The switch shares the current tree, so no snapshot is taken.

        Args:
            request: Branch name and checkout flag.

        Returns:
            Success outcome, or a driver_error outcome carrying the
            normalized branch name when creation fails.

        Raises:
            ValidationError: If the name is blank.
        """
        branch = normalize_branch_name(request.name)
        if not branch:
            raise ValidationError("A branch name is required")

        try:
            self.driver.create_branch(branch)
        except DriverError as create_error:
            logger.debug(f"Branch creation failed: {create_error}")
            return Outcome(
                status=Outcome.DRIVER_ERROR,
                message=f"Failed to create branch: {branch}",
                data={"branch": branch},
            )

        self.audit.log(f"Created new branch: {branch}", "branch")
        if request.checkout:
            self.driver.checkout(branch)
        return Outcome.success(f"Created new branch: {branch}", branch=branch)

    def delete_branch(
            self,
            request: DeleteBranchRequest,
    ) -> Outcome:
        """Delete a local branch and optionally its remote counterpart.

        The checked out branch is never deleted; such a request is
        refused without touching the repository.

        Args:
            request: Branch name and remote-delete flag.

        Returns:
            Success outcome, or a refused outcome for the current branch.

        Raises:
            DriverError: If the local or remote delete fails.
        """
        branch = normalize_branch_name(request.name)
        try:
            self._guard_deletable(branch)
        except PolicyViolation as violation:
            logger.debug(f"Refused branch delete: {violation}")
            return Outcome(status=Outcome.REFUSED, message=str(violation), data={"branch": branch})

        self.driver.delete_branch(branch)
        if request.delete_remote:
            self.driver.run("push", [self.driver.remote, "--delete", branch])

        self.audit.log(f"Deleted branch: {branch}", "branch")
        return Outcome.success(f"Deleted branch: {branch}", branch=branch)

    def _guard_deletable(self, branch: str) -> None:
        if not branch:
            raise PolicyViolation("No branch given")
        if branch == self.driver.current_branch():
            raise PolicyViolation(f"Cannot delete the checked out branch '{branch}'")

    # ---- Merge ----------------------------------------------------------------------------------------------

    def merge(
            self,
            request: MergeRequest,
    ) -> Outcome:
        """Merge a branch into the current branch.

        Raises:
            ValidationError: If no source branch is given.
            MergeConflictError: Propagated unmodified from the driver.
        """
        branch = request.branch.strip()
        if not branch:
            raise ValidationError("A branch to merge is required")

        self.events.fire("pre_merge", branch=branch)
        self.driver.merge(branch)

        revision = self.driver.current_revision()
        if request.import_data:
            self.snapshots.restore(revision)

        current = self.driver.current_branch()
        self.audit.log(f"Merged branch {branch} into {current}.", "merge")
        self.events.fire("post_merge", branch=branch)
        return Outcome.success(f"Merged '{branch}' into '{current}'", branch=branch, revision=revision)

    # ---- Pull / Push ----------------------------------------------------------------------------------------

    def incoming_commits(self) -> list[str]:
        """List remote commits not yet on the current branch.

        Returns:
            ``git log --pretty=oneline`` lines, newest first.
        """
        branch = self.driver.current_branch()
        remote = self.driver.remote
        result = self.driver.run("log", [f"{branch}..{remote}/{branch}", "--pretty=oneline"])
        return result.lines

    def pull(self) -> Outcome:
        """Pull remote changes into the current branch.

        Local changes are discarded first so the pull cannot fail on a
        dirty tree. With ``import-pulls`` enabled, an undo snapshot is
        taken and its revision stored as ``last-db-backup`` before the
        merge; the snapshot stays available if the pull fails.

        Returns:
            Success outcome with the pulled commit list.

        Raises:
            RemoteError: If fetching or pulling fails.
            MergeConflictError: If the pull stops on conflicts.
        """
        self.driver.reset("--hard", "HEAD")
        self.driver.fetch()

        commits = self.incoming_commits()

        import_data = self.settings.is_enabled(IMPORT_PULLS)
        undo_revision = None
        if import_data:
            self.snapshots.snapshot()
            undo_revision = self.driver.current_revision()
            self.settings.set(LAST_DB_BACKUP, undo_revision or "")

        self.events.fire("pre_pull", commits=commits)
        self.driver.pull(commits)

        revision = self.driver.current_revision()
        if import_data:
            self.snapshots.restore(revision)

        self.audit.log(f"Pulled {len(commits)} commit(s) from {self.driver.remote}.", "pull")
        self.events.fire("post_pull", commits=commits)
        return Outcome.success(
            f"Pulled {len(commits)} commit(s)",
            commits=commits,
            revision=revision,
            undo_revision=undo_revision,
        )

    def push(self) -> Outcome:
        """Push the current branch to the configured remote.

        Raises:
            RemoteError: If the push fails; local state is unchanged.
        """
        self.events.fire("pre_push")
        self.driver.push()

        branch = self.driver.current_branch()
        self.audit.log(f"Pushed {branch} to {self.driver.remote}.", "push")
        self.events.fire("post_push", branch=branch)
        return Outcome.success(f"Pushed '{branch}' to '{self.driver.remote}'", branch=branch)

    def _auto_push(self) -> bool:
        if not self.settings.is_enabled(AUTO_PUSH):
            return False
        self.driver.push()
        return True

    # ---- Discard / Init / Import ----------------------------------------------------------------------------

    def discard(self) -> Outcome:
        """Discard staged, unstaged, and untracked changes.

        Raises:
            DriverError: If the reset fails; no post event fires and no
                audit line is written.
        """
        self.events.fire("pre_discard")
        self.driver.reset("--hard", "HEAD", clean=True)

        self.audit.log("Discarded all uncommitted changes.", "discard")
        self.events.fire("post_discard")
        return Outcome.success("Successfully discarded any uncommitted changes.")

    def init_repo(self) -> Outcome:
        self.events.fire("pre_init")
        self.driver.init_repo()

        self.audit.log("Initialized a new repository.", "init")
        self.events.fire("post_init")
        return Outcome.success("Initialized a new repository.")

    def import_untracked(
            self,
            request: ImportRequest,
    ) -> Outcome:
        """Import data units that exist as dumps but not in the data store.

        Raises:
            ValidationError: If no units are given.
            DriverError: If an import fails.
        """
        units = [unit for unit in request.units if unit]
        if not units:
            raise ValidationError("Select at least one table to import")

        imported = self.snapshots.import_untracked(units)
        self.audit.log(f"Imported table(s): {', '.join(imported)}", "import")
        self.events.fire("post_import", units=imported)
        return Outcome.success(f"Imported {len(imported)} table(s)", units=imported)

    # ---- Revert ---------------------------------------------------------------------------------------------

    def revert(
            self,
            request: RevertRequest,
    ) -> Outcome:
        """Revert files, data, or both to an older revision.

        Args:
            request: Branch, revision, scope, and acknowledgment style.

        Returns:
            Success outcome; ``redirect`` is False when the caller asked
            for an inline acknowledgment.

        Raises:
            ValidationError: If the branch or revision is missing.
            DriverError: If any step of the revert fails.
        """
        self._validate_revert(request.branch, request.revision)
        scope = RevertScope(request.scope)

        self.events.fire("pre_revert", scope=scope.value)

        data: dict[str, Any] = {"scope": scope.value, "revision": request.revision}
        if scope.includes_files:
            data["new_revision"] = self._revert_files(request.branch, request.revision)
        if scope.includes_data:
            data["tables"] = self.snapshots.restore(request.revision)
            self.audit.log(f"Reverted database to #{request.revision}.", "revert")

        self.events.fire("post_revert", scope=scope.value, revision=request.revision)
        outcome = Outcome.success("Revert completed.", **data)
        outcome.redirect = not request.echo_redirect
        return outcome

    def revert_files(
            self,
            request: RevertFilesRequest,
    ) -> Outcome:
        """Revert only the file tree of a branch to an older revision."""
        self._validate_revert(request.branch, request.revision)
        new_revision = self._revert_files(request.branch, request.revision)
        return Outcome.success(
            f"Reverted to commit #{request.revision}.",
            revision=request.revision,
            new_revision=new_revision,
        )

    @staticmethod
    def _validate_revert(branch: str, revision: str) -> None:
        if not (branch or "").strip():
            raise ValidationError("A branch is required to revert")
        if not (revision or "").strip():
            raise ValidationError("A revision is required to revert")

    def _revert_files(
            self,
            branch: str,
            revision: str,
    ) -> str | None:
        """Commit a new tree equal to ``revision`` on top of the branch tip.

        The branch pointer is moved back to ``revision`` with a hard
        reset, then returned to its tip with a soft reset so the tree
        keeps ``revision``'s contents. The difference is committed as a
        new commit; no history is rewritten.

        Args:
            branch: Branch to revert.
            revision: Revision whose tree is reproduced.

        Returns:
            Revision of the new revert commit.

        Raises:
            DriverError: If any reset fails or the pointer does not return
                to the original tip. No commit is made in either case.
        """
        if branch != self.driver.current_branch():
            self.driver.checkout(branch)

        self.driver.reset("--hard", "HEAD", clean=True)
        tip = self.driver.current_revision()

        self.driver.reset("--hard", revision)
        self.driver.reset("--soft", PREVIOUS_HEAD)

        restored = self.driver.current_revision()
        if restored != tip:
            msg = (
                f"Branch pointer resolved to {restored} instead of tip {tip}; "
                "the working tree needs manual recovery"
            )
            raise DriverError(msg)

        self.driver.run("add", ["-A"])
        self.driver.commit(REVERT_MESSAGE.format(revision=revision))
        new_revision = self.driver.current_revision()
        self._auto_push()

        link = self.config.link_for(revision)
        self.audit.log(f"Reverted to commit [link={link}]#{revision}[/link].", "revert")
        self.notifier.notify(
            f"{self.site_name} - Commit Reverted",
            f"{self.site_name} was reverted to commit #{revision}",
        )
        return new_revision
