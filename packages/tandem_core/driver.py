"""Repository driver for Tandem.

Executes git porcelain and plumbing commands against one working tree.
Named operations raise a typed DriverError on failure; the ``run``
escape hatch returns the raw result when ``check`` is disabled.

Execution Context:
    Library module - imported by snapshot and orchestrator modules

Dependencies:
    - subprocess: git invocation (stdlib)

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from tandem_core.errors import DriverError
from tandem_core.errors import MergeConflictError
from tandem_core.errors import RemoteError
from tandem_core.models import RepositoryState

logger = logging.getLogger(__name__)


# ---- Constants ----------------------------------------------------------------------------------------------


DEFAULT_REMOTE = "origin"
REMOTE_COMMANDS = {"fetch", "pull", "push", "ls-remote"}


# ---- Result and Protocol ------------------------------------------------------------------------------------


@dataclass
class GitResult:
    """Result of a git invocation."""

    success: bool
    output: str = ""
    error: str = ""
    command: list[str] | None = None

    @property
    def lines(self) -> list[str]:
        return [line for line in self.output.splitlines() if line.strip()]


class RepositoryDriver(Protocol):
    """Contract the orchestrator relies on for version control."""

    remote: str

    def init_repo(self) -> GitResult: ...

    def checkout(self, branch: str) -> GitResult: ...

    def reset(self, mode: str = "--hard", target: str = "HEAD", clean: bool = False) -> GitResult: ...

    def stage_files(self, paths: Sequence[str], quick_stage: bool = True) -> GitResult: ...

    def commit(self, message: str) -> GitResult: ...

    def create_branch(self, name: str) -> GitResult: ...

    def delete_branch(self, name: str) -> GitResult: ...

    def merge(self, branch: str) -> GitResult: ...

    def fetch(self) -> GitResult: ...

    def pull(self, commits: Sequence[str] = ()) -> GitResult: ...

    def push(self) -> GitResult: ...

    def run(self, command: str, args: Sequence[str] = (), check: bool = True) -> GitResult: ...

    def get_config(self, namespace: str, key: str) -> str | None: ...

    def set_config(self, namespace: str, key: str, value: str) -> GitResult: ...

    def current_revision(self) -> str | None: ...

    def current_branch(self) -> str | None: ...

    def is_dirty(self) -> bool: ...

    def state(self) -> RepositoryState: ...


# ---- Git Driver ---------------------------------------------------------------------------------------------


class GitDriver:
    """Subprocess-backed RepositoryDriver.

    Attributes:
        working_dir: Root of the git working tree.
        remote: Remote used for fetch, pull, and push.
    """

    def __init__(
            self,
            working_dir: Path | str,
            remote: str = DEFAULT_REMOTE,
    ) -> None:
        self.working_dir = Path(working_dir).resolve()
        self.remote = remote

    def _git(
            self,
            *args: str,
    ) -> GitResult:
        """Run git and capture its output without raising."""
        cmd = ["git", *args]
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            completed = subprocess.run(
                cmd,
                cwd=self.working_dir,
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as os_error:
            msg = f"Could not run git: {os_error}"
            raise DriverError(msg, command=cmd) from os_error

        return GitResult(
            success=completed.returncode == 0,
            output=completed.stdout,
            error=completed.stderr,
            command=cmd,
        )

    def _checked(
            self,
            *args: str,
            error_cls: type[DriverError] = DriverError,
    ) -> GitResult:
        """Run git and raise ``error_cls`` when it exits non-zero."""
        result = self._git(*args)
        if not result.success:
            detail = (result.error or result.output).strip()
            msg = f"git {args[0]} failed: {detail}" if detail else f"git {args[0]} failed"
            raise error_cls(msg, command=result.command, output=result.output + result.error)
        return result

    # ---- Repository Lifecycle -------------------------------------------------------------------------------

    def is_repo(self) -> bool:
        return self._git("rev-parse", "--git-dir").success

    def init_repo(self) -> GitResult:
        """Initialize a git repository in the working directory.

        Returns:
            GitResult of the init.

        Raises:
            DriverError: If git init fails.
        """
        self.working_dir.mkdir(parents=True, exist_ok=True)
        result = self._checked("init")
        logger.info(f"Initialized git repository at {self.working_dir}")
        return result

    # ---- Working Tree ---------------------------------------------------------------------------------------

    def checkout(
            self,
            branch: str,
    ) -> GitResult:
        """Switch the working tree to ``branch``."""
        return self._checked("checkout", "--quiet", branch)

    def reset(
            self,
            mode: str = "--hard",
            target: str = "HEAD",
            clean: bool = False,
    ) -> GitResult:
        """Reset HEAD (and possibly the tree) to ``target``.

        Args:
            mode: git reset mode flag (--hard, --soft, --mixed).
            target: Revision or reflog expression to reset to.
            clean: Also remove untracked files and directories.

        Returns:
            GitResult of the reset.

        Raises:
            DriverError: If the reset or clean fails.
        """
        result = self._checked("reset", mode, target, "--quiet")
        if clean:
            self._checked("clean", "-f", "-d")
        return result

    def stage_files(
            self,
            paths: Sequence[str],
            quick_stage: bool = True,
    ) -> GitResult:
        """Stage paths, including deletions.

        Args:
            paths: Paths relative to the working tree.
            quick_stage: Replace the index contents with exactly ``paths``.

        Returns:
            GitResult of the add.

        Raises:
            DriverError: If no paths are given or staging fails.
        """
        if not paths:
            raise DriverError("No paths to stage")
        if quick_stage and self.current_revision():
            self._checked("reset", "--quiet")
        return self._checked("add", "-A", "--", *paths)

    def commit(
            self,
            message: str,
    ) -> GitResult:
        return self._checked("commit", "--quiet", "-m", message)

    def is_dirty(self) -> bool:
        result = self._checked("status", "--porcelain")
        return bool(result.output.strip())

    # ---- Branches -------------------------------------------------------------------------------------------

    def create_branch(
            self,
            name: str,
    ) -> GitResult:
        return self._checked("branch", name)

    def delete_branch(
            self,
            name: str,
    ) -> GitResult:
        return self._checked("branch", "-D", name)

    def list_branches(self) -> list[str]:
        result = self._checked("branch", "--format=%(refname:short)")
        return sorted(result.lines)

    def merge(
            self,
            branch: str,
    ) -> GitResult:
        """Merge ``branch`` into the current branch.

        Raises:
            MergeConflictError: If the merge stops on conflicts. The
                in-progress merge is aborted so the tree is left clean.
            DriverError: For any other merge failure.
        """
        result = self._git("merge", "--no-edit", branch)
        if result.success:
            return result

        combined = result.output + result.error
        if "CONFLICT" in combined:
            self._git("merge", "--abort")
            msg = f"Merging '{branch}' produced conflicts"
            raise MergeConflictError(msg, command=result.command, output=combined)

        msg = f"git merge failed: {combined.strip()}"
        raise DriverError(msg, command=result.command, output=combined)

    # ---- Remote ---------------------------------------------------------------------------------------------

    def fetch(self) -> GitResult:
        return self._checked("fetch", "--quiet", self.remote, error_cls=RemoteError)

    def pull(
            self,
            commits: Sequence[str] = (),
    ) -> GitResult:
        """Merge-pull the current branch from the remote.

        Args:
            commits: Remote commits expected to arrive, used for logging.

        Returns:
            GitResult of the pull.

        Raises:
            MergeConflictError: If the pull stops on conflicts.
            RemoteError: If the pull fails for any other reason.
        """
        branch = self.current_branch() or "HEAD"
        result = self._git(
            "pull", "--no-rebase", "--no-edit", "-Xtheirs", "--quiet", self.remote, branch,
        )
        if result.success:
            logger.debug(f"Pulled {len(commits)} commit(s) from {self.remote}/{branch}")
            return result

        combined = result.output + result.error
        error_cls = MergeConflictError if "CONFLICT" in combined else RemoteError
        msg = f"git pull failed: {combined.strip()}"
        raise error_cls(msg, command=result.command, output=combined)

    def push(self) -> GitResult:
        return self._checked("push", "--quiet", self.remote, "HEAD", error_cls=RemoteError)

    # ---- Escape Hatch ---------------------------------------------------------------------------------------

    def run(
            self,
            command: str,
            args: Sequence[str] = (),
            check: bool = True,
    ) -> GitResult:
        """Run an arbitrary git subcommand.

        Args:
            command: git subcommand (log, push, add, show...).
            args: Arguments for the subcommand.
            check: Raise on a non-zero exit.

        Returns:
            GitResult of the command.

        Raises:
            RemoteError: If a remote subcommand fails and ``check`` is set.
            DriverError: If any other subcommand fails and ``check`` is set.
        """
        if not check:
            return self._git(command, *args)
        error_cls = RemoteError if command in REMOTE_COMMANDS else DriverError
        return self._checked(command, *args, error_cls=error_cls)

    # ---- Config ---------------------------------------------------------------------------------------------

    def get_config(
            self,
            namespace: str,
            key: str,
    ) -> str | None:
        """Read ``namespace.key`` from the repository git config.

        Returns:
            Config value or None when unset.
        """
        result = self._git("config", "--get", f"{namespace}.{key}")
        if not result.success:
            return None
        return result.output.strip()

    def set_config(
            self,
            namespace: str,
            key: str,
            value: str,
    ) -> GitResult:
        return self._checked("config", f"{namespace}.{key}", value)

    # ---- State ----------------------------------------------------------------------------------------------

    def current_revision(self) -> str | None:
        result = self._git("rev-parse", "--verify", "--quiet", "HEAD")
        if not result.success:
            return None
        return result.output.strip() or None

    def current_branch(self) -> str | None:
        """Get the checked out branch name.

        Returns:
            Branch name, or None when HEAD is detached.
        """
        result = self._git("symbolic-ref", "--quiet", "--short", "HEAD")
        if not result.success:
            return None
        return result.output.strip() or None

    def state(self) -> RepositoryState:
        return RepositoryState(
            branch=self.current_branch(),
            revision=self.current_revision(),
            remote=self.remote,
            dirty=self.is_dirty(),
        )
