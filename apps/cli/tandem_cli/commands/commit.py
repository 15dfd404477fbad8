"""Tandem commit command.

Commits files or a database snapshot.

Execution Context:
    CLI command - invoked via `tandem commit -m <message>`

Dependencies:
    - click: CLI framework
    - rich: Terminal output
    - tandem_core: Orchestrator

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

import click
from rich.console import Console

from tandem_core.models import CommitRequest
from tandem_core.models import FileCommit
from tandem_core.models import SnapshotCommit

from .utils import open_orchestrator
from .utils import report

console = Console()


# ---- Commit Command -----------------------------------------------------------------------------------------


@click.command()
@click.argument(
    "files",
    nargs=-1,
)
@click.option(
    "--message",
    "-m",
    default="",
    help="Commit message describing the changes.",
)
@click.option(
    "--snapshot",
    "-s",
    is_flag=True,
    help="Back up the database instead of committing files.",
)
@click.option(
    "--keep-staged",
    is_flag=True,
    help="Add FILES to what is already staged instead of staging exactly FILES.",
)
def commit(
        files: tuple[str, ...],
        message: str,
        snapshot: bool,
        keep_staged: bool,
) -> None:
    """Record changes to the repository.

    Stages FILES and commits them, or backs up the database with
    --snapshot. A commit message is required.

    Examples:
        tandem commit -m "Fix typo" a.txt b.txt
        tandem commit -m "Nightly backup" --snapshot
    """
    try:
        if snapshot:
            change = SnapshotCommit()
        elif files:
            change = FileCommit(paths=files, quick_stage=not keep_staged)
        else:
            change = None

        with open_orchestrator() as orchestrator:
            outcome = report(console, orchestrator.handle(CommitRequest(message=message, change=change)))

            record = outcome.data["record"]
            console.print()
            console.print(f"  [bold]Revision:[/bold] {record.revision[:8]}")
            console.print(f"  [bold]Branch:[/bold] {record.branch}")
            console.print(f"  [bold]Files changed:[/bold] {record.files_changed}")
            for path in record.files:
                console.print(f"    {path}")
            if record.snapshot_id:
                console.print(f"  [bold]Snapshot:[/bold] {record.snapshot_id[:8]} ({record.method})")

    except Exception as commit_error:
        msg = f"Commit failed: {commit_error}"
        raise click.ClickException(msg) from commit_error
