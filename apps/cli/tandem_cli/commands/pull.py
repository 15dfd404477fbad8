"""Tandem pull command.

Pulls remote changes into the current branch.

Execution Context:
    CLI command - invoked via `tandem pull`

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

from tandem_core.models import PullRequest

from .utils import open_orchestrator
from .utils import report

console = Console()


# ---- Pull Command -------------------------------------------------------------------------------------------


@click.command()
def pull() -> None:
    """Pull latest changes from the remote.

    Discards uncommitted changes, fetches, and merges the remote branch.
    When import-pulls is enabled, the database is backed up first; the
    backup revision is kept as the undo point.

    Example:
        tandem pull
    """
    try:
        with open_orchestrator() as orchestrator:
            outcome = report(console, orchestrator.handle(PullRequest()))

            for line in outcome.data.get("commits", []):
                revision, _, subject = line.partition(" ")
                console.print(f"  [cyan]{revision[:8]}[/cyan] {subject}")

            undo_revision = outcome.data.get("undo_revision")
            if undo_revision:
                console.print()
                console.print(f"[dim]Undo point: {undo_revision[:8]} (tandem revert {undo_revision[:8]} --scope data)[/dim]")

    except Exception as pull_error:
        msg = f"Pull failed: {pull_error}"
        raise click.ClickException(msg) from pull_error
