"""Tandem merge command.

Merges a branch into the current branch.

Execution Context:
    CLI command - invoked via `tandem merge <branch>`

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

from tandem_core.models import MergeRequest

from .utils import open_orchestrator
from .utils import report

console = Console()


# ---- Merge Command ------------------------------------------------------------------------------------------


@click.command()
@click.argument(
    "branch",
    required=True,
)
@click.option(
    "--import-data",
    "-i",
    is_flag=True,
    help="Restore the database from the merged result.",
)
def merge(
        branch: str,
        import_data: bool,
) -> None:
    """Merge BRANCH into the current branch.

    Conflicts are reported and left for manual resolution.

    Examples:
        tandem merge feature/new-page
        tandem merge feature/new-page --import-data
    """
    try:
        with open_orchestrator() as orchestrator:
            report(console, orchestrator.handle(MergeRequest(branch=branch, import_data=import_data)))

    except Exception as merge_error:
        msg = f"Merge failed: {merge_error}"
        raise click.ClickException(msg) from merge_error
