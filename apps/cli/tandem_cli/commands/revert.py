"""Tandem revert command.

Reverts files, data, or both to an older revision without rewriting
history.

Execution Context:
    CLI command - invoked via `tandem revert <revision>`

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

from tandem_core.models import RevertRequest
from tandem_core.models import RevertScope

from .utils import open_orchestrator
from .utils import report

console = Console()


# ---- Revert Command -----------------------------------------------------------------------------------------


@click.command()
@click.argument(
    "revision",
    required=True,
)
@click.option(
    "--branch",
    "-b",
    default="",
    help="Branch to revert (defaults to current branch).",
)
@click.option(
    "--scope",
    "-s",
    type=click.Choice([scope.value for scope in RevertScope]),
    default=RevertScope.FILES.value,
    show_default=True,
    help="Revert files, the database, or both.",
)
def revert(
        revision: str,
        branch: str,
        scope: str,
) -> None:
    """Revert to an older revision.

    Creates a new commit whose files match REVISION. Commits made after
    REVISION stay in history.

    Examples:
        tandem revert abc12345
        tandem revert abc12345 --scope both
        tandem revert abc12345 --branch main --scope data
    """
    try:
        with open_orchestrator() as orchestrator:
            target_branch = branch or orchestrator.driver.current_branch() or ""
            console.print(f"[dim]Reverting '{target_branch}' to {revision[:8]}...[/dim]")

            outcome = report(console, orchestrator.handle(RevertRequest(
                branch=target_branch,
                revision=revision,
                scope=RevertScope(scope),
                echo_redirect=True,
            )))

            new_revision = outcome.data.get("new_revision")
            if new_revision:
                console.print(f"  [bold]New commit:[/bold] {new_revision[:8]}")
            tables = outcome.data.get("tables")
            if tables is not None:
                console.print(f"  [bold]Tables restored:[/bold] {len(tables)}")

    except Exception as revert_error:
        msg = f"Revert failed: {revert_error}"
        raise click.ClickException(msg) from revert_error
