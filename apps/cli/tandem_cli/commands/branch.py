"""Tandem branch command.

Lists, creates, or deletes branches.

Execution Context:
    CLI command - invoked via `tandem branch [name]`

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

from tandem_core.models import CreateBranchRequest
from tandem_core.models import DeleteBranchRequest

from .utils import open_orchestrator
from .utils import report

console = Console()


# ---- Branch Command -----------------------------------------------------------------------------------------


@click.command()
@click.argument(
    "name",
    required=False,
)
@click.option(
    "--delete",
    "-d",
    is_flag=True,
    help="Delete the specified branch.",
)
@click.option(
    "--remote",
    "-r",
    "delete_remote",
    is_flag=True,
    help="With --delete, also delete the branch on the remote.",
)
@click.option(
    "--checkout",
    "-c",
    is_flag=True,
    help="Switch to the branch after creating it.",
)
def branch(
        name: str | None,
        delete: bool,
        delete_remote: bool,
        checkout: bool,
) -> None:
    """List, create, or delete branches.

    Without arguments, lists local branches. Spaces in new branch names
    are replaced with hyphens. The checked out branch is never deleted.

    Examples:
        tandem branch
        tandem branch "new design" --checkout
        tandem branch -d old-feature --remote
    """
    try:
        with open_orchestrator() as orchestrator:
            if not name:
                current = orchestrator.driver.current_branch()
                branches = orchestrator.driver.list_branches()
                if not branches:
                    console.print("[dim]No branches yet[/dim]")
                    return
                for branch_name in branches:
                    if branch_name == current:
                        console.print(f"[green]* {branch_name}[/green]")
                    else:
                        console.print(f"  {branch_name}")
                return

            if delete:
                report(console, orchestrator.handle(DeleteBranchRequest(name=name, delete_remote=delete_remote)))
                return

            report(console, orchestrator.handle(CreateBranchRequest(name=name, checkout=checkout)))

    except Exception as branch_error:
        msg = f"Branch operation failed: {branch_error}"
        raise click.ClickException(msg) from branch_error
