"""Tandem checkout command.

Switches the working tree to another branch.

Execution Context:
    CLI command - invoked via `tandem checkout <branch>`

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

from tandem_core.models import CheckoutRequest
from tandem_core.models import CreateBranchRequest

from .utils import open_orchestrator
from .utils import report

console = Console()


# ---- Checkout Command ---------------------------------------------------------------------------------------


@click.command()
@click.argument(
    "branch",
    required=True,
)
@click.option(
    "--create",
    "-b",
    is_flag=True,
    help="Create the branch and switch to it.",
)
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    help="Do not ask before discarding uncommitted changes.",
)
def checkout(
        branch: str,
        create: bool,
        yes: bool,
) -> None:
    """Switch to a different branch.

    Uncommitted changes are discarded. When import-checkouts is enabled,
    the database is backed up first and restored from the branch tip
    afterwards.

    Examples:
        tandem checkout main
        tandem checkout -b feature/new-page
    """
    try:
        with open_orchestrator() as orchestrator:
            if create:
                report(console, orchestrator.handle(CreateBranchRequest(name=branch, checkout=True)))
                return

            if orchestrator.driver.is_dirty() and not yes:
                console.print("[yellow]Warning: uncommitted changes will be discarded[/yellow]")
                if not click.confirm("Switch branches anyway?"):
                    console.print("[dim]Checkout cancelled[/dim]")
                    return

            outcome = report(console, orchestrator.handle(CheckoutRequest(branch=branch)))
            revision = outcome.data.get("revision")
            if revision:
                console.print(f"[dim]At revision: {revision[:8]}[/dim]")

    except Exception as checkout_error:
        msg = f"Checkout failed: {checkout_error}"
        raise click.ClickException(msg) from checkout_error
