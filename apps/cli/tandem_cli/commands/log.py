"""Tandem log command.

Shows the audit log of completed operations.

Execution Context:
    CLI command - invoked via `tandem log`

Dependencies:
    - click: CLI framework
    - rich: Terminal output
    - tandem_core: Tandem store

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from tandem_core.store import TandemStore

from .utils import get_workspace

console = Console()


# ---- Log Command --------------------------------------------------------------------------------------------


@click.command()
@click.option(
    "--category",
    "-c",
    default="",
    help="Only show entries of this category (commit, revert, pull...).",
)
@click.option(
    "--limit",
    "-n",
    default=20,
    show_default=True,
    help="Maximum number of entries to show.",
)
def log(
        category: str,
        limit: int,
) -> None:
    """Show the audit log.

    Examples:
        tandem log
        tandem log --category revert -n 5
    """
    try:
        workspace = get_workspace()

        with TandemStore(workspace.store_path) as store:
            entries = store.get_audit(category=category or None, limit=limit)

        if not entries:
            console.print("[dim]No activity recorded yet[/dim]")
            return

        table = Table(title="Activity")
        table.add_column("Time", style="dim")
        table.add_column("Category", style="cyan")
        table.add_column("Message")
        for entry in entries:
            table.add_row(entry.timestamp[:19].replace("T", " "), entry.category, entry.message)
        console.print(table)

    except Exception as log_error:
        msg = f"Log failed: {log_error}"
        raise click.ClickException(msg) from log_error
