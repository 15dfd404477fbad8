"""Tandem import command.

Imports tables that exist as dump files but not in the database.

Execution Context:
    CLI command - invoked via `tandem import [tables...]`

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

from tandem_core.models import ImportRequest

from .utils import open_orchestrator
from .utils import report

console = Console()


# ---- Import Command -----------------------------------------------------------------------------------------


@click.command(name="import")
@click.argument(
    "tables",
    nargs=-1,
)
@click.option(
    "--all",
    "-a",
    "import_all",
    is_flag=True,
    help="Import every untracked table.",
)
def import_tables(
        tables: tuple[str, ...],
        import_all: bool,
) -> None:
    """Import untracked tables into the database.

    Without arguments, lists the tables that can be imported.

    Examples:
        tandem import
        tandem import wp_new_table
        tandem import --all
    """
    try:
        with open_orchestrator() as orchestrator:
            untracked = orchestrator.snapshots.untracked_units()
            if import_all:
                tables = tuple(untracked)

            if not tables:
                if untracked:
                    console.print("[bold]Untracked tables:[/bold]")
                    for table in untracked:
                        console.print(f"  {table}")
                else:
                    console.print("[dim]No untracked tables[/dim]")
                return

            report(console, orchestrator.handle(ImportRequest(units=tables)))

    except Exception as import_error:
        msg = f"Import failed: {import_error}"
        raise click.ClickException(msg) from import_error
