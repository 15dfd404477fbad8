"""Tandem status command.

Shows the working tree state, policy flags, and untracked tables.

Execution Context:
    CLI command - invoked via `tandem status`

Dependencies:
    - click: CLI framework
    - rich: Terminal output
    - tandem_core: Workspace management

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

import click
from rich.console import Console
from rich.panel import Panel

from .utils import open_orchestrator

console = Console()


# ---- Status Command -----------------------------------------------------------------------------------------


@click.command()
def status() -> None:
    """Show the working tree status.

    Example:
        tandem status
    """
    try:
        with open_orchestrator() as orchestrator:
            state = orchestrator.driver.state()

            branch_display = state.branch or "(detached HEAD)"
            console.print(Panel(
                f"[bold]On branch:[/bold] [cyan]{branch_display}[/cyan]",
                title="Tandem Status",
                border_style="blue",
            ))

            if state.revision:
                console.print(f"[dim]At revision {state.revision[:8]} (remote: {state.remote})[/dim]")
            else:
                console.print("[dim]No commits yet[/dim]")
            console.print()

            if state.dirty:
                console.print("[yellow]Uncommitted changes present[/yellow]")
            else:
                console.print("[green]Nothing to commit, working tree clean[/green]")

            console.print()
            console.print("[bold]Policy:[/bold]")
            for key, value in orchestrator.settings.as_dict().items():
                console.print(f"  {key}: {value if value is not None else '[dim](not set)[/dim]'}")

            untracked = orchestrator.snapshots.untracked_units()
            if untracked:
                console.print()
                console.print(f"[yellow]Untracked tables:[/yellow] {', '.join(untracked)}")
                console.print('[dim]Use "tandem import <table>" to import them[/dim]')

    except Exception as status_error:
        msg = f"Failed to get status: {status_error}"
        raise click.ClickException(msg) from status_error
