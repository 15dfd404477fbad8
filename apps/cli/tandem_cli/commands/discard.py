"""Tandem discard command.

Discards all uncommitted changes.

Execution Context:
    CLI command - invoked via `tandem discard`

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

from tandem_core.models import DiscardRequest

from .utils import open_orchestrator
from .utils import report

console = Console()


# ---- Discard Command ----------------------------------------------------------------------------------------


@click.command()
@click.option(
    "--yes",
    "-y",
    is_flag=True,
    help="Do not ask for confirmation.",
)
def discard(
        yes: bool,
) -> None:
    """Discard staged, unstaged, and untracked changes.

    Example:
        tandem discard --yes
    """
    try:
        if not yes and not click.confirm("Discard all uncommitted changes?", default=False):
            console.print("[dim]Discard cancelled[/dim]")
            return

        with open_orchestrator() as orchestrator:
            report(console, orchestrator.handle(DiscardRequest()))

    except Exception as discard_error:
        msg = f"Discard failed: {discard_error}"
        raise click.ClickException(msg) from discard_error
