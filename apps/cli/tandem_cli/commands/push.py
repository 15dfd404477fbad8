"""Tandem push command.

Pushes the current branch to the remote.

Execution Context:
    CLI command - invoked via `tandem push`

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

from tandem_core.models import PushRequest

from .utils import open_orchestrator
from .utils import report

console = Console()


# ---- Push Command -------------------------------------------------------------------------------------------


@click.command()
def push() -> None:
    """Push the current branch to the remote.

    Example:
        tandem push
    """
    try:
        with open_orchestrator() as orchestrator:
            report(console, orchestrator.handle(PushRequest()))

    except Exception as push_error:
        msg = f"Push failed: {push_error}"
        raise click.ClickException(msg) from push_error
