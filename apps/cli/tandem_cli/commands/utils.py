"""Utility functions for Tandem CLI commands.

Execution Context:
    CLI command utilities - imported by command modules

Dependencies:
    - click: CLI exceptions
    - rich: Terminal output
    - tandem_core: Workspace and outcome types

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import click
from rich.console import Console

from tandem_core.models import Outcome
from tandem_core.orchestrator import Orchestrator
from tandem_core.workspace import Workspace
from tandem_core.workspace import find_workspace


def get_workspace() -> Workspace:
    """Find the workspace for the current directory.

    Raises:
        click.ClickException: If no workspace is found.
    """
    workspace = find_workspace()
    if not workspace:
        raise click.ClickException("Not a Tandem workspace. Run 'tandem init' first.")
    return workspace


@contextmanager
def open_orchestrator() -> Iterator[Orchestrator]:
    """Yield a wired orchestrator and close its store afterwards."""
    orchestrator = get_workspace().orchestrator()
    try:
        yield orchestrator
    finally:
        orchestrator.store.close()


def report(
        console: Console,
        outcome: Outcome,
) -> Outcome:
    """Print an outcome, raising for failures.

    Args:
        console: Console to print to.
        outcome: Outcome returned by the orchestrator.

    Returns:
        The outcome, when it succeeded or was refused.

    Raises:
        click.ClickException: If the outcome is an error.
    """
    if outcome.status == Outcome.SUCCESS:
        console.print(f"[green]{outcome.message}[/green]")
    elif outcome.status == Outcome.REFUSED:
        console.print(f"[yellow]{outcome.message}[/yellow]")
    else:
        raise click.ClickException(outcome.message)
    return outcome
