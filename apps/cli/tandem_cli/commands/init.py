"""Tandem init command.

Creates a Tandem workspace and initializes its git repository.

Execution Context:
    CLI command - invoked via `tandem init`

Dependencies:
    - click: CLI framework
    - rich: Terminal output
    - tandem_core: Workspace management

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from tandem_core.models import InitRequest
from tandem_core.workspace import Workspace

from .utils import report

console = Console()


# ---- Init Command -------------------------------------------------------------------------------------------


@click.command()
@click.argument(
    "path",
    required=False,
    default=".",
)
@click.option(
    "--database",
    "-d",
    required=True,
    help="Path to the SQLite database kept in tandem with the repository.",
)
@click.option(
    "--project-name",
    "-n",
    default="",
    help="Project name (defaults to directory name).",
)
@click.option(
    "--site-name",
    default="",
    help="Name used in notification subjects.",
)
@click.option(
    "--dump-dir",
    default="data",
    show_default=True,
    help="Working tree directory holding table dumps.",
)
@click.option(
    "--remote",
    default="origin",
    show_default=True,
    help="Git remote used by pull and push.",
)
def init(
        path: str,
        database: str,
        project_name: str,
        site_name: str,
        dump_dir: str,
        remote: str,
) -> None:
    """Initialize a new Tandem workspace.

    Creates the .tandem directory, runs git init, and excludes .tandem
    and an in-tree database from version control.

    Examples:
        tandem init --database site.db
        tandem init ./my-site -d ../site.db --site-name "My Site"
    """
    try:
        workspace = Workspace(Path(path))
        config = workspace.init(
            database=database,
            project_name=project_name,
            site_name=site_name,
            dump_dir=dump_dir,
            remote=remote,
        )

        orchestrator = workspace.orchestrator()
        try:
            report(console, orchestrator.handle(InitRequest()))
        finally:
            orchestrator.store.close()
        workspace.exclude_from_git(config)

        console.print()
        console.print(f"  [bold]Project:[/bold] {config.project_name}")
        console.print(f"  [bold]Database:[/bold] {config.database}")
        console.print(f"  [bold]Dumps:[/bold] {config.dump_dir}/")

    except Exception as init_error:
        msg = f"Init failed: {init_error}"
        raise click.ClickException(msg) from init_error
