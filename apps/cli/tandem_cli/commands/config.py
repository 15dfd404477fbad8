"""Tandem config command.

Manages policy flags stored in git config.

Execution Context:
    CLI command - invoked via `tandem config`

Dependencies:
    - click: CLI framework
    - rich: Terminal output
    - tandem_core: Policy settings

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

import click
from rich.console import Console

from tandem_core.settings import AUTO_PUSH
from tandem_core.settings import IMPORT_CHECKOUTS
from tandem_core.settings import IMPORT_PULLS
from tandem_core.settings import PolicySettings

from .utils import get_workspace

console = Console()


# ---- Config Command -----------------------------------------------------------------------------------------


@click.command()
@click.option(
    "--import-checkouts/--no-import-checkouts",
    "import_checkouts",
    default=None,
    help="Back up and restore the database when switching branches.",
)
@click.option(
    "--import-pulls/--no-import-pulls",
    "import_pulls",
    default=None,
    help="Back up the database before pulls and import it afterwards.",
)
@click.option(
    "--auto-push/--no-auto-push",
    "auto_push",
    default=None,
    help="Push automatically after a revert.",
)
def config(
        import_checkouts: bool | None,
        import_pulls: bool | None,
        auto_push: bool | None,
) -> None:
    """Manage policy settings.

    Examples:
        tandem config
        tandem config --import-checkouts --import-pulls
        tandem config --no-auto-push
    """
    try:
        workspace = get_workspace()
        workspace_config = workspace.get_config()
        settings = PolicySettings(workspace.driver(workspace_config))

        changes = {
            IMPORT_CHECKOUTS: import_checkouts,
            IMPORT_PULLS: import_pulls,
            AUTO_PUSH: auto_push,
        }
        changes_made = False
        for key, enabled in changes.items():
            if enabled is None:
                continue
            settings.set_flag(key, enabled)
            changes_made = True
            state = "enabled" if enabled else "disabled"
            console.print(f"[green]{key} {state}[/green]")

        if changes_made:
            return

        console.print("[bold]Workspace Configuration:[/bold]")
        console.print()
        console.print(f"  [bold]Project:[/bold] {workspace_config.project_name}")
        console.print(f"  [bold]Database:[/bold] {workspace_config.database or '[dim](not set)[/dim]'}")
        console.print(f"  [bold]Dumps:[/bold] {workspace_config.dump_dir}/")
        console.print(f"  [bold]Remote:[/bold] {workspace_config.remote}")
        console.print()
        for key, value in settings.as_dict().items():
            console.print(f"  [bold]{key}:[/bold] {value if value is not None else '[dim](not set)[/dim]'}")

    except Exception as config_error:
        msg = f"Config operation failed: {config_error}"
        raise click.ClickException(msg) from config_error
