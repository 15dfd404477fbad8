"""Tandem CLI entry point.

Registers all command modules and provides the main entry point.

Execution Context:
    CLI application - run via `python -m tandem_cli.main` or `tandem` command

Dependencies:
    - click: CLI framework
    - tandem_core: Core library

Metadata:
    Version: 0.1.0
    Author: Tandem Team
"""
from __future__ import annotations

import logging
import sys

import click

from tandem_cli.commands.branch import branch
from tandem_cli.commands.checkout import checkout
from tandem_cli.commands.commit import commit
from tandem_cli.commands.config import config
from tandem_cli.commands.discard import discard
from tandem_cli.commands.import_tables import import_tables
from tandem_cli.commands.init import init
from tandem_cli.commands.log import log
from tandem_cli.commands.merge import merge
from tandem_cli.commands.pull import pull
from tandem_cli.commands.push import push
from tandem_cli.commands.revert import revert
from tandem_cli.commands.status import status


# ---- CLI Group ----------------------------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="tandem")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Log driver commands and lifecycle events.",
)
def cli(verbose: bool) -> None:
    """Tandem - keep a git repository and its database in step.

    Checkout, commit, branch, merge, pull, push, revert, and discard
    with database backups taken and restored around each operation.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")


# ---- Register Commands --------------------------------------------------------------------------------------


cli.add_command(init)
cli.add_command(status)
cli.add_command(checkout)
cli.add_command(commit)
cli.add_command(branch)
cli.add_command(merge)
cli.add_command(pull)
cli.add_command(push)
cli.add_command(discard)
cli.add_command(revert)
cli.add_command(import_tables)
cli.add_command(config)
cli.add_command(log)


# ---- Main Function ------------------------------------------------------------------------------------------


def main() -> int:
    """Main entry point for Tandem CLI.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        cli()
        return 0
    except Exception as cli_error:
        click.echo(f"Error: {cli_error}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
