"""CLI subcommand registration."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all subcommands on the CLI group."""
    from mcphub.cli_commands.prompts import prompts
    from mcphub.cli_commands.resources import resources
    from mcphub.cli_commands.servers import servers
    from mcphub.cli_commands.tools import tools

    cli.add_command(servers)
    cli.add_command(tools)
    cli.add_command(resources)
    cli.add_command(prompts)
