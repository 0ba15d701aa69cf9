"""mcphub CLI entrypoint."""

from __future__ import annotations

import logging
import sys

import click

from mcphub import __version__

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group()
@click.version_option(version=__version__, prog_name="mcphub")
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Log level for diagnostics written to stderr.",
)
def main(log_level: str) -> None:
    """mcphub: inspect and call tools on MCP servers."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
from mcphub.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
