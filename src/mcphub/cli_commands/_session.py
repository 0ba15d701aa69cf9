"""Run one CLI action against a freshly initialised client."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

import click

from mcphub.cli_commands._output import console
from mcphub.config import ConfigLoader, ConfigValidationError, HubConfig

if TYPE_CHECKING:
    from mcphub.protocols.mcp.client import MCPClient

T = TypeVar("T")

config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    envvar="MCPHUB_CONFIG",
    required=True,
    help="Server config file (YAML or JSON). Defaults to $MCPHUB_CONFIG.",
)

json_option = click.option("--json", "as_json", is_flag=True, help="Output as JSON.")


def load_config(path: Path) -> HubConfig:
    try:
        return ConfigLoader(path).load()
    except ConfigValidationError as exc:
        console.print(f"[red]Config error:[/red] {exc}")
        sys.exit(1)


def parse_arguments(raw: str | None) -> dict[str, Any]:
    """Parse a JSON object given on the command line."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="--args") from exc
    if not isinstance(value, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--args")
    return value


def run_session(config: HubConfig, action: Callable[[MCPClient], Awaitable[T]]) -> T:
    """Initialise a client from *config*, run *action*, shut down.

    Errors raised by *action* are printed and end the process with status 1.
    """
    from mcphub.protocols.mcp.client import MCPClient

    if config.telemetry is not None:
        from mcphub.utils.telemetry import configure_telemetry

        try:
            configure_telemetry(config.telemetry)
        except ImportError as exc:
            console.print(f"[red]Telemetry error:[/red] {exc}")
            sys.exit(1)

    async def _run() -> T:
        async with MCPClient(**config.client_kwargs()) as client:
            await client.initialize(config.servers)
            return await action(client)

    try:
        return asyncio.run(_run())
    except Exception as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)
