"""``mcphub resources``: list and read resources across servers."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from mcphub.cli_commands._output import console, print_json, print_resources_table
from mcphub.cli_commands._session import config_option, json_option, load_config, run_session

if TYPE_CHECKING:
    from mcphub.protocols.mcp.client import MCPClient
    from mcphub.protocols.mcp.models import Resource, ResourceReadResult


@click.group()
def resources() -> None:
    """List and read resources."""


@resources.command("list")
@config_option
@json_option
def list_resources(config_path: Path, as_json: bool) -> None:
    config = load_config(config_path)

    async def _list(client: MCPClient) -> list[Resource]:
        return await client.list_resources()

    found = run_session(config, _list)
    if as_json:
        print_json([resource.to_wire() for resource in found])
        return

    if not found:
        console.print("[yellow]No resources found.[/yellow]")
        return

    print_resources_table(found)


@resources.command("read")
@config_option
@json_option
@click.argument("uri")
def read_resource(config_path: Path, as_json: bool, uri: str) -> None:
    """Read resource URI from the server that owns it."""
    config = load_config(config_path)

    async def _read(client: MCPClient) -> ResourceReadResult:
        # Populate URI ownership first so multi-server setups route correctly.
        await client.list_resources()
        return await client.read_resource(uri)

    result = run_session(config, _read)
    if as_json:
        print_json(result.to_wire())
        return

    for item in result.contents:
        if "text" in item:
            console.print(item["text"], markup=False)
        else:
            console.print(f"[dim]{item.get('uri', uri)}: {item.get('mimeType', 'binary')} content[/dim]")
