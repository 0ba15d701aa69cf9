"""``mcphub servers``: connect to every configured server and report status."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from mcphub.cli_commands._output import console, print_json, print_servers_table, server_summary
from mcphub.cli_commands._session import config_option, json_option, load_config, run_session

if TYPE_CHECKING:
    from mcphub.protocols.mcp.client import MCPClient, ServerConnection


@click.command("servers")
@config_option
@json_option
def servers(config_path: Path, as_json: bool) -> None:
    """Show which configured servers started and whether they are ready."""
    config = load_config(config_path)

    async def _servers(client: MCPClient) -> list[ServerConnection]:
        return client.get_servers()

    connections = run_session(config, _servers)
    if as_json:
        print_json([server_summary(connection) for connection in connections])
        return

    if not connections:
        console.print("[yellow]No servers connected.[/yellow]")
        return

    print_servers_table(connections)
    for connection in connections:
        if connection.error:
            console.print(f"[yellow]{connection.name}:[/yellow] {connection.error}")
