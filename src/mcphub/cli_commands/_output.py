"""Shared CLI output formatters."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from mcphub.protocols.mcp.client import ServerConnection
    from mcphub.protocols.mcp.models import Prompt, Resource, Tool, ToolCallResult

console = Console()


def print_json(data: Any) -> None:
    console.print_json(json.dumps(data, default=str))


def print_servers_table(connections: list[ServerConnection]) -> None:
    """Pretty-print connected servers as a table."""
    table = Table(title="MCP Servers")
    table.add_column("Name", style="cyan")
    table.add_column("Status")
    table.add_column("Server")
    table.add_column("Tools", justify="right")
    table.add_column("PID", justify="right")

    for connection in connections:
        info = connection.server_info
        status = "[green]ready[/green]" if connection.ready else "[yellow]degraded[/yellow]"
        table.add_row(
            connection.name,
            status,
            f"{info.name} {info.version}".strip() if info else "-",
            str(len(connection.tools)),
            str(connection.transport.pid or "-"),
        )

    console.print(table)


def server_summary(connection: ServerConnection) -> dict[str, Any]:
    info = connection.server_info
    return {
        "name": connection.name,
        "ready": connection.ready,
        "error": connection.error,
        "protocolVersion": connection.protocol_version,
        "serverInfo": info.to_wire() if info else None,
        "tools": [tool.name for tool in connection.tools],
        "pid": connection.transport.pid,
    }


def print_tools_table(tools: list[Tool]) -> None:
    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")

    for tool in tools:
        table.add_row(tool.name, _truncate(tool.description or ""))

    console.print(table)


def print_resources_table(resources: list[Resource]) -> None:
    table = Table(title="Resources")
    table.add_column("URI", style="cyan")
    table.add_column("Name")
    table.add_column("MIME type")

    for resource in resources:
        table.add_row(resource.uri, resource.name, resource.mime_type or "-")

    console.print(table)


def print_prompts_table(prompts: list[Prompt]) -> None:
    table = Table(title="Prompts")
    table.add_column("Name", style="cyan")
    table.add_column("Arguments")
    table.add_column("Description")

    for prompt in prompts:
        args = ", ".join(
            f"{arg.name}*" if arg.required else arg.name for arg in prompt.arguments
        )
        table.add_row(prompt.name, args or "-", _truncate(prompt.description or ""))

    console.print(table)


def print_tool_result(result: ToolCallResult) -> None:
    if result.is_error:
        console.print("[red]Tool reported an error:[/red]")
    text = result.text
    console.print(text if text else json.dumps(result.content, default=str), markup=False)


def _truncate(text: str, max_len: int = 80) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
