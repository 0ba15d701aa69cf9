"""``mcphub tools``: list the merged tool catalog and call tools."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from mcphub.cli_commands._output import console, print_json, print_tool_result, print_tools_table
from mcphub.cli_commands._session import (
    config_option,
    json_option,
    load_config,
    parse_arguments,
    run_session,
)

if TYPE_CHECKING:
    from mcphub.protocols.mcp.client import MCPClient
    from mcphub.protocols.mcp.models import Tool, ToolCallResult


@click.group()
def tools() -> None:
    """List and call tools."""


@tools.command("list")
@config_option
@json_option
@click.option("--no-builtin", is_flag=True, help="Hide the built-in browser tools.")
def list_tools(config_path: Path, as_json: bool, no_builtin: bool) -> None:
    """List every tool: built-ins by name, server tools as SERVER/TOOL."""
    config = load_config(config_path)
    if no_builtin:
        config = config.model_copy(update={"enable_builtin_tools": False})

    async def _list(client: MCPClient) -> list[Tool]:
        return client.list_tools()

    catalog = run_session(config, _list)
    if as_json:
        print_json([tool.to_wire() for tool in catalog])
        return

    if not catalog:
        console.print("[yellow]No tools discovered.[/yellow]")
        return

    print_tools_table(catalog)


@tools.command("call")
@config_option
@json_option
@click.argument("name")
@click.option("--args", "raw_args", default=None, help="Tool arguments as a JSON object.")
def call_tool(config_path: Path, as_json: bool, name: str, raw_args: str | None) -> None:
    """Call tool NAME (``server/tool``, a bare tool name, or a built-in)."""
    arguments = parse_arguments(raw_args)
    config = load_config(config_path)

    async def _call(client: MCPClient) -> ToolCallResult:
        return await client.call_tool(name, arguments)

    result = run_session(config, _call)
    if as_json:
        print_json(result.to_wire())
    else:
        print_tool_result(result)
    if result.is_error:
        raise SystemExit(2)
