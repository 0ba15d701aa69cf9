"""``mcphub prompts``: list and render prompts across servers."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click

from mcphub.cli_commands._output import console, print_json, print_prompts_table
from mcphub.cli_commands._session import (
    config_option,
    json_option,
    load_config,
    parse_arguments,
    run_session,
)

if TYPE_CHECKING:
    from mcphub.protocols.mcp.client import MCPClient
    from mcphub.protocols.mcp.models import Prompt, PromptGetResult


@click.group()
def prompts() -> None:
    """List and get prompts."""


@prompts.command("list")
@config_option
@json_option
def list_prompts(config_path: Path, as_json: bool) -> None:
    config = load_config(config_path)

    async def _list(client: MCPClient) -> list[Prompt]:
        return await client.list_prompts()

    found = run_session(config, _list)
    if as_json:
        print_json([prompt.to_wire() for prompt in found])
        return

    if not found:
        console.print("[yellow]No prompts found.[/yellow]")
        return

    print_prompts_table(found)


@prompts.command("get")
@config_option
@json_option
@click.argument("name")
@click.option("--args", "raw_args", default=None, help="Prompt arguments as a JSON object.")
def get_prompt(config_path: Path, as_json: bool, name: str, raw_args: str | None) -> None:
    """Render prompt NAME from the first server that has it."""
    arguments = parse_arguments(raw_args)
    config = load_config(config_path)

    async def _get(client: MCPClient) -> PromptGetResult:
        return await client.get_prompt(name, arguments)

    result = run_session(config, _get)
    if as_json:
        print_json(result.to_wire())
        return

    if result.description:
        console.print(f"[bold]{result.description}[/bold]")
    for message in result.messages:
        content = message.get("content", {})
        text = content.get("text", "") if isinstance(content, dict) else str(content)
        console.print(f"[cyan]{message.get('role', '?')}:[/cyan] ", end="")
        console.print(text, markup=False)
