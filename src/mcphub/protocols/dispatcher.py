"""ToolCatalog: the merged tool registry and the name-to-route resolution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mcphub.protocols.mcp.models import Tool

UNKNOWN_SERVER = "unknown"
SEPARATOR = "/"


def qualify(server: str, tool: str) -> str:
    return f"{server}{SEPARATOR}{tool}"


@dataclass(frozen=True)
class ToolRoute:
    """Where a call goes: a server plus the tool name it knows, or the built-ins."""

    server: str
    tool: str
    builtin: bool = False


class ToolCatalog:
    """Built-in tools under their bare names, server tools under ``server/tool``.

    Usage::

        catalog = ToolCatalog()
        catalog.set_builtin(registry.list_tools(), prefix="browser_")
        catalog.set_server_tools("docs", tools)

        catalog.list_tools()          # merged snapshot
        catalog.resolve("search")     # ToolRoute(server="docs", tool="search")
    """

    def __init__(self) -> None:
        self._builtin: dict[str, Tool] = {}
        self._builtin_prefix: str | None = None
        self._servers: dict[str, list[Tool]] = {}

    def set_builtin(self, tools: Iterable[Tool], *, prefix: str | None = None) -> None:
        self._builtin = {tool.name: tool for tool in tools}
        self._builtin_prefix = prefix

    def set_server_tools(self, server: str, tools: Iterable[Tool]) -> None:
        """Replace the tools of *server*; a new server goes to the end."""
        self._servers.pop(server, None)
        self._servers[server] = list(tools)

    def remove_server(self, server: str) -> None:
        self._servers.pop(server, None)

    def clear(self) -> None:
        self._builtin.clear()
        self._builtin_prefix = None
        self._servers.clear()

    def server_tools(self, server: str) -> list[Tool]:
        return list(self._servers.get(server, []))

    def has_builtin(self, name: str) -> bool:
        return name in self._builtin

    def list_tools(self) -> list[Tool]:
        """Snapshot of every tool; entries are deep copies safe to mutate."""
        merged: list[Tool] = [tool.model_copy(deep=True) for tool in self._builtin.values()]
        for server, tools in self._servers.items():
            merged.extend(
                tool.model_copy(update={"name": qualify(server, tool.name)}, deep=True)
                for tool in tools
            )
        return merged

    def resolve(self, name: str) -> ToolRoute:
        """Resolve a caller-supplied tool name.

        Order: explicit ``server/tool``; the built-in prefix; built-in
        membership; the first server (in registration order) listing the
        bare name; otherwise the ``unknown`` server.
        """
        if SEPARATOR in name:
            server, tool = name.split(SEPARATOR, 1)
            return ToolRoute(server=server, tool=tool)

        if self._builtin_prefix and name.startswith(self._builtin_prefix):
            return ToolRoute(server="", tool=name, builtin=True)
        if name in self._builtin:
            return ToolRoute(server="", tool=name, builtin=True)

        for server, tools in self._servers.items():
            if any(tool.name == name for tool in tools):
                return ToolRoute(server=server, tool=name)

        return ToolRoute(server=UNKNOWN_SERVER, tool=name)
