"""mcphub: one client facade over many stdio MCP tool servers."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from mcphub.config import ConfigLoader as ConfigLoader
    from mcphub.protocols.mcp.client import MCPClient as MCPClient
    from mcphub.protocols.mcp.models import ServerConfig as ServerConfig

_LAZY_EXPORTS = {
    "MCPClient": "mcphub.protocols.mcp.client",
    "ServerConfig": "mcphub.protocols.mcp.models",
    "ConfigLoader": "mcphub.config",
}


def __getattr__(name: str) -> object:
    module_path = _LAZY_EXPORTS.get(name)
    if module_path is not None:
        import importlib

        mod = importlib.import_module(module_path)
        return getattr(mod, name)
    raise AttributeError(f"module 'mcphub' has no attribute {name!r}")
