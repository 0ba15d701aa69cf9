"""MCP protocol: stdio transport and the multi-server client."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mcphub.protocols.mcp.models import (
    PROTOCOL_VERSION,
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    ServerConfig,
    Tool,
    ToolCallResult,
)
from mcphub.protocols.mcp.transport import StdioTransport, TransportEvent, TransportState

if TYPE_CHECKING:
    from mcphub.protocols.mcp.client import MCPClient as MCPClient
    from mcphub.protocols.mcp.client import ServerConnection as ServerConnection

# The client pulls in the built-in tools, which import the models above.
_CLIENT_EXPORTS = ("MCPClient", "ServerConnection")


def __getattr__(name: str) -> object:
    if name in _CLIENT_EXPORTS:
        from mcphub.protocols.mcp import client

        return getattr(client, name)
    raise AttributeError(f"module 'mcphub.protocols.mcp' has no attribute {name!r}")


__all__ = [
    "PROTOCOL_VERSION",
    "JsonRpcError",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "MCPClient",
    "ServerConfig",
    "ServerConnection",
    "StdioTransport",
    "Tool",
    "ToolCallResult",
    "TransportEvent",
    "TransportState",
]
