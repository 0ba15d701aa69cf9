"""Protocol layer: MCP stdio servers and in-process built-in tools."""

from mcphub.protocols.dispatcher import ToolCatalog, ToolRoute
from mcphub.protocols.errors import (
    InvalidParamsError,
    MCPConnectionError,
    MCPError,
    MCPParseError,
    MCPTimeoutError,
    NotFoundError,
    PromptNotFoundError,
    ResourceNotFoundError,
    ServerNotFoundError,
    ToolNotFoundError,
)

__all__ = [
    "InvalidParamsError",
    "MCPConnectionError",
    "MCPError",
    "MCPParseError",
    "MCPTimeoutError",
    "NotFoundError",
    "PromptNotFoundError",
    "ResourceNotFoundError",
    "ServerNotFoundError",
    "ToolCatalog",
    "ToolNotFoundError",
    "ToolRoute",
]
