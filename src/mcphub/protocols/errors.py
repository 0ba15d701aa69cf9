"""Shared error types for the protocol layer.

Every error carries a JSON-RPC error code so hosts can surface failures the
same way a server would report them.
"""

from __future__ import annotations

from typing import Any

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class MCPError(Exception):
    """Base error for all protocol-layer failures."""

    def __init__(self, message: str, code: int = INTERNAL_ERROR, data: Any = None) -> None:
        self.message = message
        self.code = code
        self.data = data
        super().__init__(message)


class MCPConnectionError(MCPError):
    """Spawn failure, unexpected exit, or a write to a closed pipe."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message, INTERNAL_ERROR)


class MCPTimeoutError(MCPError):
    """A connect or request exceeded its timeout."""

    def __init__(self, message: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"{message} (after {timeout}s)", INTERNAL_ERROR)


class MCPParseError(MCPError):
    """An inbound line was not valid JSON-RPC."""

    def __init__(self, line: str) -> None:
        self.line = line
        super().__init__("Invalid JSON", PARSE_ERROR)


class NotFoundError(MCPError):
    """Requested tool, server, prompt or resource does not exist."""

    def __init__(self, message: str, code: int = METHOD_NOT_FOUND) -> None:
        super().__init__(message, code)


class ToolNotFoundError(NotFoundError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tool not found: {name}")


class ServerNotFoundError(NotFoundError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"MCP server not found: {name}", INVALID_PARAMS)


class PromptNotFoundError(NotFoundError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Prompt not found: {name}")


class ResourceNotFoundError(NotFoundError):
    def __init__(self, uri: str, detail: str = "") -> None:
        self.uri = uri
        super().__init__(
            f"Resource not found: {uri}" + (f" ({detail})" if detail else ""),
            INVALID_PARAMS,
        )


class InvalidParamsError(MCPError):
    """Arguments did not match a tool's input schema."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(
            f"Invalid arguments for {name}" + (f": {detail}" if detail else ""),
            INVALID_PARAMS,
        )
