"""MCP models: JSON-RPC 2.0 messages, server configuration and payloads.

Protocol payloads (tools, resources, prompts) are treated as opaque by the
aggregator: the models below validate the fields it needs for routing and
keep every other field the server sends.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from mcphub.runtime.rate_limit import RateLimitConfig

PROTOCOL_VERSION = "2024-11-05"

# ---------------------------------------------------------------------------
# JSON-RPC 2.0 envelope
# ---------------------------------------------------------------------------


class JsonRpcRequest(BaseModel):
    """A JSON-RPC 2.0 request message."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: int | str
    method: str
    params: dict[str, Any] | None = None


class JsonRpcNotification(BaseModel):
    """A JSON-RPC 2.0 notification (no ``id``, no response expected)."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: dict[str, Any] | None = None


class JsonRpcError(BaseModel):
    """A JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """A JSON-RPC 2.0 response message."""

    jsonrpc: str = "2.0"
    id: int | str | None
    result: Any = None
    error: JsonRpcError | None = None


def encode_message(message: JsonRpcRequest | JsonRpcNotification | JsonRpcResponse) -> bytes:
    """Serialise one message as a single newline-terminated line."""
    payload: dict[str, Any] = message.model_dump()
    if isinstance(message, JsonRpcResponse):
        # Exactly one of result/error is present; a null result is still a result.
        payload.pop("result" if message.error is not None else "error")
    elif payload.get("params") is None:
        payload.pop("params")
    return (json.dumps(payload, ensure_ascii=False) + "\n").encode()


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationKind(str, Enum):
    """Closed set of notification kinds a transport emits as events."""

    INITIALIZED = "initialized"
    CANCELLED = "cancelled"
    PROGRESS = "progress"
    MESSAGE = "message"
    OTHER = "notification"

    @classmethod
    def from_method(cls, method: str) -> NotificationKind:
        return _NOTIFICATION_METHODS.get(method, cls.OTHER)


_NOTIFICATION_METHODS: dict[str, NotificationKind] = {
    "notifications/initialized": NotificationKind.INITIALIZED,
    "notifications/cancelled": NotificationKind.CANCELLED,
    "notifications/progress": NotificationKind.PROGRESS,
    "notifications/message": NotificationKind.MESSAGE,
}


# ---------------------------------------------------------------------------
# Server configuration
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    """Identity and launch parameters for one stdio tool server.

    Frozen: a transport created from a config never sees it change.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    command: str = Field(min_length=1)
    args: list[str] = []
    env: dict[str, str] = {}
    cwd: str | None = None
    timeout: float | None = Field(default=None, gt=0)
    rate_limit: RateLimitConfig | None = None


# ---------------------------------------------------------------------------
# MCP-specific payloads
# ---------------------------------------------------------------------------


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ClientInfo(_Payload):
    name: str = "mcphub"
    version: str = "0.1.0"


class ServerInfo(_Payload):
    name: str = ""
    version: str = ""


class ServerCapabilities(_Payload):
    """Capabilities advertised in the ``initialize`` result.

    A capability is advertised when its key is present, even with an empty
    object as value.
    """

    tools: dict[str, Any] | None = None
    resources: dict[str, Any] | None = None
    prompts: dict[str, Any] | None = None
    logging: dict[str, Any] | None = None
    experimental: dict[str, Any] | None = None


class InitializeResult(_Payload):
    protocol_version: str = Field(default=PROTOCOL_VERSION, alias="protocolVersion")
    capabilities: ServerCapabilities = Field(default_factory=ServerCapabilities)
    server_info: ServerInfo = Field(default_factory=ServerInfo, alias="serverInfo")


class Tool(_Payload):
    """A tool definition as returned by ``tools/list``."""

    name: str
    description: str | None = None
    input_schema: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}},
        alias="inputSchema",
    )


class Resource(_Payload):
    uri: str
    name: str = ""
    description: str | None = None
    mime_type: str | None = Field(default=None, alias="mimeType")


class PromptArgument(_Payload):
    name: str
    description: str | None = None
    required: bool | None = None


class Prompt(_Payload):
    name: str
    description: str | None = None
    arguments: list[PromptArgument] = []


class ToolCallResult(_Payload):
    """Result of ``tools/call``: a list of content items plus an error flag."""

    content: list[dict[str, Any]] = []
    is_error: bool = Field(default=False, alias="isError")

    @property
    def text(self) -> str:
        """Concatenated text of all ``text`` content items."""
        return "\n".join(
            str(item.get("text", "")) for item in self.content if item.get("type") == "text"
        )

    @classmethod
    def from_text(cls, text: str, *, is_error: bool = False) -> ToolCallResult:
        return cls(content=[{"type": "text", "text": text}], is_error=is_error)


class ResourceReadResult(_Payload):
    contents: list[dict[str, Any]] = []


class PromptGetResult(_Payload):
    description: str | None = None
    messages: list[dict[str, Any]] = []
