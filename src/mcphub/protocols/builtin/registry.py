"""Registry of tools handled in-process instead of by an MCP server.

The client treats a :class:`BuiltinToolRegistry` as a zero-latency server:
its tools are listed under their bare names and calls never touch a pipe.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pydantic import BaseModel, ValidationError

from mcphub.protocols.errors import InvalidParamsError, ToolNotFoundError
from mcphub.protocols.mcp.models import Tool, ToolCallResult

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[dict[str, Any]]]


class BuiltinTool(Tool):
    """Descriptor of a locally handled tool; same wire shape as :class:`Tool`."""


@dataclass
class _Registration:
    tool: BuiltinTool
    handler: Handler
    args_model: type[BaseModel] | None


class BuiltinToolRegistry:
    """Maps bare tool names to local async handlers.

    Usage::

        registry = BuiltinToolRegistry(category="browser")
        registry.register(tool, handler, NavigateArgs)
        result = await registry.call("browser_navigate", {"url": "https://x"})
    """

    def __init__(self, category: str) -> None:
        self._category = category
        self._tools: dict[str, _Registration] = {}

    @property
    def category(self) -> str:
        """Rate-limit category charged for every call."""
        return self._category

    def register(
        self,
        tool: BuiltinTool,
        handler: Handler,
        args_model: type[BaseModel] | None = None,
    ) -> None:
        if tool.name in self._tools:
            msg = f"Built-in tool already registered: {tool.name}"
            raise ValueError(msg)
        self._tools[tool.name] = _Registration(tool, handler, args_model)

    def has(self, name: str) -> bool:
        return name in self._tools

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def list_tools(self) -> list[BuiltinTool]:
        return [entry.tool for entry in self._tools.values()]

    async def call(self, name: str, arguments: dict[str, Any] | None = None) -> ToolCallResult:
        """Validate *arguments* and run the handler for *name*.

        The handler's payload is returned as a single JSON text item.

        Raises:
            ToolNotFoundError: *name* is not registered.
            InvalidParamsError: *arguments* fail the tool's argument model.
        """
        entry = self._tools.get(name)
        if entry is None:
            raise ToolNotFoundError(name)

        args: Any = dict(arguments or {})
        if entry.args_model is not None:
            try:
                args = entry.args_model.model_validate(args)
            except ValidationError as exc:
                raise InvalidParamsError(name, _summarise(exc)) from exc

        logger.info("Handling built-in tool %s", name)
        payload = await entry.handler(args)
        return ToolCallResult.from_text(json.dumps(payload, ensure_ascii=False))


def _summarise(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "arguments"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)
