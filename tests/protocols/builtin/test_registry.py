"""Tests for the built-in tool registry."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock

import pytest
from pydantic import BaseModel

from mcphub.protocols.builtin.registry import BuiltinTool, BuiltinToolRegistry
from mcphub.protocols.errors import InvalidParamsError, ToolNotFoundError


class EchoArgs(BaseModel):
    text: str
    times: int = 1


def _registry(handler: Any = None) -> BuiltinToolRegistry:
    registry = BuiltinToolRegistry(category="local")
    registry.register(
        BuiltinTool(name="echo", description="Echo text"),
        handler or AsyncMock(return_value={"ok": True}),
        EchoArgs,
    )
    return registry


class TestRegistration:
    def test_has_and_list(self) -> None:
        registry = _registry()
        assert registry.has("echo")
        assert "echo" in registry
        assert not registry.has("other")
        assert len(registry) == 1
        assert [tool.name for tool in registry.list_tools()] == ["echo"]
        assert registry.category == "local"

    def test_duplicate_rejected(self) -> None:
        registry = _registry()
        with pytest.raises(ValueError, match="already registered"):
            registry.register(BuiltinTool(name="echo"), AsyncMock())


class TestCall:
    async def test_handler_receives_validated_model(self) -> None:
        handler = AsyncMock(return_value={"echoed": "hi"})
        registry = _registry(handler)

        result = await registry.call("echo", {"text": "hi", "times": "2"})

        args = handler.await_args.args[0]
        assert isinstance(args, EchoArgs)
        assert args.times == 2
        assert json.loads(result.text) == {"echoed": "hi"}
        assert not result.is_error

    async def test_invalid_arguments(self) -> None:
        handler = AsyncMock()
        registry = _registry(handler)

        with pytest.raises(InvalidParamsError) as exc_info:
            await registry.call("echo", {"times": 3})

        assert "text" in str(exc_info.value)
        handler.assert_not_awaited()

    async def test_unknown_tool(self) -> None:
        with pytest.raises(ToolNotFoundError):
            await _registry().call("missing", {})

    async def test_without_args_model_passes_dict(self) -> None:
        handler = AsyncMock(return_value={})
        registry = BuiltinToolRegistry(category="local")
        registry.register(BuiltinTool(name="raw"), handler)

        await registry.call("raw", None)
        handler.assert_awaited_once_with({})
