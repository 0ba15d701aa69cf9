"""Tests for the built-in browser tools."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock

import pytest

from mcphub.protocols.builtin import (
    BROWSER_TOOLS,
    AcknowledgingBrowserBackend,
    BrowserBackend,
    build_browser_registry,
)
from mcphub.protocols.builtin.browser import NavigateArgs
from mcphub.protocols.errors import InvalidParamsError
from mcphub.runtime.rate_limit import BROWSER_CATEGORY


class TestCatalog:
    def test_eight_tools(self) -> None:
        assert [tool.name for tool in BROWSER_TOOLS] == [
            "browser_navigate",
            "browser_screenshot",
            "browser_click",
            "browser_type",
            "browser_extract_dom",
            "browser_scroll",
            "browser_wait",
            "browser_close",
        ]

    def test_schemas_are_objects(self) -> None:
        for tool in BROWSER_TOOLS:
            assert tool.input_schema["type"] == "object"
            assert tool.description

    def test_required_fields(self) -> None:
        schemas = {tool.name: tool.input_schema for tool in BROWSER_TOOLS}
        assert schemas["browser_navigate"]["required"] == ["url"]
        assert schemas["browser_type"]["required"] == ["selector", "text"]
        assert "required" not in schemas["browser_close"]
        assert schemas["browser_scroll"]["properties"]["direction"]["enum"] == ["up", "down"]

    def test_wire_shape(self) -> None:
        wire = BROWSER_TOOLS[0].to_wire()
        assert set(wire) == {"name", "description", "inputSchema"}


class TestAcknowledgingBackend:
    def test_satisfies_protocol(self) -> None:
        assert isinstance(AcknowledgingBrowserBackend(), BrowserBackend)

    @pytest.mark.parametrize(
        ("name", "arguments", "expected"),
        [
            ("browser_navigate", {"url": "https://example.com"}, {"status": "success", "url": "https://example.com"}),
            ("browser_screenshot", {"fullPage": True}, {"status": "success", "format": "png", "message": "Screenshot captured"}),
            ("browser_click", {"selector": "#go"}, {"status": "success", "selector": "#go", "clicked": True}),
            ("browser_type", {"selector": "#q", "text": "mcp"}, {"status": "success", "selector": "#q", "typed": "mcp"}),
            ("browser_extract_dom", {}, {"status": "success", "content": "<!-- DOM content would be here -->", "truncated": False}),
            ("browser_scroll", {"direction": "up"}, {"status": "success", "direction": "up"}),
            ("browser_wait", {"selector": ".ready", "timeout": 100}, {"status": "success", "waited": True}),
            ("browser_close", {}, {"status": "success", "message": "Browser closed"}),
        ],
    )
    async def test_acknowledgements(
        self, name: str, arguments: dict[str, Any], expected: dict[str, Any]
    ) -> None:
        result = await build_browser_registry().call(name, arguments)
        assert json.loads(result.text) == expected


class TestRegistry:
    def test_category(self) -> None:
        assert build_browser_registry().category == BROWSER_CATEGORY

    async def test_custom_backend(self) -> None:
        backend = AsyncMock(spec=AcknowledgingBrowserBackend)
        backend.navigate.return_value = {"status": "success", "title": "Example"}
        registry = build_browser_registry(backend)

        result = await registry.call("browser_navigate", {"url": "https://example.com"})

        assert json.loads(result.text)["title"] == "Example"
        assert backend.navigate.await_args.args[0] == NavigateArgs(url="https://example.com")

    @pytest.mark.parametrize(
        ("name", "arguments"),
        [
            ("browser_navigate", {}),
            ("browser_click", {"selector": ""}),
            ("browser_scroll", {"direction": "sideways"}),
            ("browser_extract_dom", {"maxBytes": 0}),
        ],
    )
    async def test_invalid_arguments(self, name: str, arguments: dict[str, Any]) -> None:
        with pytest.raises(InvalidParamsError):
            await build_browser_registry().call(name, arguments)
