"""Built-in browser tools.

Static catalog of the eight ``browser_*`` tools, their typed argument models
and the :class:`BrowserBackend` contract.  The automation engine itself lives
outside this package; :class:`AcknowledgingBrowserBackend` only echoes what it
was asked to do.
"""

from __future__ import annotations

from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from mcphub.protocols.builtin.registry import BuiltinTool, BuiltinToolRegistry
from mcphub.runtime.rate_limit import BROWSER_CATEGORY

BROWSER_PREFIX = "browser_"
DEFAULT_EXTRACT_BYTES = 1024 * 1024

# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------


class _Args(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class NavigateArgs(_Args):
    url: str = Field(min_length=1)


class ScreenshotArgs(_Args):
    full_page: bool = Field(default=False, alias="fullPage")
    selector: str | None = None


class ClickArgs(_Args):
    selector: str = Field(min_length=1)


class TypeArgs(_Args):
    selector: str = Field(min_length=1)
    text: str


class ExtractDomArgs(_Args):
    selector: str | None = None
    max_bytes: int = Field(default=DEFAULT_EXTRACT_BYTES, gt=0, alias="maxBytes")


class ScrollArgs(_Args):
    direction: Literal["up", "down"] = "down"
    amount: int | None = None


class WaitArgs(_Args):
    selector: str | None = None
    timeout: float | None = Field(default=None, ge=0)  # ms


class CloseArgs(_Args):
    pass


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


def _schema(properties: dict[str, Any], required: list[str] | None = None) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def _string(description: str) -> dict[str, Any]:
    return {"type": "string", "description": description}


def _number(description: str) -> dict[str, Any]:
    return {"type": "number", "description": description}


BROWSER_TOOLS: list[BuiltinTool] = [
    BuiltinTool(
        name="browser_navigate",
        description="Navigate to a URL",
        input_schema=_schema({"url": _string("The URL to navigate to")}, ["url"]),
    ),
    BuiltinTool(
        name="browser_screenshot",
        description="Take a screenshot of the current page",
        input_schema=_schema(
            {
                "fullPage": {"type": "boolean", "description": "Whether to capture the full page"},
                "selector": _string("Optional CSS selector to capture specific element"),
            }
        ),
    ),
    BuiltinTool(
        name="browser_click",
        description="Click on an element",
        input_schema=_schema(
            {"selector": _string("CSS selector for the element to click")}, ["selector"]
        ),
    ),
    BuiltinTool(
        name="browser_type",
        description="Type text into an input field",
        input_schema=_schema(
            {
                "selector": _string("CSS selector for the input field"),
                "text": _string("Text to type"),
            },
            ["selector", "text"],
        ),
    ),
    BuiltinTool(
        name="browser_extract_dom",
        description="Extract DOM content from the page",
        input_schema=_schema(
            {
                "selector": _string("Optional CSS selector to extract specific content"),
                "maxBytes": _number("Maximum bytes to extract (default: 1MB)"),
            }
        ),
    ),
    BuiltinTool(
        name="browser_scroll",
        description="Scroll the page",
        input_schema=_schema(
            {
                "direction": {
                    "type": "string",
                    "enum": ["up", "down"],
                    "description": "Scroll direction",
                },
                "amount": _number("Number of pixels to scroll"),
            }
        ),
    ),
    BuiltinTool(
        name="browser_wait",
        description="Wait for an element or condition",
        input_schema=_schema(
            {
                "selector": _string("CSS selector to wait for"),
                "timeout": _number("Timeout in milliseconds"),
            }
        ),
    ),
    BuiltinTool(
        name="browser_close",
        description="Close the browser",
        input_schema=_schema({}),
    ),
]

# tool name -> (backend method, argument model)
_BINDINGS: dict[str, tuple[str, type[_Args]]] = {
    "browser_navigate": ("navigate", NavigateArgs),
    "browser_screenshot": ("screenshot", ScreenshotArgs),
    "browser_click": ("click", ClickArgs),
    "browser_type": ("type_text", TypeArgs),
    "browser_extract_dom": ("extract_dom", ExtractDomArgs),
    "browser_scroll": ("scroll", ScrollArgs),
    "browser_wait": ("wait", WaitArgs),
    "browser_close": ("close", CloseArgs),
}


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------


@runtime_checkable
class BrowserBackend(Protocol):
    """Performs browser actions on behalf of the built-in tools.

    Each method returns a JSON-serialisable payload that becomes the text
    content of the tool result.
    """

    async def navigate(self, args: NavigateArgs) -> dict[str, Any]: ...

    async def screenshot(self, args: ScreenshotArgs) -> dict[str, Any]: ...

    async def click(self, args: ClickArgs) -> dict[str, Any]: ...

    async def type_text(self, args: TypeArgs) -> dict[str, Any]: ...

    async def extract_dom(self, args: ExtractDomArgs) -> dict[str, Any]: ...

    async def scroll(self, args: ScrollArgs) -> dict[str, Any]: ...

    async def wait(self, args: WaitArgs) -> dict[str, Any]: ...

    async def close(self, args: CloseArgs) -> dict[str, Any]: ...


class AcknowledgingBrowserBackend:
    """Backend that performs nothing and acknowledges every action."""

    async def navigate(self, args: NavigateArgs) -> dict[str, Any]:
        return {"status": "success", "url": args.url}

    async def screenshot(self, args: ScreenshotArgs) -> dict[str, Any]:
        return {"status": "success", "format": "png", "message": "Screenshot captured"}

    async def click(self, args: ClickArgs) -> dict[str, Any]:
        return {"status": "success", "selector": args.selector, "clicked": True}

    async def type_text(self, args: TypeArgs) -> dict[str, Any]:
        return {"status": "success", "selector": args.selector, "typed": args.text}

    async def extract_dom(self, args: ExtractDomArgs) -> dict[str, Any]:
        return {
            "status": "success",
            "content": "<!-- DOM content would be here -->",
            "truncated": False,
        }

    async def scroll(self, args: ScrollArgs) -> dict[str, Any]:
        return {"status": "success", "direction": args.direction}

    async def wait(self, args: WaitArgs) -> dict[str, Any]:
        return {"status": "success", "waited": True}

    async def close(self, args: CloseArgs) -> dict[str, Any]:
        return {"status": "success", "message": "Browser closed"}


def build_browser_registry(backend: BrowserBackend | None = None) -> BuiltinToolRegistry:
    """Return a registry holding all browser tools bound to *backend*."""
    backend = backend or AcknowledgingBrowserBackend()
    registry = BuiltinToolRegistry(category=BROWSER_CATEGORY)
    for tool in BROWSER_TOOLS:
        method, args_model = _BINDINGS[tool.name]
        registry.register(tool, getattr(backend, method), args_model)
    return registry
