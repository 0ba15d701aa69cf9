"""Tools handled in-process, starting with the browser catalog."""

from mcphub.protocols.builtin.browser import (
    BROWSER_PREFIX,
    BROWSER_TOOLS,
    AcknowledgingBrowserBackend,
    BrowserBackend,
    build_browser_registry,
)
from mcphub.protocols.builtin.registry import BuiltinTool, BuiltinToolRegistry

__all__ = [
    "BROWSER_PREFIX",
    "BROWSER_TOOLS",
    "AcknowledgingBrowserBackend",
    "BrowserBackend",
    "BuiltinTool",
    "BuiltinToolRegistry",
    "build_browser_registry",
]
