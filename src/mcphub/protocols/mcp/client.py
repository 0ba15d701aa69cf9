"""MCPClient: one facade over many MCP servers plus the built-in tools.

The client owns a :class:`StdioTransport` per configured server, merges their
tool catalogs under qualified names (``server/tool``), routes calls, applies
per-category rate limits and tears everything down on :meth:`shutdown`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from opentelemetry import trace
from pydantic import ValidationError

from mcphub.protocols.builtin import BROWSER_PREFIX, build_browser_registry
from mcphub.protocols.dispatcher import ToolCatalog
from mcphub.protocols.errors import (
    METHOD_NOT_FOUND,
    MCPError,
    PromptNotFoundError,
    ResourceNotFoundError,
    ServerNotFoundError,
    ToolNotFoundError,
)
from mcphub.protocols.mcp.models import (
    ClientInfo,
    Prompt,
    PromptGetResult,
    Resource,
    ResourceReadResult,
    ServerCapabilities,
    ServerConfig,
    ServerInfo,
    Tool,
    ToolCallResult,
)
from mcphub.protocols.mcp.transport import (
    DEFAULT_TIMEOUT,
    ExitInfo,
    StdioTransport,
    TransportEvent,
)
from mcphub.runtime.errors import RateLimitError
from mcphub.runtime.rate_limit import (
    BROWSER_CATEGORY,
    BROWSER_RATE_LIMIT,
    RateLimitConfig,
    RateLimiter,
    RateLimitStatus,
)
from mcphub.utils.telemetry import (
    ATTR_RATE_CATEGORY,
    ATTR_SERVER,
    ATTR_TOOL_NAME,
    ATTR_TOOL_ROUTE,
    get_tracer,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mcphub.protocols.builtin import BuiltinToolRegistry

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


@dataclass
class ServerConnection:
    """State the client keeps for one connected server.

    ``ready`` is ``False`` with ``error`` set when the process runs but the
    handshake or tool listing failed.
    """

    config: ServerConfig
    transport: StdioTransport
    ready: bool = False
    capabilities: ServerCapabilities | None = None
    server_info: ServerInfo | None = None
    protocol_version: str | None = None
    tools: list[Tool] = field(default_factory=list)
    error: str | None = None

    @property
    def name(self) -> str:
        return self.config.name


class MCPClient:
    """Aggregates tools, resources and prompts from many MCP servers.

    Usage::

        async with MCPClient() as client:
            await client.initialize([ServerConfig(name="docs", command="docs-mcp")])
            tools = client.list_tools()
            result = await client.call_tool("docs/search", {"q": "asyncio"})
    """

    def __init__(
        self,
        *,
        request_timeout: float = DEFAULT_TIMEOUT,
        enable_builtin_tools: bool = True,
        builtin_registry: BuiltinToolRegistry | None = None,
        browser_rate_limit: RateLimitConfig = BROWSER_RATE_LIMIT,
        client_info: ClientInfo | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._request_timeout = request_timeout
        self._browser_rate_limit = browser_rate_limit
        self._client_info = client_info or ClientInfo()
        self._clock = clock
        self._builtin: BuiltinToolRegistry | None = None
        if enable_builtin_tools:
            self._builtin = builtin_registry or build_browser_registry()

        self._servers: dict[str, ServerConnection] = {}
        self._catalog = ToolCatalog()
        self._rate_limiters: dict[str, RateLimiter] = {}
        self._resource_owners: dict[str, str] = {}

    async def __aenter__(self) -> MCPClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.shutdown()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, configs: Iterable[ServerConfig] = ()) -> None:
        """Register built-in tools, then connect every server concurrently.

        Failures are logged per server and never raised. A server whose
        process cannot start, or exits before registration, is left out.
        A server whose handshake or tool listing fails while the process
        keeps running is kept as degraded.
        """
        self._register_builtins()

        configs = list(configs)
        connections = await asyncio.gather(*(self._open(config) for config in configs))
        for connection in connections:
            if connection is not None:
                await self._install(connection)

        logger.info(
            "MCP client initialized: %d server(s), %d tool(s)",
            len(self._servers),
            len(self._catalog.list_tools()),
        )

    async def connect_server(self, config: ServerConfig) -> ServerConnection | None:
        """Connect one more server at runtime; ``None`` if it failed to start."""
        connection = await self._open(config)
        if connection is None or not await self._install(connection):
            return None
        return connection

    async def disconnect_server(self, name: str) -> None:
        connection = self._servers.get(name)
        if connection is None:
            raise ServerNotFoundError(name)
        self._forget(name)
        await connection.transport.disconnect()

    async def shutdown(self) -> None:
        """Disconnect every server concurrently and clear all state."""
        connections = list(self._servers.values())
        self._servers.clear()

        results = await asyncio.gather(
            *(connection.transport.disconnect() for connection in connections),
            return_exceptions=True,
        )
        for connection, result in zip(connections, results):
            if isinstance(result, Exception):
                logger.error("Error disconnecting MCP server %s: %s", connection.name, result)

        self._catalog.clear()
        self._rate_limiters.clear()
        self._resource_owners.clear()
        if connections:
            logger.info("MCP client shut down (%d server(s))", len(connections))

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_servers(self) -> list[ServerConnection]:
        return list(self._servers.values())

    def get_server(self, name: str) -> ServerConnection | None:
        return self._servers.get(name)

    def list_tools(self) -> list[Tool]:
        """Merged catalog: built-ins by bare name, server tools as ``server/tool``."""
        return self._catalog.list_tools()

    def get_rate_limit_status(self, category: str) -> RateLimitStatus | None:
        limiter = self._rate_limiters.get(category)
        return limiter.status() if limiter is not None else None

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> ToolCallResult:
        """Route a tool call to the built-ins or the owning server.

        Raises:
            ToolNotFoundError: A built-in name that is not registered.
            ServerNotFoundError: The name resolves to no connected server.
            RateLimitError: The tool's category has no tokens left.
            MCPError: The server reported an error.
        """
        arguments = arguments or {}
        with _tracer.start_as_current_span("mcp.call_tool") as span:
            span.set_attribute(ATTR_TOOL_NAME, name)
            route = self._catalog.resolve(name)

            if route.builtin:
                span.set_attribute(ATTR_TOOL_ROUTE, "builtin")
                registry = self._builtin
                if registry is None or not registry.has(route.tool):
                    raise ToolNotFoundError(name)
                self._consume(registry.category)
                return await registry.call(route.tool, arguments)

            span.set_attribute(ATTR_TOOL_ROUTE, route.server)
            connection = self._servers.get(route.server)
            if connection is None or not connection.transport.is_connected():
                raise ServerNotFoundError(route.server)

            self._consume(route.server)
            logger.debug("Calling tool %s on %s", route.tool, route.server)
            raw = await connection.transport.request(
                "tools/call", {"name": route.tool, "arguments": arguments}
            )
            return _validate(ToolCallResult, raw, f"tools/call on {route.server}")

    def _consume(self, category: str) -> None:
        limiter = self._rate_limiters.get(category)
        if limiter is None or limiter.try_consume():
            return
        retry_after = limiter.time_until_available()
        logger.warning("Rate limit exceeded for %s tools (retry after %dms)", category, retry_after)
        trace.get_current_span().set_attribute(ATTR_RATE_CATEGORY, category)
        raise RateLimitError(category, retry_after)

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    async def list_resources(self) -> list[Resource]:
        """Ask every connected server for its resources and merge the answers."""
        connections = self._connected()
        results = await asyncio.gather(
            *(
                _list_all(connection.transport, "resources/list", "resources")
                for connection in connections
            ),
            return_exceptions=True,
        )

        owners: dict[str, str] = {}
        merged: list[Resource] = []
        for connection, result in zip(connections, results):
            if isinstance(result, BaseException):
                _log_fanout_failure("resources", connection.name, result)
                continue
            for resource in _parse_items(Resource, result, connection.name):
                owners.setdefault(resource.uri, connection.name)
                merged.append(resource)

        self._resource_owners = owners
        return merged

    async def read_resource(self, uri: str) -> ResourceReadResult:
        owner = self._resource_owner(uri)
        raw = await self._servers[owner].transport.request("resources/read", {"uri": uri})
        return _validate(ResourceReadResult, raw, f"resources/read on {owner}")

    def _resource_owner(self, uri: str) -> str:
        """Pick the server for *uri* or fail; never guesses between servers."""
        connected = [connection.name for connection in self._connected()]
        if not connected:
            raise ServerNotFoundError(uri)

        owner = self._resource_owners.get(uri)
        if owner in connected:
            return owner

        scheme = uri.split(":", 1)[0]
        for name in connected:
            if scheme == name or uri.startswith(f"{name}/"):
                return name

        if len(connected) == 1:
            return connected[0]
        raise ResourceNotFoundError(uri, "no server owns this URI; call list_resources() first")

    # ------------------------------------------------------------------
    # Prompts
    # ------------------------------------------------------------------

    async def list_prompts(self) -> list[Prompt]:
        connections = self._connected()
        results = await asyncio.gather(
            *(
                _list_all(connection.transport, "prompts/list", "prompts")
                for connection in connections
            ),
            return_exceptions=True,
        )

        merged: list[Prompt] = []
        for connection, result in zip(connections, results):
            if isinstance(result, BaseException):
                _log_fanout_failure("prompts", connection.name, result)
                continue
            merged.extend(_parse_items(Prompt, result, connection.name))
        return merged

    async def get_prompt(
        self, name: str, arguments: dict[str, Any] | None = None
    ) -> PromptGetResult:
        """Return the first server's answer for prompt *name*.

        Servers that answer "method not found" are skipped; any other error
        is raised immediately.
        """
        params: dict[str, Any] = {"name": name}
        if arguments:
            params["arguments"] = arguments

        for connection in self._connected():
            try:
                raw = await connection.transport.request("prompts/get", params)
            except MCPError as exc:
                if exc.code == METHOD_NOT_FOUND:
                    logger.debug("Server %s has no prompt %s", connection.name, name)
                    continue
                raise
            return _validate(PromptGetResult, raw, f"prompts/get on {connection.name}")

        raise PromptNotFoundError(name)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _create_transport(self, config: ServerConfig) -> StdioTransport:
        return StdioTransport(config, timeout=config.timeout or self._request_timeout)

    def _register_builtins(self) -> None:
        if self._builtin is None:
            return
        self._catalog.set_builtin(
            self._builtin.list_tools(),
            prefix=BROWSER_PREFIX if self._builtin.category == BROWSER_CATEGORY else None,
        )
        if self._builtin.category not in self._rate_limiters:
            self._rate_limiters[self._builtin.category] = RateLimiter.from_config(
                self._browser_rate_limit, clock=self._clock
            )
        logger.info("Registered %d built-in tool(s)", len(self._builtin))

    async def _open(self, config: ServerConfig) -> ServerConnection | None:
        """Connect and handshake one server; ``None`` if the process failed."""
        transport = self._create_transport(config)
        try:
            await transport.connect()
        except Exception as exc:
            logger.error("Failed to connect to MCP server %s: %s", config.name, exc)
            return None

        transport.on(
            TransportEvent.DISCONNECT,
            lambda info: self._on_disconnect(config.name, transport, info),
        )
        connection = ServerConnection(config=config, transport=transport)
        with _tracer.start_as_current_span("mcp.initialize") as span:
            span.set_attribute(ATTR_SERVER, config.name)
            try:
                result = await transport.initialize(self._client_info)
                connection.capabilities = result.capabilities
                connection.server_info = result.server_info
                connection.protocol_version = result.protocol_version
                if result.capabilities.tools is not None:
                    raw_tools = await _list_all(transport, "tools/list", "tools")
                    connection.tools = _parse_items(Tool, raw_tools, config.name)
                connection.ready = True
            except Exception as exc:
                logger.warning("MCP server %s is degraded: %s", config.name, exc)
                connection.error = str(exc)
        return connection

    async def _install(self, connection: ServerConnection) -> bool:
        """Register *connection*; ``False`` if its process already exited."""
        name = connection.name
        previous = self._servers.get(name)
        if previous is not None:
            logger.warning("Replacing existing connection to MCP server %s", name)
            self._forget(name)
            await previous.transport.disconnect()

        # Registration below never awaits, so any later exit reaches _on_disconnect.
        if not connection.transport.is_connected():
            logger.warning("MCP server %s exited before it was registered", name)
            await connection.transport.disconnect()
            return False

        self._servers[name] = connection
        self._catalog.set_server_tools(name, connection.tools)
        if connection.config.rate_limit is not None:
            self._rate_limiters[name] = RateLimiter.from_config(
                connection.config.rate_limit, clock=self._clock
            )
        logger.info(
            "Connected MCP server %s (%d tool(s)%s)",
            name,
            len(connection.tools),
            "" if connection.ready else ", degraded",
        )

    def _forget(self, name: str) -> None:
        self._servers.pop(name, None)
        self._catalog.remove_server(name)
        self._rate_limiters.pop(name, None)
        self._resource_owners = {
            uri: owner for uri, owner in self._resource_owners.items() if owner != name
        }

    def _on_disconnect(self, name: str, transport: StdioTransport, info: ExitInfo) -> None:
        connection = self._servers.get(name)
        if connection is None or connection.transport is not transport:
            return
        logger.warning(
            "MCP server %s disconnected (code=%s, signal=%s)", name, info.code, info.signal
        )
        self._forget(name)

    def _connected(self) -> list[ServerConnection]:
        return [c for c in self._servers.values() if c.transport.is_connected()]


async def _list_all(transport: StdioTransport, method: str, key: str) -> list[Any]:
    """Collect every page of a ``*/list`` method."""
    items: list[Any] = []
    cursor: str | None = None
    seen: set[str] = set()
    while True:
        result = await transport.request(method, {"cursor": cursor} if cursor else {})
        result = result if isinstance(result, dict) else {}
        page = result.get(key, [])
        if isinstance(page, list):
            items.extend(page)
        cursor = result.get("nextCursor")
        if not cursor or cursor in seen:
            return items
        seen.add(cursor)


def _parse_items(model: type[Any], raw_items: list[Any], server: str) -> list[Any]:
    parsed = []
    for raw in raw_items:
        try:
            parsed.append(model.model_validate(raw))
        except ValidationError as exc:
            logger.warning("Skipping malformed %s from %s: %s", model.__name__, server, exc)
    return parsed


def _validate(model: type[Any], raw: Any, context: str) -> Any:
    try:
        return model.model_validate(raw if raw is not None else {})
    except ValidationError as exc:
        msg = f"Invalid result from {context}: {exc}"
        raise MCPError(msg) from exc


def _log_fanout_failure(kind: str, server: str, error: BaseException) -> None:
    if isinstance(error, MCPError) and error.code == METHOD_NOT_FOUND:
        logger.debug("MCP server %s does not support %s", server, kind)
    else:
        logger.warning("Failed to list %s from MCP server %s: %s", kind, server, error)

