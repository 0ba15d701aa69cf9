"""MCP stdio transport: one child process and the JSON-RPC session on its pipes.

:class:`StdioTransport` spawns the server, frames newline-delimited JSON-RPC
on its stdin/stdout, correlates responses to requests by id and turns
notifications into events.  Each transport runs three background tasks
(stdout reader, stderr drain, exit watcher) and is independent of every
other transport.

Usage::

    transport = StdioTransport(ServerConfig(name="fs", command="mcp-fs"))
    await transport.connect()
    await transport.initialize()
    tools = await transport.request("tools/list", {})
    await transport.disconnect()
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import signal
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from pydantic import ValidationError

from mcphub.protocols.errors import (
    INTERNAL_ERROR,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    MCPConnectionError,
    MCPError,
    MCPParseError,
    MCPTimeoutError,
)
from mcphub.protocols.mcp.models import (
    PROTOCOL_VERSION,
    ClientInfo,
    InitializeResult,
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    NotificationKind,
    ServerCapabilities,
    ServerConfig,
    ServerInfo,
    encode_message,
)
from mcphub.utils.telemetry import (
    ATTR_ERROR_CODE,
    ATTR_METHOD,
    ATTR_PID,
    ATTR_REQUEST_ID,
    ATTR_SERVER,
    get_tracer,
)

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

DEFAULT_TIMEOUT = 30.0
SHUTDOWN_TIMEOUT = 5.0
KILL_GRACE = 5.0
SPAWN_GRACE = 0.05
MAX_BUFFER_SIZE = 10 * 1024 * 1024


class TransportState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class TransportEvent(str, Enum):
    """Events a transport emits to its listeners."""

    CONNECTED = "connected"
    DISCONNECT = "disconnect"
    ERROR = "error"
    STDERR = "stderr"
    INITIALIZED = NotificationKind.INITIALIZED.value
    CANCELLED = NotificationKind.CANCELLED.value
    PROGRESS = NotificationKind.PROGRESS.value
    MESSAGE = NotificationKind.MESSAGE.value
    NOTIFICATION = NotificationKind.OTHER.value


Listener = Callable[[Any], None]


@dataclass(frozen=True)
class ExitInfo:
    """Payload of the ``disconnect`` event."""

    code: int | None
    signal: str | None

    @classmethod
    def from_returncode(cls, returncode: int) -> ExitInfo:
        if returncode >= 0:
            return cls(code=returncode, signal=None)
        try:
            name = signal.Signals(-returncode).name
        except ValueError:
            name = str(-returncode)
        return cls(code=None, signal=name)


@dataclass
class PendingRequest:
    id: int
    method: str
    future: asyncio.Future[Any]


class StdioTransport:
    """Line-oriented JSON-RPC transport over a child process's stdio."""

    def __init__(
        self,
        config: ServerConfig,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        env: dict[str, str] | None = None,
        max_buffer_size: int = MAX_BUFFER_SIZE,
        shutdown_timeout: float = SHUTDOWN_TIMEOUT,
        kill_grace: float = KILL_GRACE,
        spawn_grace: float = SPAWN_GRACE,
    ) -> None:
        self._config = config
        self._timeout = timeout
        self._env = env if env is not None else dict(config.env)
        self._max_buffer_size = max_buffer_size
        self._shutdown_timeout = shutdown_timeout
        self._kill_grace = kill_grace
        self._spawn_grace = spawn_grace

        self._process: asyncio.subprocess.Process | None = None
        self._state = TransportState.DISCONNECTED
        self._ready = False
        self._init_result: InitializeResult | None = None
        self._request_id = 0
        self._pending: dict[int, PendingRequest] = {}
        self._tasks: list[asyncio.Task[None]] = []
        self._background: set[asyncio.Task[None]] = set()
        self._write_lock = asyncio.Lock()
        self._listeners: dict[TransportEvent, list[Listener]] = {}

    async def __aenter__(self) -> StdioTransport:
        await self.connect()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.disconnect()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def ready(self) -> bool:
        """``True`` once the initialize handshake has completed."""
        return self._ready

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def initialize_result(self) -> InitializeResult | None:
        return self._init_result

    @property
    def capabilities(self) -> ServerCapabilities | None:
        return self._init_result.capabilities if self._init_result else None

    @property
    def server_info(self) -> ServerInfo | None:
        return self._init_result.server_info if self._init_result else None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def is_connected(self) -> bool:
        return self._state is TransportState.CONNECTED and self._process is not None

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: TransportEvent, listener: Listener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def off(self, event: TransportEvent, listener: Listener) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def _emit(self, event: TransportEvent, payload: Any = None) -> None:
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(payload)
            except Exception:
                logger.exception("Listener for %s on %s raised", event.value, self.name)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Spawn the server process and start the reader tasks.

        Raises:
            MCPConnectionError: The process could not be spawned or exited
                during the spawn grace period.
            MCPTimeoutError: No confirmation within the connect timeout.
        """
        if self._state is not TransportState.DISCONNECTED:
            msg = "Already connected"
            raise MCPError(msg)

        logger.info("Connecting to MCP server %s", self.name)
        self._state = TransportState.CONNECTING
        with _tracer.start_as_current_span("mcp.connect") as span:
            span.set_attribute(ATTR_SERVER, self.name)
            try:
                await asyncio.wait_for(self._start_process(), timeout=self._timeout)
            except TimeoutError as exc:
                await self._teardown_process()
                raise MCPTimeoutError("Connection timeout", self._timeout) from exc
            except BaseException:
                await self._teardown_process()
                raise
            if self.pid is not None:
                span.set_attribute(ATTR_PID, self.pid)

        self._state = TransportState.CONNECTED
        logger.info("Connected to MCP server %s (pid %s)", self.name, self.pid)
        self._emit(TransportEvent.CONNECTED)

    async def initialize(
        self,
        client_info: ClientInfo | None = None,
        capabilities: dict[str, Any] | None = None,
    ) -> InitializeResult:
        """Perform the ``initialize`` / ``notifications/initialized`` handshake."""
        raw = await self.request(
            "initialize",
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": capabilities or {},
                "clientInfo": (client_info or ClientInfo()).to_wire(),
            },
        )
        try:
            result = InitializeResult.model_validate(raw or {})
        except ValidationError as exc:
            msg = f"Invalid initialize result from {self.name}: {exc}"
            raise MCPError(msg) from exc

        if result.protocol_version != PROTOCOL_VERSION:
            logger.info(
                "MCP server %s negotiated protocol %s (requested %s)",
                self.name,
                result.protocol_version,
                PROTOCOL_VERSION,
            )
        await self.notify("notifications/initialized")
        self._init_result = result
        self._ready = True
        return result

    async def disconnect(self) -> None:
        """Ask the server to shut down, then terminate the process.

        Pending requests are rejected with a "Connection closed" error.
        """
        if self._state is TransportState.CONNECTED:
            logger.info("Disconnecting from MCP server %s", self.name)
            try:
                await self.request("shutdown", timeout=self._shutdown_timeout)
            except MCPError as exc:
                logger.debug("Graceful shutdown of %s failed: %s", self.name, exc)

        if self._process is not None:
            await self._teardown_process()

    # ------------------------------------------------------------------
    # Messaging
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a request and wait for its result.

        Raises:
            MCPError: The server answered with an error object.
            MCPTimeoutError: No response within *timeout* (or the default).
            MCPConnectionError: Not connected, or the connection closed first.
        """
        if not self.is_connected():
            msg = "Not connected"
            raise MCPConnectionError(msg)

        self._request_id += 1
        request_id = self._request_id
        effective_timeout = timeout if timeout is not None else self._timeout
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = PendingRequest(request_id, method, future)

        with _tracer.start_as_current_span("mcp.request") as span:
            span.set_attribute(ATTR_SERVER, self.name)
            span.set_attribute(ATTR_METHOD, method)
            span.set_attribute(ATTR_REQUEST_ID, request_id)
            try:
                await self._send(JsonRpcRequest(id=request_id, method=method, params=params))
                return await asyncio.wait_for(future, timeout=effective_timeout)
            except TimeoutError as exc:
                logger.warning(
                    "Request %s (%s) to %s timed out after %ss",
                    request_id,
                    method,
                    self.name,
                    effective_timeout,
                )
                span.set_attribute(ATTR_ERROR_CODE, INTERNAL_ERROR)
                raise MCPTimeoutError(f"Request timeout: {method}", effective_timeout) from exc
            except MCPError as exc:
                span.set_attribute(ATTR_ERROR_CODE, exc.code)
                raise
            finally:
                self._pending.pop(request_id, None)

    async def notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        """Send a notification; no response is expected."""
        if not self.is_connected():
            msg = "Not connected"
            raise MCPConnectionError(msg)
        await self._send(JsonRpcNotification(method=method, params=params))

    async def _send(self, message: JsonRpcRequest | JsonRpcNotification | JsonRpcResponse) -> None:
        process = self._process
        if process is None or process.stdin is None:
            msg = "No process available"
            raise MCPConnectionError(msg)

        data = encode_message(message)
        logger.debug("Sending to MCP server %s: %s", self.name, data.rstrip())
        async with self._write_lock:
            try:
                process.stdin.write(data)
                await process.stdin.drain()
            except (ConnectionError, OSError, RuntimeError) as exc:
                raise MCPConnectionError(f"Failed to send message: {exc}", exc) from exc

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def _handle_line(self, line: str) -> None:
        if not line.strip():
            return
        logger.debug("Received from MCP server %s: %s", self.name, line.rstrip())

        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            message = None
        if not isinstance(message, dict):
            self._protocol_error(MCPParseError(line))
            return

        if "id" in message:
            if isinstance(message.get("method"), str):
                self._handle_server_request(message)
            else:
                self._handle_response(message)
        elif isinstance(message.get("method"), str):
            self._handle_notification(message)
        else:
            self._protocol_error(MCPParseError(line))

    def _handle_response(self, message: dict[str, Any]) -> None:
        try:
            response = JsonRpcResponse.model_validate(message)
        except ValidationError:
            self._protocol_error(MCPParseError(json.dumps(message)))
            return

        pending = self._pending.pop(_normalise_id(response.id), None)
        if pending is None or pending.future.done():
            logger.warning(
                "Received response for unknown request %s from %s", response.id, self.name
            )
            return

        if response.error is not None:
            pending.future.set_exception(
                MCPError(response.error.message, response.error.code, response.error.data)
            )
        else:
            pending.future.set_result(response.result)

    def _handle_notification(self, message: dict[str, Any]) -> None:
        params = message.get("params")
        notification = JsonRpcNotification(
            method=message["method"],
            params=params if isinstance(params, dict) else None,
        )
        kind = NotificationKind.from_method(notification.method)
        logger.debug("Received notification %s from %s", notification.method, self.name)

        if kind is NotificationKind.OTHER:
            self._emit(TransportEvent.NOTIFICATION, notification)
        else:
            self._emit(TransportEvent(kind.value), notification.params)

    def _handle_server_request(self, message: dict[str, Any]) -> None:
        """Answer a request the server sent us (only ``ping`` is supported)."""
        method = message["method"]
        try:
            if method == "ping":
                response = JsonRpcResponse(id=message["id"], result={})
            else:
                response = JsonRpcResponse(
                    id=message["id"],
                    error=JsonRpcError(
                        code=METHOD_NOT_FOUND, message=f"Method not found: {method}"
                    ),
                )
        except ValidationError:
            self._protocol_error(MCPParseError(json.dumps(message)))
            return
        task = asyncio.get_running_loop().create_task(self._reply(response))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _reply(self, response: JsonRpcResponse) -> None:
        try:
            await self._send(response)
        except MCPConnectionError as exc:
            logger.debug("Could not answer server request on %s: %s", self.name, exc)

    def _protocol_error(self, error: MCPError) -> None:
        logger.error("Protocol error from MCP server %s: %s", self.name, error.message)
        self._emit(TransportEvent.ERROR, error)

    # ------------------------------------------------------------------
    # Process management
    # ------------------------------------------------------------------

    async def _start_process(self) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                self._config.command,
                *self._config.args,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, **self._env},
                cwd=self._config.cwd,
                limit=self._max_buffer_size,
            )
        except OSError as exc:
            logger.error("Failed to spawn MCP server %s: %s", self.name, exc)
            error = MCPConnectionError(f"Failed to spawn process: {exc}", exc)
            self._emit(TransportEvent.ERROR, error)
            raise error from exc

        if process.stdin is None or process.stdout is None or process.stderr is None:
            msg = "Failed to create stdio streams"
            raise MCPConnectionError(msg)

        self._process = process
        self._tasks = [
            asyncio.create_task(self._read_loop(process.stdout)),
            asyncio.create_task(self._drain_stderr(process.stderr)),
            asyncio.create_task(self._watch_exit(process)),
        ]

        # Spawn failures inside the child (bad interpreter, crash on start)
        # surface as an exit within the grace period.
        await asyncio.wait({self._tasks[2]}, timeout=self._spawn_grace)
        if process.returncode is not None:
            msg = f"Process exited with code {process.returncode}"
            raise MCPConnectionError(msg)

    async def _read_loop(self, stream: asyncio.StreamReader) -> None:
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                self._protocol_error(
                    MCPError(f"Message exceeds {self._max_buffer_size} bytes", PARSE_ERROR)
                )
                continue
            if not line:
                return
            self._handle_line(line.decode("utf-8", errors="replace"))

    async def _drain_stderr(self, stream: asyncio.StreamReader) -> None:
        while True:
            try:
                line = await stream.readline()
            except ValueError:
                continue
            if not line:
                return
            text = line.decode("utf-8", errors="replace").strip()
            if text:
                logger.debug("MCP server %s stderr: %s", self.name, text)
                self._emit(TransportEvent.STDERR, text)

    async def _watch_exit(self, process: asyncio.subprocess.Process) -> None:
        returncode = await process.wait()
        info = ExitInfo.from_returncode(returncode)
        logger.info(
            "MCP server %s exited (code=%s, signal=%s)", self.name, info.code, info.signal
        )
        self._state = TransportState.DISCONNECTED
        self._ready = False
        if process.stdin is not None:
            process.stdin.close()
        self._reject_all()
        self._emit(TransportEvent.DISCONNECT, info)

    async def _teardown_process(self) -> None:
        process = self._process
        self._state = TransportState.DISCONNECTED
        self._ready = False
        self._reject_all()
        if process is None:
            return

        for task in self._tasks[:2]:
            task.cancel()
        if process.stdin is not None:
            process.stdin.close()

        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.terminate()
            try:
                await asyncio.wait_for(process.wait(), timeout=self._kill_grace)
            except TimeoutError:
                logger.warning("MCP server %s ignored SIGTERM; killing", self.name)
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._process = None

    def _reject_all(self) -> None:
        pending, self._pending = self._pending, {}
        for entry in pending.values():
            if not entry.future.done():
                entry.future.set_exception(MCPConnectionError("Connection closed"))


def _normalise_id(raw: int | str | None) -> int | str | None:
    if isinstance(raw, str) and raw.isdigit():
        return int(raw)
    return raw
