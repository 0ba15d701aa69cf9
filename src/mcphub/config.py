"""Hub configuration: which servers to launch and how the client behaves.

A config file is YAML (or JSON, chosen by suffix)::

    request_timeout: 30
    servers:
      docs:
        command: docs-mcp
        args: ["--root", "${HOME}/docs"]
        rate_limit: {max_calls: 10, window_ms: 1000}

``servers`` may also be a list of entries carrying their own ``name``, and
the key ``mcpServers`` is accepted as an alias.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from mcphub.protocols.mcp.models import ServerConfig
from mcphub.protocols.mcp.transport import DEFAULT_TIMEOUT
from mcphub.runtime.rate_limit import BROWSER_RATE_LIMIT, RateLimitConfig


class ConfigValidationError(Exception):
    """Raised when a config file cannot be read, parsed or validated."""


class TelemetrySettings(BaseModel):
    """Optional telemetry configuration."""

    enabled: bool = False
    service_name: str = "mcphub"
    otlp_endpoint: str | None = None
    export_to_console: bool = False


class HubConfig(BaseModel):
    """Top-level configuration consumed by :class:`~mcphub.protocols.mcp.client.MCPClient`."""

    servers: list[ServerConfig] = []
    request_timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    enable_builtin_tools: bool = True
    browser_rate_limit: RateLimitConfig = BROWSER_RATE_LIMIT
    telemetry: TelemetrySettings | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalise_servers(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "mcpServers" in data:
            if "servers" in data:
                msg = "use either 'servers' or 'mcpServers', not both"
                raise ValueError(msg)
            data["servers"] = data.pop("mcpServers")

        servers = data.get("servers")
        if isinstance(servers, dict):
            entries = []
            for name, entry in servers.items():
                if not isinstance(entry, dict):
                    msg = f"server '{name}' must be a mapping"
                    raise ValueError(msg)
                entries.append({"name": name, **entry})
            data["servers"] = entries
        elif servers is None:
            data.pop("servers", None)
        return data

    @model_validator(mode="after")
    def _unique_names(self) -> HubConfig:
        seen: set[str] = set()
        for server in self.servers:
            if server.name in seen:
                msg = f"duplicate server name '{server.name}'"
                raise ValueError(msg)
            seen.add(server.name)
        return self

    def client_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for constructing an ``MCPClient``."""
        return {
            "request_timeout": self.request_timeout,
            "enable_builtin_tools": self.enable_builtin_tools,
            "browser_rate_limit": self.browser_rate_limit,
        }


class ConfigLoader:
    """Load and validate a config file into a :class:`HubConfig`."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> HubConfig:
        """Read the file, interpolate env vars, parse and validate.

        Environment variables in the form ``${VAR}`` or ``$VAR`` are expanded
        using :func:`os.path.expandvars` before parsing.

        Raises:
            ConfigValidationError: On read, parse or schema validation failures.
        """
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigValidationError(f"Cannot read {self._path}: {exc}") from exc

        expanded = os.path.expandvars(raw)

        data: Any
        if self._path.suffix == ".json":
            try:
                data = json.loads(expanded)
            except json.JSONDecodeError as exc:
                raise ConfigValidationError(f"JSON parse error: {exc}") from exc
        else:
            try:
                data = yaml.safe_load(expanded)
            except yaml.YAMLError as exc:
                raise ConfigValidationError(f"YAML parse error: {exc}") from exc

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigValidationError("Config file must contain a mapping")

        try:
            return HubConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigValidationError(str(exc)) from exc
