"""Shared fixtures: configs that launch the fake MCP server."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

from mcphub.protocols.mcp.models import ServerConfig

FAKE_SERVER = (Path(__file__).parent / "fixtures" / "fake_server.py").resolve()

MakeConfig = Callable[..., ServerConfig]


@pytest.fixture
def fake_server_config() -> MakeConfig:
    """Build a :class:`ServerConfig` running the fake server with extra flags."""

    def _make(name: str = "fake", *flags: str, **overrides: object) -> ServerConfig:
        return ServerConfig(
            name=name,
            command=sys.executable,
            args=[str(FAKE_SERVER), "--name", name, *flags],
            **overrides,  # type: ignore[arg-type]
        )

    return _make
