"""Tests for ``mcphub tools`` CLI commands."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, MagicMock, patch

from click.testing import CliRunner

from mcphub.cli import main
from mcphub.protocols.errors import ToolNotFoundError
from mcphub.protocols.mcp.models import Tool, ToolCallResult

if TYPE_CHECKING:
    from pathlib import Path

_CONFIG = "servers:\n  fs:\n    command: fs-mcp\n"


def _config(tmp_path: Path) -> str:
    f = tmp_path / "hub.yaml"
    f.write_text(_CONFIG)
    return str(f)


def _client(mock_client_cls: MagicMock, **methods: Any) -> MagicMock:
    mock_instance = mock_client_cls.return_value
    mock_instance.__aenter__ = AsyncMock(return_value=mock_instance)
    mock_instance.__aexit__ = AsyncMock(return_value=False)
    mock_instance.initialize = AsyncMock()
    for name, value in methods.items():
        setattr(mock_instance, name, value)
    return mock_instance


class TestToolsList:
    def test_list_tools(self, tmp_path: Path) -> None:
        tools = [Tool(name="fs/read", description="Read a file")]
        with patch("mcphub.protocols.mcp.client.MCPClient") as mock_client_cls:
            client = _client(mock_client_cls, list_tools=MagicMock(return_value=tools))

            runner = CliRunner()
            result = runner.invoke(main, ["tools", "list", "-c", _config(tmp_path)])

            assert result.exit_code == 0
            assert "fs/read" in result.output
            [configs] = client.initialize.await_args.args
            assert [config.name for config in configs] == ["fs"]

    def test_list_json(self, tmp_path: Path) -> None:
        tools = [Tool(name="fs/read")]
        with patch("mcphub.protocols.mcp.client.MCPClient") as mock_client_cls:
            _client(mock_client_cls, list_tools=MagicMock(return_value=tools))

            runner = CliRunner()
            result = runner.invoke(main, ["tools", "list", "-c", _config(tmp_path), "--json"])

            assert result.exit_code == 0
            assert json.loads(result.output)[0]["name"] == "fs/read"

    def test_list_empty(self, tmp_path: Path) -> None:
        with patch("mcphub.protocols.mcp.client.MCPClient") as mock_client_cls:
            _client(mock_client_cls, list_tools=MagicMock(return_value=[]))

            runner = CliRunner()
            result = runner.invoke(main, ["tools", "list", "-c", _config(tmp_path)])

            assert result.exit_code == 0
            assert "No tools discovered" in result.output

    def test_no_builtin_flag(self, tmp_path: Path) -> None:
        with patch("mcphub.protocols.mcp.client.MCPClient") as mock_client_cls:
            _client(mock_client_cls, list_tools=MagicMock(return_value=[]))

            runner = CliRunner()
            runner.invoke(main, ["tools", "list", "-c", _config(tmp_path), "--no-builtin"])

            assert mock_client_cls.call_args.kwargs["enable_builtin_tools"] is False

    def test_config_from_env(self, tmp_path: Path) -> None:
        with patch("mcphub.protocols.mcp.client.MCPClient") as mock_client_cls:
            _client(mock_client_cls, list_tools=MagicMock(return_value=[]))

            runner = CliRunner(env={"MCPHUB_CONFIG": _config(tmp_path)})
            result = runner.invoke(main, ["tools", "list"])

            assert result.exit_code == 0

    def test_client_error(self, tmp_path: Path) -> None:
        with patch("mcphub.protocols.mcp.client.MCPClient") as mock_client_cls:
            mock_instance = mock_client_cls.return_value
            mock_instance.__aenter__ = AsyncMock(side_effect=RuntimeError("fail"))
            mock_instance.__aexit__ = AsyncMock(return_value=False)

            runner = CliRunner()
            result = runner.invoke(main, ["tools", "list", "-c", _config(tmp_path)])

            assert result.exit_code == 1
            assert "Error: fail" in result.output


class TestToolsCall:
    def test_call_tool(self, tmp_path: Path) -> None:
        with patch("mcphub.protocols.mcp.client.MCPClient") as mock_client_cls:
            client = _client(
                mock_client_cls,
                call_tool=AsyncMock(return_value=ToolCallResult.from_text("hello")),
            )

            runner = CliRunner()
            result = runner.invoke(
                main,
                ["tools", "call", "fs/read", "--args", '{"path": "a.txt"}', "-c", _config(tmp_path)],
            )

            assert result.exit_code == 0
            assert "hello" in result.output
            client.call_tool.assert_awaited_once_with("fs/read", {"path": "a.txt"})

    def test_tool_error_result(self, tmp_path: Path) -> None:
        failed = ToolCallResult.model_validate(
            {"content": [{"type": "text", "text": "boom"}], "isError": True}
        )
        with patch("mcphub.protocols.mcp.client.MCPClient") as mock_client_cls:
            _client(mock_client_cls, call_tool=AsyncMock(return_value=failed))

            runner = CliRunner()
            result = runner.invoke(main, ["tools", "call", "fs/x", "-c", _config(tmp_path)])

            assert result.exit_code == 2
            assert "boom" in result.output

    def test_unknown_tool(self, tmp_path: Path) -> None:
        with patch("mcphub.protocols.mcp.client.MCPClient") as mock_client_cls:
            _client(mock_client_cls, call_tool=AsyncMock(side_effect=ToolNotFoundError("nope")))

            runner = CliRunner()
            result = runner.invoke(main, ["tools", "call", "nope", "-c", _config(tmp_path)])

            assert result.exit_code == 1
            assert "nope" in result.output

    def test_bad_args(self, tmp_path: Path) -> None:
        runner = CliRunner()
        result = runner.invoke(
            main, ["tools", "call", "fs/read", "--args", "[1, 2]", "-c", _config(tmp_path)]
        )

        assert result.exit_code == 2
        assert "JSON object" in result.output

    def test_config_error(self, tmp_path: Path) -> None:
        f = tmp_path / "bad.yaml"
        f.write_text("- not a mapping\n")

        runner = CliRunner()
        result = runner.invoke(main, ["tools", "list", "-c", str(f)])

        assert result.exit_code == 1
        assert "Config error" in result.output


class TestTelemetrySetup:
    _TELEMETRY_CONFIG = _CONFIG + "telemetry:\n  enabled: true\n  service_name: hub-cli\n"

    def _write(self, tmp_path: Path) -> str:
        f = tmp_path / "hub.yaml"
        f.write_text(self._TELEMETRY_CONFIG)
        return str(f)

    def test_settings_passed_through(self, tmp_path: Path) -> None:
        with (
            patch("mcphub.protocols.mcp.client.MCPClient") as mock_client_cls,
            patch("mcphub.utils.telemetry.configure_telemetry") as configure,
        ):
            _client(mock_client_cls, list_tools=MagicMock(return_value=[]))

            result = CliRunner().invoke(main, ["tools", "list", "-c", self._write(tmp_path)])

            assert result.exit_code == 0
            [settings] = configure.call_args.args
            assert settings.enabled
            assert settings.service_name == "hub-cli"

    def test_missing_sdk_exits(self, tmp_path: Path) -> None:
        with patch(
            "mcphub.utils.telemetry.configure_telemetry",
            side_effect=ImportError("opentelemetry-sdk is required"),
        ):
            result = CliRunner().invoke(main, ["tools", "list", "-c", self._write(tmp_path)])

        assert result.exit_code == 1
        assert "Telemetry error" in result.output
