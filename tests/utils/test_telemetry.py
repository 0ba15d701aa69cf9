"""Tests for OpenTelemetry tracing helpers."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from opentelemetry import trace

from mcphub.config import TelemetrySettings
from mcphub.utils import telemetry
from mcphub.utils.telemetry import _INSTRUMENTATION_NAME, configure_telemetry, get_tracer


class TestGetTracer:
    def test_returns_tracer(self) -> None:
        tracer = get_tracer("test.module")
        assert isinstance(tracer, trace.Tracer)

    def test_default_name(self) -> None:
        tracer = get_tracer()
        assert isinstance(tracer, trace.Tracer)

    def test_noop_span(self) -> None:
        """Without an SDK configured, spans accept attributes and do nothing."""
        tracer = get_tracer("test.noop")
        with tracer.start_as_current_span("mcp.request") as span:
            span.set_attribute(telemetry.ATTR_METHOD, "tools/list")


class TestConfigureTelemetry:
    def test_disabled_is_noop(self) -> None:
        with patch.object(trace, "set_tracer_provider") as set_provider:
            assert configure_telemetry(TelemetrySettings()) is False
        set_provider.assert_not_called()

    def test_raises_without_sdk(self) -> None:
        with patch.dict("sys.modules", {"opentelemetry.sdk.resources": None}):
            with pytest.raises(ImportError, match="opentelemetry-sdk"):
                configure_telemetry(TelemetrySettings(enabled=True))

    def test_otlp_raises_without_exporter(self) -> None:
        pytest.importorskip("opentelemetry.sdk.trace")
        settings = TelemetrySettings(enabled=True, otlp_endpoint="http://localhost:4317")

        with patch.dict(
            "sys.modules",
            {"opentelemetry.exporter.otlp.proto.grpc.trace_exporter": None},
        ):
            with pytest.raises(ImportError, match="opentelemetry-exporter-otlp"):
                configure_telemetry(settings)

    def test_installs_provider(self) -> None:
        sdk_trace = pytest.importorskip("opentelemetry.sdk.trace")
        settings = TelemetrySettings(enabled=True, service_name="hub-test", export_to_console=True)

        with patch.object(trace, "set_tracer_provider") as set_provider:
            assert configure_telemetry(settings) is True

        [provider] = set_provider.call_args.args
        assert isinstance(provider, sdk_trace.TracerProvider)
        assert provider.resource.attributes["service.name"] == "hub-test"


class TestAttributeConstants:
    @pytest.mark.parametrize(
        "name",
        [
            "ATTR_SERVER",
            "ATTR_METHOD",
            "ATTR_REQUEST_ID",
            "ATTR_ERROR_CODE",
            "ATTR_TOOL_NAME",
            "ATTR_TOOL_ROUTE",
            "ATTR_PID",
            "ATTR_RATE_CATEGORY",
        ],
    )
    def test_namespaced(self, name: str) -> None:
        assert getattr(telemetry, name).startswith("mcphub.")

    def test_instrumentation_name(self) -> None:
        assert _INSTRUMENTATION_NAME == "mcphub"
