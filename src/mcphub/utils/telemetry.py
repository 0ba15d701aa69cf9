"""OpenTelemetry tracing for mcphub.

Modules grab a tracer once and wrap protocol work in spans::

    _tracer = get_tracer(__name__)

    with _tracer.start_as_current_span("mcp.request") as span:
        span.set_attribute(ATTR_METHOD, "tools/list")

Only ``opentelemetry-api`` is required; until :func:`configure_telemetry`
installs an SDK provider (``pip install mcphub[otel]``) every span is a no-op.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from opentelemetry import trace

if TYPE_CHECKING:
    from mcphub.config import TelemetrySettings

logger = logging.getLogger(__name__)

# Span attribute keys
ATTR_SERVER = "mcphub.server"
ATTR_METHOD = "mcphub.rpc.method"
ATTR_REQUEST_ID = "mcphub.rpc.request_id"
ATTR_ERROR_CODE = "mcphub.rpc.error_code"
ATTR_TOOL_NAME = "mcphub.tool.name"
ATTR_TOOL_ROUTE = "mcphub.tool.route"
ATTR_PID = "mcphub.process.pid"
ATTR_RATE_CATEGORY = "mcphub.rate_limit.category"

_INSTRUMENTATION_NAME = "mcphub"
_INSTALL_HINT = "Install it with: pip install mcphub[otel]"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Tracer for *name*; a no-op tracer while no SDK provider is installed."""
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(settings: TelemetrySettings) -> bool:
    """Install an SDK tracer provider described by *settings*.

    Spans go to stdout when ``export_to_console`` is set (one span at a
    time, so CLI output stays ordered) and to ``otlp_endpoint`` over gRPC in
    batches. Returns ``False`` without touching the global provider when
    telemetry is disabled.

    Raises:
        ImportError: ``opentelemetry-sdk`` or, for OTLP, the exporter
            package is missing.
    """
    if not settings.enabled:
        return False

    try:
        from opentelemetry.sdk.resources import Resource  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace import TracerProvider  # pyright: ignore[reportMissingImports]
        from opentelemetry.sdk.trace.export import (  # pyright: ignore[reportMissingImports]
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
    except ImportError as exc:
        msg = f"opentelemetry-sdk is required for configure_telemetry(). {_INSTALL_HINT}"
        raise ImportError(msg) from exc

    processors: list[Any] = []
    if settings.export_to_console:
        processors.append(SimpleSpanProcessor(ConsoleSpanExporter()))
    if settings.otlp_endpoint:
        processors.append(BatchSpanProcessor(_otlp_exporter(settings.otlp_endpoint)))

    provider = TracerProvider(resource=Resource.create({"service.name": settings.service_name}))
    for processor in processors:
        provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)
    logger.info(
        "Telemetry enabled for %s (%d exporter(s))", settings.service_name, len(processors)
    )
    return True


def _otlp_exporter(endpoint: str) -> Any:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (  # pyright: ignore[reportMissingImports]
            OTLPSpanExporter,
        )
    except ImportError as exc:
        msg = f"opentelemetry-exporter-otlp is required for OTLP export. {_INSTALL_HINT}"
        raise ImportError(msg) from exc
    return OTLPSpanExporter(endpoint=endpoint)
