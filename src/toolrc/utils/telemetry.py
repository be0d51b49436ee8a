"""OpenTelemetry tracing helpers for toolrc.

Only the OpenTelemetry *API* is a hard dependency.  Until
:func:`configure_telemetry` installs an SDK provider, every tracer handed out
by :func:`get_tracer` is a no-op, so instrumented code pays nothing.

Usage::

    from toolrc.utils.telemetry import get_tracer

    _tracer = get_tracer(__name__)

    with _tracer.start_as_current_span("toolrc.sandbox.evaluate") as span:
        span.set_attribute(ATTR_CALL_ID, call_id)

Real export needs the ``otel`` extra: ``pip install toolrc[otel]``.
"""

from __future__ import annotations

from typing import Any

from opentelemetry import trace

# ---------------------------------------------------------------------------
# Span attribute keys
# ---------------------------------------------------------------------------

ATTR_CALL_ID = "toolrc.call_id"
ATTR_REQUEST_ID = "toolrc.request_id"
ATTR_SUCCESS = "toolrc.success"
ATTR_WORKER_PID = "toolrc.worker.pid"
ATTR_ERROR = "toolrc.error"

_INSTRUMENTATION_NAME = "toolrc"


def get_tracer(name: str | None = None) -> trace.Tracer:
    """Return the tracer for *name* (no-op until telemetry is configured)."""
    return trace.get_tracer(name or _INSTRUMENTATION_NAME)


def configure_telemetry(
    *,
    service_name: str = "toolrc",
    export_to_console: bool = False,
    otlp_endpoint: str | None = None,
) -> None:
    """Install an SDK tracer provider for *service_name*.

    Console export writes to stderr, since ``toolrc serve`` owns stdout.  With
    *otlp_endpoint* set, spans are batch-exported over OTLP/gRPC.  Raises
    :class:`ImportError` when the ``otel`` extra is not installed.
    """
    try:
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor
    except ImportError as exc:
        msg = (
            "opentelemetry-sdk is required for configure_telemetry(). "
            "Install it with: pip install toolrc[otel]"
        )
        raise ImportError(msg) from exc

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

    if export_to_console:
        _add_console_exporter(provider, SimpleSpanProcessor)

    if otlp_endpoint:
        _add_otlp_exporter(provider, BatchSpanProcessor, otlp_endpoint)

    trace.set_tracer_provider(provider)


def _add_console_exporter(provider: Any, processor_cls: Any) -> None:
    import sys

    from opentelemetry.sdk.trace.export import ConsoleSpanExporter

    provider.add_span_processor(processor_cls(ConsoleSpanExporter(out=sys.stderr)))


def _add_otlp_exporter(provider: Any, processor_cls: Any, endpoint: str) -> None:
    try:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    except ImportError as exc:
        msg = (
            "opentelemetry-exporter-otlp is required for OTLP export. "
            "Install it with: pip install toolrc[otel]"
        )
        raise ImportError(msg) from exc

    provider.add_span_processor(processor_cls(OTLPSpanExporter(endpoint=endpoint)))
