"""Named tracers for engine, AI and evaluation spans.

Modules grab their tracer at import time, before ``init_tracing`` may have
run. Tracers handed out before a provider is installed are OpenTelemetry
proxies and start exporting once ``init_tracing`` sets the global provider.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.trace import Tracer

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .config import TelemetryConfig

_TRACERS: dict[str, Tracer] = {}
_TRACER_PROVIDER: TracerProvider | None = None


def service_resource(config: TelemetryConfig) -> Resource:
    """Resource shared by the trace, metric and log providers."""
    return Resource.create(
        {
            "service.name": config.service_name,
            "service.namespace": config.service_namespace,
            **config.resource_attributes,
        }
    )


def get_tracer(name: str = "salvo") -> Tracer:
    """Return the tracer for ``name`` (e.g. ``salvo.engine.board``), cached per name."""
    tracer = _TRACERS.get(name)
    if tracer is None:
        tracer = trace.get_tracer(name, tracer_provider=_TRACER_PROVIDER)
        _TRACERS[name] = tracer
    return tracer


def init_tracing(config: TelemetryConfig) -> Tracer:
    """Install a TracerProvider exporting over OTLP, or to the console without an endpoint."""
    global _TRACER_PROVIDER

    provider = TracerProvider(resource=service_resource(config))
    if config.otlp_traces_endpoint:
        exporter = OTLPSpanExporter(endpoint=config.otlp_traces_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))
    else:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    _TRACER_PROVIDER = provider
    _TRACERS.clear()
    return get_tracer(config.service_name)


def shutdown_tracing() -> None:
    """Flush batched spans; the CLI tools call this before exiting."""
    global _TRACER_PROVIDER
    if _TRACER_PROVIDER is None:
        return
    _TRACER_PROVIDER.shutdown()
    _TRACER_PROVIDER = None
    _TRACERS.clear()
