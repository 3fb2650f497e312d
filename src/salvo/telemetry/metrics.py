"""Meters plus cached counters and histograms for game metrics."""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping

from opentelemetry import metrics as otel_metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.metrics import Counter, Histogram, Meter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader

from .tracer import service_resource

if TYPE_CHECKING:  # pragma: no cover
    from .config import TelemetryConfig

EXPORT_INTERVAL_MILLIS = 5000

_METER_PROVIDER: MeterProvider | None = None
_METERS: dict[str, Meter] = {}
_INSTRUMENTS: dict[str, Counter] = {}
_HISTOGRAMS: dict[str, Histogram] = {}

MetricAttributes = Mapping[str, str | bool | int | float]


def get_meter(name: str = "salvo") -> Meter:
    meter = _METERS.get(name)
    if meter is None:
        meter = otel_metrics.get_meter(name, meter_provider=_METER_PROVIDER)
        _METERS[name] = meter
    return meter


def init_metrics(config: TelemetryConfig) -> Meter:
    global _METER_PROVIDER

    readers = []
    if config.otlp_metrics_endpoint:
        exporter = OTLPMetricExporter(endpoint=config.otlp_metrics_endpoint, insecure=True)
        readers.append(
            PeriodicExportingMetricReader(exporter, export_interval_millis=EXPORT_INTERVAL_MILLIS)
        )

    provider = MeterProvider(resource=service_resource(config), metric_readers=readers)
    otel_metrics.set_meter_provider(provider)

    _METER_PROVIDER = provider
    _METERS.clear()
    _INSTRUMENTS.clear()
    _HISTOGRAMS.clear()
    return get_meter(config.service_name)


def shutdown_metrics() -> None:
    global _METER_PROVIDER
    if _METER_PROVIDER is None:
        return
    _METER_PROVIDER.shutdown()
    _METER_PROVIDER = None
    _METERS.clear()
    _INSTRUMENTS.clear()
    _HISTOGRAMS.clear()


def record_game_metric(name: str, value: float, attrs: MetricAttributes | None = None) -> None:
    """Add ``value`` to the counter ``name`` (``salvo_shots_total`` and friends)."""
    instrument = _INSTRUMENTS.get(name)
    if instrument is None:
        instrument = get_meter().create_counter(name)
        _INSTRUMENTS[name] = instrument
    instrument.add(value, attributes=attrs or {})


def record_game_distribution(
    name: str, value: float, attrs: MetricAttributes | None = None
) -> None:
    """Record a sample (shots per game, turn latency) on a named histogram."""
    histogram = _HISTOGRAMS.get(name)
    if histogram is None:
        histogram = get_meter().create_histogram(name)
        _HISTOGRAMS[name] = histogram
    histogram.record(value, attributes=attrs or {})
