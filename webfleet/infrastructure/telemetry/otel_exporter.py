"""
OpenTelemetry Exporter

Architectural Intent:
- Exports apply/destroy telemetry to an OTLP-compatible backend
- One span per apply step, metrics for step durations and configuration runs
- Disabled (buffer only) unless an endpoint is configured

Security:
- Endpoint defaults to empty string (must be explicitly configured)
- Non-localhost http:// endpoints rejected unless insecure=True
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Optional
from urllib.parse import urlparse
import logging
import time
from datetime import datetime, UTC

logger = logging.getLogger(__name__)


@dataclass
class OTELConfig:
    endpoint: str = ""
    service_name: str = "webfleet"
    environment: str = "development"
    insecure: bool = False

    def __post_init__(self) -> None:
        if self.endpoint:
            parsed = urlparse(self.endpoint)
            is_localhost = parsed.hostname in ("localhost", "127.0.0.1", "::1")
            if parsed.scheme == "http" and not is_localhost and not self.insecure:
                raise ValueError(
                    f"Non-localhost HTTP endpoint '{self.endpoint}' requires "
                    "insecure=True or use https://."
                )


class OTELExporter:
    """
    OpenTelemetry exporter for provisioning runs.

    Metrics are always buffered locally (handy for tests and the CLI summary);
    they are also forwarded to the SDK once initialize() succeeded.
    """

    def __init__(self, config: OTELConfig):
        self.config = config
        self._initialized = False
        self._metrics_buffer: list[dict[str, Any]] = []
        self._tracer: Any = None
        self._meter: Any = None
        self._histograms: dict[str, Any] = {}
        self._counters: dict[str, Any] = {}

    @property
    def enabled(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """Initialize the OpenTelemetry SDK and OTLP exporters."""
        if not self.config.endpoint:
            logger.debug("OTEL endpoint not configured, telemetry disabled")
            return

        try:
            from opentelemetry import metrics, trace
            from opentelemetry.sdk.trace import TracerProvider
            from opentelemetry.sdk.trace.export import BatchSpanProcessor
            from opentelemetry.sdk.resources import Resource, SERVICE_NAME
            from opentelemetry.sdk.metrics import MeterProvider
            from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
                OTLPSpanExporter,
            )
            from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
                OTLPMetricExporter,
            )
        except ImportError:
            logger.warning(
                "OpenTelemetry SDK not installed (pip install webfleet[telemetry]), "
                "telemetry disabled"
            )
            return

        resource = Resource(
            attributes={
                SERVICE_NAME: self.config.service_name,
                "environment": self.config.environment,
            }
        )
        tracer_provider = TracerProvider(resource=resource)
        tracer_provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(endpoint=self.config.endpoint, insecure=self.config.insecure)
            )
        )
        trace.set_tracer_provider(tracer_provider)

        reader = PeriodicExportingMetricReader(
            OTLPMetricExporter(endpoint=self.config.endpoint, insecure=self.config.insecure)
        )
        metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))

        self._tracer = trace.get_tracer(__name__)
        self._meter = metrics.get_meter(__name__)
        self._initialized = True
        logger.info("OpenTelemetry export enabled: %s", self.config.endpoint)

    def _buffer(self, name: str, value: float, unit: str, attributes: dict[str, str]) -> None:
        self._metrics_buffer.append(
            {
                "name": name,
                "value": value,
                "unit": unit,
                "attributes": attributes,
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )

    def record_duration(
        self, name: str, duration_ms: float, attributes: Optional[dict[str, str]] = None
    ) -> None:
        attributes = attributes or {}
        self._buffer(name, duration_ms, "ms", attributes)
        if self._initialized:
            if name not in self._histograms:
                self._histograms[name] = self._meter.create_histogram(name, unit="ms")
            self._histograms[name].record(duration_ms, attributes=attributes)

    def increment(self, name: str, attributes: Optional[dict[str, str]] = None) -> None:
        attributes = attributes or {}
        self._buffer(name, 1.0, "", attributes)
        if self._initialized:
            if name not in self._counters:
                self._counters[name] = self._meter.create_counter(name)
            self._counters[name].add(1, attributes=attributes)

    def record_configuration_run(self, environment: str, status: str) -> None:
        self.increment(
            "webfleet.configuration.runs",
            {"environment": environment, "status": status},
        )

    @contextmanager
    def step(self, name: str, environment: str) -> Iterator[None]:
        """Time an apply step and, when enabled, wrap it in a span."""
        attributes = {"step": name, "environment": environment}
        span = None
        if self._initialized:
            span = self._tracer.start_span(f"apply.{name}", attributes=attributes)
        started = time.monotonic()
        success = False
        try:
            yield
            success = True
        finally:
            elapsed = (time.monotonic() - started) * 1000
            self.record_duration(
                "webfleet.apply.step_duration_ms",
                elapsed,
                {**attributes, "success": str(success)},
            )
            if span is not None:
                span.end()

    def shutdown(self) -> None:
        """Flush SDK providers; a no-op when telemetry is disabled."""
        if not self._initialized:
            return
        from opentelemetry import metrics, trace

        for provider in (trace.get_tracer_provider(), metrics.get_meter_provider()):
            shutdown = getattr(provider, "shutdown", None)
            if shutdown is not None:
                shutdown()
        self._initialized = False


def create_exporter(
    endpoint: Optional[str] = None,
    environment: str = "development",
    insecure: bool = False,
) -> OTELExporter:
    """Factory function to create and initialize an exporter."""
    exporter = OTELExporter(
        OTELConfig(endpoint=endpoint or "", environment=environment, insecure=insecure)
    )
    exporter.initialize()
    return exporter
