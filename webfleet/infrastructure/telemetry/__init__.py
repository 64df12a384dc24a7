"""
webfleet Telemetry Infrastructure

Architectural Intent:
- OpenTelemetry integration for provisioning runs
- Metrics and traces export, off unless an endpoint is configured
"""

from webfleet.infrastructure.telemetry.otel_exporter import (
    OTELExporter,
    OTELConfig,
    create_exporter,
)

__all__ = [
    "OTELExporter",
    "OTELConfig",
    "create_exporter",
]
