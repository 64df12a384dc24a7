"""Tests for the OpenTelemetry exporter (buffer mode, no SDK needed)."""

import pytest

from webfleet.infrastructure.telemetry.otel_exporter import (
    OTELConfig,
    OTELExporter,
    create_exporter,
)


class TestOTELConfig:
    def test_empty_endpoint_ok(self):
        assert OTELConfig().endpoint == ""

    def test_remote_http_rejected(self):
        with pytest.raises(ValueError, match="insecure=True"):
            OTELConfig(endpoint="http://collector.example.com:4317")

    def test_remote_http_with_insecure(self):
        OTELConfig(endpoint="http://collector.example.com:4317", insecure=True)

    def test_localhost_http_ok(self):
        OTELConfig(endpoint="http://localhost:4317")

    def test_https_ok(self):
        OTELConfig(endpoint="https://collector.example.com:4317")


class TestOTELExporter:
    def test_disabled_without_endpoint(self):
        exporter = create_exporter(environment="dev")
        assert not exporter.enabled
        exporter.shutdown()

    def test_step_buffers_duration(self):
        exporter = OTELExporter(OTELConfig())
        with exporter.step("network", "dev"):
            pass
        (metric,) = exporter._metrics_buffer
        assert metric["name"] == "webfleet.apply.step_duration_ms"
        assert metric["unit"] == "ms"
        assert metric["value"] >= 0
        assert metric["attributes"] == {
            "step": "network",
            "environment": "dev",
            "success": "True",
        }

    def test_step_records_failure(self):
        exporter = OTELExporter(OTELConfig())
        with pytest.raises(RuntimeError):
            with exporter.step("configure", "dev"):
                raise RuntimeError("ssh down")
        assert exporter._metrics_buffer[0]["attributes"]["success"] == "False"

    def test_configuration_run_counter(self):
        exporter = OTELExporter(OTELConfig())
        exporter.record_configuration_run("dev", "skipped")
        (metric,) = exporter._metrics_buffer
        assert metric["name"] == "webfleet.configuration.runs"
        assert metric["value"] == 1.0
        assert metric["attributes"] == {"environment": "dev", "status": "skipped"}
