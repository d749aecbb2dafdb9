"""Tests for the Prometheus metrics collector."""
from __future__ import annotations

from prometheus_client import CollectorRegistry

from tts_gateway.core.metrics import GatewayMetrics, metrics


class TestGatewayMetrics:
    """Test GatewayMetrics against a private registry."""

    def test_request_counter(self):
        m = GatewayMetrics()
        m.record_request("qwen", "success", duration=1.2, audio_bytes=4800)
        m.record_request("qwen", "unavailable", duration=3.0)

        assert m.get_sample("tts_gateway_requests_total", {"backend": "qwen", "status": "success"}) == 1.0
        assert m.get_sample("tts_gateway_requests_total", {"backend": "qwen", "status": "unavailable"}) == 1.0
        assert m.get_sample("tts_gateway_audio_bytes_total") == 4800.0
        assert m.get_sample("tts_gateway_request_duration_seconds_count", {"backend": "qwen"}) == 2.0

    def test_attempts_waits_and_chunks(self):
        m = GatewayMetrics()
        m.record_attempt("sambert", "timeout")
        m.record_attempt("sambert", "timeout")
        m.record_retry_wait("sambert")
        m.record_stream_chunk("cosyvoice")

        assert m.get_sample("tts_gateway_attempts_total", {"backend": "sambert", "outcome": "timeout"}) == 2.0
        assert m.get_sample("tts_gateway_retry_waits_total", {"backend": "sambert"}) == 1.0
        assert m.get_sample("tts_gateway_stream_chunks_total", {"backend": "cosyvoice"}) == 1.0

    def test_untouched_series_is_zero(self):
        assert GatewayMetrics().get_sample("tts_gateway_attempts_total", {"backend": "x", "outcome": "y"}) == 0.0

    def test_instances_are_isolated(self):
        a, b = GatewayMetrics(), GatewayMetrics()
        a.record_retry_wait("qwen")
        assert b.get_sample("tts_gateway_retry_waits_total", {"backend": "qwen"}) == 0.0

    def test_explicit_registry(self):
        registry = CollectorRegistry()
        m = GatewayMetrics(registry)
        assert m.registry is registry


class TestMetricsResponse:
    """Test metrics response format."""

    def test_exposition_format(self):
        m = GatewayMetrics()
        m.record_request("cosyvoice", "success", duration=0.4)
        content, content_type = m.get_metrics_response()

        assert isinstance(content, bytes)
        assert content_type.startswith("text/plain")
        text = content.decode("utf-8")
        assert "# TYPE tts_gateway_requests_total counter" in text
        assert 'tts_gateway_requests_total{backend="cosyvoice",status="success"} 1.0' in text

    def test_process_wide_instance(self):
        content, _ = metrics.get_metrics_response()
        assert b"tts_gateway_attempts_total" in content
