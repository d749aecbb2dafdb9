"""
Prometheus Metrics for the Synthesis Gateway.

Metrics Exposed:
    tts_gateway_requests_total{backend,status}      - finished requests
    tts_gateway_attempts_total{backend,outcome}     - backend attempts by outcome
    tts_gateway_request_duration_seconds{backend}   - end-to-end latency
    tts_gateway_retry_waits_total{backend}          - inter-attempt waits taken
    tts_gateway_audio_bytes_total                   - bytes persisted to disk
    tts_gateway_stream_chunks_total{backend}        - chunks forwarded to consumers

Usage:
    from tts_gateway.core.metrics import metrics

    metrics.record_attempt("qwen", "timeout")
    metrics.record_request("qwen", "success", duration=1.4, audio_bytes=48000)
    content, content_type = metrics.get_metrics_response()

A private CollectorRegistry keeps these series apart from anything else the
host process registers, and lets tests build throwaway instances.
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


class GatewayMetrics:
    """Counters and histograms for synthesis requests and their attempts."""

    def __init__(self, registry: CollectorRegistry | None = None):
        self._registry = registry or CollectorRegistry()

        self._requests_total = Counter(
            "tts_gateway_requests_total",
            "Synthesis requests by backend and final status",
            ["backend", "status"],
            registry=self._registry,
        )
        self._attempts_total = Counter(
            "tts_gateway_attempts_total",
            "Backend attempts by outcome",
            ["backend", "outcome"],
            registry=self._registry,
        )
        self._request_duration = Histogram(
            "tts_gateway_request_duration_seconds",
            "End-to-end synthesis duration in seconds",
            ["backend"],
            buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 20.0, 30.0),
            registry=self._registry,
        )
        self._retry_waits = Counter(
            "tts_gateway_retry_waits_total",
            "Inter-attempt waits taken",
            ["backend"],
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "tts_gateway_audio_bytes_total",
            "Audio bytes persisted to disk",
            registry=self._registry,
        )
        self._stream_chunks = Counter(
            "tts_gateway_stream_chunks_total",
            "Audio chunks forwarded to stream consumers",
            ["backend"],
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_request(self, backend: str, status: str, duration: float, audio_bytes: int = 0) -> None:
        """
        Record a finished request.

        Args:
            backend: Backend name ("sambert", "qwen", "cosyvoice").
            status: "success", "unavailable", "cancelled" or "error".
            duration: Wall time in seconds.
            audio_bytes: Size of the persisted file, if any.
        """
        self._requests_total.labels(backend=backend, status=status).inc()
        if duration >= 0:
            self._request_duration.labels(backend=backend).observe(duration)
        if audio_bytes > 0:
            self._audio_bytes_total.inc(audio_bytes)

    def record_attempt(self, backend: str, outcome: str) -> None:
        self._attempts_total.labels(backend=backend, outcome=outcome).inc()

    def record_retry_wait(self, backend: str) -> None:
        self._retry_waits.labels(backend=backend).inc()

    def record_stream_chunk(self, backend: str) -> None:
        self._stream_chunks.labels(backend=backend).inc()

    def get_sample(self, name: str, labels: dict | None = None) -> float:
        """Current value of one series, 0.0 when it has not been touched."""
        value = self._registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0

    def get_metrics_response(self) -> tuple[bytes, str]:
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Process-wide instance used by the service and the /metrics route
metrics = GatewayMetrics()
