"""
unillm - Prometheus Metrics

Stream metrics collected with the Prometheus client library.

Metrics exposed:
- unillm_streams_total: Counter of finished streams by provider and status
- unillm_stream_deltas_total: Counter of forwarded deltas by kind
  (content, reasoning)
- unillm_decode_failures_total: Counter of malformed stream lines dropped
- unillm_stream_duration_seconds: Histogram of stream wall time

Usage:
    from unillm.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.record_stream(provider="ollama", status="completed", duration_seconds=2.4)
"""

from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    CollectorRegistry,
    REGISTRY,
)


class StreamMetrics:
    """
    Collector for streaming engine metrics.

    Pass a fresh ``CollectorRegistry`` in tests; the module-level
    ``get_metrics()`` instance uses the default registry.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        self.streams_total = Counter(
            "unillm_streams_total",
            "Total number of normalized streams",
            labelnames=["provider", "status"],
            registry=registry,
        )

        self.stream_deltas = Counter(
            "unillm_stream_deltas_total",
            "Reasoning and content deltas forwarded downstream",
            labelnames=["provider", "kind"],
            registry=registry,
        )

        self.decode_failures = Counter(
            "unillm_decode_failures_total",
            "Malformed stream lines that were dropped",
            labelnames=["provider"],
            registry=registry,
        )

        # Model streams range from sub-second to several minutes
        self.stream_duration = Histogram(
            "unillm_stream_duration_seconds",
            "Stream duration in seconds",
            labelnames=["provider"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
            registry=registry,
        )

    def record_stream(
        self,
        provider: str,
        status: str,
        duration_seconds: float
    ):
        """Record a finished stream (completed, error, cancelled)."""
        self.streams_total.labels(provider=provider or "unknown", status=status).inc()
        self.stream_duration.labels(provider=provider or "unknown").observe(duration_seconds)

    def record_delta(self, provider: str, kind: str):
        self.stream_deltas.labels(provider=provider or "unknown", kind=kind).inc()

    def record_decode_failure(self, provider: str):
        self.decode_failures.labels(provider=provider or "unknown").inc()


_metrics: Optional[StreamMetrics] = None


def get_metrics() -> StreamMetrics:
    """Get the process-wide metrics collector (default registry)."""
    global _metrics
    if _metrics is None:
        _metrics = StreamMetrics()
    return _metrics
