"""In-process client metrics: request counts, latency, and streamed volume."""
import threading
import time
from typing import Dict, List
from collections import defaultdict
import structlog

log = structlog.get_logger()


class MetricsCollector:
    """
    Collects and aggregates client-side metrics.

    Tracks:
    - Requests sent and failed, by method
    - Request latency
    - Chunks and bytes written by event streams
    - Open streams

    Transports may be shared between threads, so updates take a lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._gauges: Dict[str, float] = defaultdict(float)
        self._histograms: Dict[str, List[float]] = defaultdict(list)
        self._start_time = time.time()

    def increment(self, metric: str, value: int = 1, labels: Dict[str, str] | None = None):
        """
        Increment a counter metric.

        Args:
            metric: Metric name
            value: Amount to increment by
            labels: Optional labels for the metric
        """
        key = self._make_key(metric, labels)
        with self._lock:
            self._counters[key] += value

    def gauge(self, metric: str, value: float, labels: Dict[str, str] | None = None):
        """Set a gauge metric."""
        key = self._make_key(metric, labels)
        with self._lock:
            self._gauges[key] = value

    def adjust(self, metric: str, delta: float, labels: Dict[str, str] | None = None):
        """Move a gauge up or down by ``delta``."""
        key = self._make_key(metric, labels)
        with self._lock:
            self._gauges[key] += delta

    def histogram(self, metric: str, value: float, labels: Dict[str, str] | None = None):
        """Record a histogram value."""
        key = self._make_key(metric, labels)
        with self._lock:
            self._histograms[key].append(value)

    def record_latency(self, metric: str, start_time: float, labels: Dict[str, str] | None = None):
        """
        Record latency in milliseconds.

        Args:
            metric: Metric name
            start_time: Start timestamp from ``time.monotonic()``
            labels: Optional labels for the metric
        """
        latency_ms = (time.monotonic() - start_time) * 1000
        self.histogram(metric, latency_ms, labels)

    def get_metrics(self) -> Dict:
        """
        Get all collected metrics.

        Returns:
            Dictionary with uptime, counters, gauges and histogram summaries
        """
        with self._lock:
            counters = dict(self._counters)
            gauges = dict(self._gauges)
            histograms = {key: list(values) for key, values in self._histograms.items()}
            uptime = time.time() - self._start_time

        histogram_stats = {}
        for key, values in histograms.items():
            if values:
                histogram_stats[key] = {
                    "count": len(values),
                    "sum": sum(values),
                    "avg": sum(values) / len(values),
                    "min": min(values),
                    "max": max(values),
                }

        return {
            "uptime_seconds": uptime,
            "counters": counters,
            "gauges": gauges,
            "histograms": histogram_stats,
        }

    def reset(self):
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()
            self._start_time = time.time()
        log.debug("metrics.reset")

    @staticmethod
    def _make_key(metric: str, labels: Dict[str, str] | None) -> str:
        if not labels:
            return metric

        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{metric}{{{label_str}}}"


# Global metrics collector instance
collector = MetricsCollector()


# Common metric names
REQUESTS_TOTAL = "requests_total"
REQUEST_LATENCY_MS = "request_latency_ms"
ERRORS_TOTAL = "errors_total"
STREAMS_OPEN = "streams_open"
STREAM_CHUNKS_TOTAL = "stream_chunks_total"
STREAM_BYTES_TOTAL = "stream_bytes_total"
