"""Tests for the client metrics collector."""
import threading
import time

from skyclient.metrics import MetricsCollector


def test_counter_increment():
    """Test counter increment functionality."""
    test_collector = MetricsCollector()

    test_collector.increment("test_counter")
    test_collector.increment("test_counter")
    test_collector.increment("test_counter", value=3)

    assert test_collector.get_metrics()["counters"]["test_counter"] == 5


def test_counter_with_labels():
    """Test counter with labels."""
    test_collector = MetricsCollector()

    test_collector.increment("requests", labels={"method": "GET", "path": "/tables"})
    test_collector.increment("requests", labels={"path": "/tables", "method": "POST"})
    test_collector.increment("requests", labels={"method": "GET", "path": "/tables"})

    counters = test_collector.get_metrics()["counters"]
    assert counters["requests{method=GET,path=/tables}"] == 2
    assert counters["requests{method=POST,path=/tables}"] == 1


def test_gauge_set_and_adjust():
    """Test gauge set and relative adjustment."""
    test_collector = MetricsCollector()

    test_collector.gauge("streams_open", 3)
    test_collector.adjust("streams_open", 1)
    test_collector.adjust("streams_open", -2)

    assert test_collector.get_metrics()["gauges"]["streams_open"] == 2


def test_histogram_recording():
    """Test histogram value recording."""
    test_collector = MetricsCollector()

    test_collector.histogram("latency", 10.5)
    test_collector.histogram("latency", 20.0)
    test_collector.histogram("latency", 15.5)

    stats = test_collector.get_metrics()["histograms"]["latency"]
    assert stats["count"] == 3
    assert stats["sum"] == 46.0
    assert stats["min"] == 10.5
    assert stats["max"] == 20.0
    assert abs(stats["avg"] - 15.33) < 0.01


def test_latency_recording():
    """Test latency recording from a monotonic start time."""
    test_collector = MetricsCollector()

    start_time = time.monotonic()
    time.sleep(0.01)
    test_collector.record_latency("request_latency_ms", start_time)

    stats = test_collector.get_metrics()["histograms"]["request_latency_ms"]
    assert stats["count"] == 1
    assert stats["min"] >= 10


def test_metrics_reset():
    """Test metrics reset functionality."""
    test_collector = MetricsCollector()

    test_collector.increment("counter", value=10)
    test_collector.gauge("gauge", 50.0)
    test_collector.histogram("hist", 100.0)

    test_collector.reset()

    metrics = test_collector.get_metrics()
    assert len(metrics["counters"]) == 0
    assert len(metrics["gauges"]) == 0
    assert len(metrics["histograms"]) == 0


def test_concurrent_increments():
    """Test that increments from many threads are not lost."""
    test_collector = MetricsCollector()

    def work():
        for _ in range(1000):
            test_collector.increment("hits")

    threads = [threading.Thread(target=work) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert test_collector.get_metrics()["counters"]["hits"] == 8000
