"""
Tests for the metrics system.
"""
import pytest

from positron_bloom.metrics import (
    Counter, Gauge, Histogram, MetricsCollector, get_metrics, reset_metrics
)


class TestPrimitives:
    """Test cases for counters, gauges and histograms."""

    def test_counter(self):
        """Test incrementing and resetting a counter."""
        counter = Counter("test", "Test counter")

        counter.increment()
        counter.increment(5)
        assert counter.get() == 6

        counter.reset()
        assert counter.get() == 0

    def test_gauge(self):
        """Test setting a gauge."""
        gauge = Gauge("test")
        gauge.set(42.5)

        assert gauge.get() == 42.5

    def test_histogram(self):
        """Test histogram summaries and percentiles."""
        histogram = Histogram("test", max_size=100)
        assert histogram.get_summary() is None
        assert histogram.get_percentile(0.5) is None

        for value in range(1, 11):
            histogram.observe(float(value))

        summary = histogram.get_summary()
        assert summary.count == 10
        assert summary.min == 1.0
        assert summary.max == 10.0
        assert summary.mean == 5.5
        assert histogram.get_percentile(0.5) == 6.0

    def test_histogram_window(self):
        """Test that old samples fall out of the window."""
        histogram = Histogram("test", max_size=3)
        for value in range(10):
            histogram.observe(value)

        assert list(histogram.samples) == [7, 8, 9]


class TestMetricsCollector:
    """Test cases for MetricsCollector."""

    def test_default_metrics(self):
        """Test that filter and index metrics exist up front."""
        collector = MetricsCollector()

        assert "search.rebuilds.total" in collector.counters
        assert "errors.codec.total" in collector.counters
        assert "search.peers.indexed" in collector.gauges
        assert "search.rebuild.duration.seconds" in collector.histograms

    def test_timer(self):
        """Test that timers record durations."""
        collector = MetricsCollector()

        with collector.timer("work.seconds") as timer:
            sum(range(1000))

        assert timer.elapsed >= 0
        assert collector.histograms["work.seconds"].get_summary().count == 1

    def test_unknown_names_are_ignored(self):
        """Test updating metrics that were never registered."""
        collector = MetricsCollector()

        collector.increment_counter("missing")
        collector.set_gauge("missing", 1.0)

        assert "missing" not in collector.counters
        assert "missing" not in collector.gauges

    def test_get_all_metrics(self):
        """Test the metrics dictionary."""
        collector = MetricsCollector()
        collector.increment_counter("search.rebuilds.total", 2)

        metrics = collector.get_all_metrics()

        assert metrics["counters"]["search.rebuilds.total"] == 2
        assert metrics["histograms"]["search.rebuild.duration.seconds"]["summary"] is None

    def test_reset_all(self):
        """Test resetting every metric."""
        collector = MetricsCollector()
        collector.increment_counter("filter.serialize.total")
        collector.set_gauge("search.peers.indexed", 4)

        collector.reset_all()

        assert collector.counters["filter.serialize.total"].get() == 0
        assert collector.gauges["search.peers.indexed"].get() == 0

    def test_export_prometheus(self):
        """Test Prometheus text export."""
        collector = MetricsCollector()
        collector.increment_counter("search.rebuilds.total")
        collector.histogram("search.rebuild.duration.seconds").observe(0.25)

        output = collector.export_prometheus()

        assert "# TYPE search_rebuilds_total counter" in output
        assert "search_rebuilds_total 1.0" in output
        assert "# TYPE search_peers_indexed gauge" in output
        assert "search_rebuild_duration_seconds_count 1" in output
        assert 'search_rebuild_duration_seconds{quantile="0.5"} 0.25' in output

    def test_global_collector(self):
        """Test the shared collector instance."""
        reset_metrics()
        first = get_metrics()

        assert get_metrics() is first

        reset_metrics()
        assert get_metrics() is not first
