"""
Metrics for filter and peer index activity.

Tracks index rebuilds, filter transfers and codec failures so a node can
report how its routing state evolves.
"""
import time
from typing import Dict, Optional
from dataclasses import dataclass, asdict
from collections import deque
import structlog


@dataclass
class MetricSummary:
    """Summary statistics for a histogram."""
    count: int
    sum: float
    min: float
    max: float
    mean: float

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)


class Counter:
    """A monotonically increasing count of events."""

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self.value = 0

    def increment(self, amount: float = 1.0):
        """Increment the counter."""
        self.value += amount

    def reset(self):
        """Reset the counter to zero."""
        self.value = 0

    def get(self) -> float:
        return self.value


class Gauge:
    """A value that can move in either direction, e.g. peers indexed."""

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self.value = 0.0

    def set(self, value: float):
        self.value = value

    def get(self) -> float:
        return self.value


class Histogram:
    """
    Bounded sample window for tracking distributions.

    Only the most recent ``max_size`` observations are kept.
    """

    def __init__(self, name: str, description: str = "", max_size: int = 1000):
        self.name = name
        self.description = description
        self.samples: deque = deque(maxlen=max_size)

    def observe(self, value: float):
        """Add a sample."""
        self.samples.append(value)

    def get_summary(self) -> Optional[MetricSummary]:
        """
        Get summary statistics.

        Returns:
            MetricSummary or None if no samples
        """
        if not self.samples:
            return None

        total = sum(self.samples)
        return MetricSummary(
            count=len(self.samples),
            sum=total,
            min=min(self.samples),
            max=max(self.samples),
            mean=total / len(self.samples),
        )

    def get_percentile(self, percentile: float) -> Optional[float]:
        """Value at ``percentile`` (0.0 to 1.0), or None if empty."""
        if not self.samples:
            return None

        ordered = sorted(self.samples)
        index = min(int(len(ordered) * percentile), len(ordered) - 1)
        return ordered[index]

    def clear(self):
        self.samples.clear()


class Timer:
    """Context manager recording elapsed seconds into a histogram."""

    def __init__(self, histogram: Histogram):
        self.histogram = histogram
        self.start_time: Optional[float] = None
        self.elapsed: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time is not None:
            self.elapsed = time.perf_counter() - self.start_time
            self.histogram.observe(self.elapsed)
        return False


class MetricsCollector:
    """Registry of named counters, gauges and histograms."""

    def __init__(self):
        self.logger = structlog.get_logger()

        self.counters: Dict[str, Counter] = {}
        self.gauges: Dict[str, Gauge] = {}
        self.histograms: Dict[str, Histogram] = {}

        self.created_at = time.time()
        self._init_default_metrics()

    def _init_default_metrics(self):
        # Peer index
        self.counter("search.rebuilds.total", "Peer index rebuilds")
        self.gauge("search.peers.indexed", "Peers in the current peer index")
        self.gauge("search.bits.indexed", "Bit positions in the current peer index")
        self.histogram("search.rebuild.duration.seconds", "Peer index rebuild duration")

        # Filter transfer
        self.counter("filter.serialize.total", "Filters serialized for the wire")
        self.counter("filter.deserialize.total", "Filters rebuilt from the wire")

        # Errors
        self.counter("errors.codec.total", "Encoded filters that failed to decode")
        self.counter("errors.domain.total", "Filters rejected for a size mismatch")

    def counter(self, name: str, description: str = "") -> Counter:
        """Get or create a counter metric."""
        if name not in self.counters:
            self.counters[name] = Counter(name, description)
        return self.counters[name]

    def gauge(self, name: str, description: str = "") -> Gauge:
        """Get or create a gauge metric."""
        if name not in self.gauges:
            self.gauges[name] = Gauge(name, description)
        return self.gauges[name]

    def histogram(self, name: str, description: str = "", max_size: int = 1000) -> Histogram:
        """Get or create a histogram metric."""
        if name not in self.histograms:
            self.histograms[name] = Histogram(name, description, max_size)
        return self.histograms[name]

    def timer(self, name: str, description: str = "") -> Timer:
        """Timer context manager feeding histogram ``name``."""
        return Timer(self.histogram(name, description))

    def increment_counter(self, name: str, amount: float = 1.0):
        if name in self.counters:
            self.counters[name].increment(amount)

    def set_gauge(self, name: str, value: float):
        if name in self.gauges:
            self.gauges[name].set(value)

    def get_all_metrics(self) -> dict:
        """
        Get all metrics as a dictionary.

        Returns:
            Dictionary with all current metric values
        """
        metrics = {
            'uptime_seconds': time.time() - self.created_at,
            'counters': {name: c.get() for name, c in self.counters.items()},
            'gauges': {name: g.get() for name, g in self.gauges.items()},
            'histograms': {},
        }

        for name, histogram in self.histograms.items():
            summary = histogram.get_summary()
            metrics['histograms'][name] = {
                'summary': summary.to_dict() if summary else None,
                'p50': histogram.get_percentile(0.5),
                'p99': histogram.get_percentile(0.99),
            }

        return metrics

    def reset_all(self):
        """Reset all metrics to initial state."""
        self.logger.debug("metrics_reset")
        for counter in self.counters.values():
            counter.reset()
        for gauge in self.gauges.values():
            gauge.set(0)
        for histogram in self.histograms.values():
            histogram.clear()

    def export_prometheus(self) -> str:
        """
        Export metrics in Prometheus text format.

        Returns:
            Prometheus-formatted metrics string
        """
        lines = []

        for kind, metrics in (("counter", self.counters), ("gauge", self.gauges)):
            for name, metric in metrics.items():
                prometheus_name = name.replace('.', '_')
                if metric.description:
                    lines.append(f"# HELP {prometheus_name} {metric.description}")
                lines.append(f"# TYPE {prometheus_name} {kind}")
                lines.append(f"{prometheus_name} {metric.get()}")

        for name, histogram in self.histograms.items():
            summary = histogram.get_summary()
            if not summary:
                continue
            prometheus_name = name.replace('.', '_')
            if histogram.description:
                lines.append(f"# HELP {prometheus_name} {histogram.description}")
            lines.append(f"# TYPE {prometheus_name} summary")
            lines.append(f"{prometheus_name}_count {summary.count}")
            lines.append(f"{prometheus_name}_sum {summary.sum}")
            for quantile in (0.5, 0.99):
                lines.append(
                    f'{prometheus_name}{{quantile="{quantile}"}} '
                    f'{histogram.get_percentile(quantile)}'
                )

        return '\n'.join(lines) + '\n'


# Global metrics collector instance
_global_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get the global metrics collector instance."""
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics


def reset_metrics():
    """Discard the global metrics collector."""
    global _global_metrics
    _global_metrics = None
