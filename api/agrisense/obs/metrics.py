from __future__ import annotations
import time
from collections import defaultdict, deque
from typing import Dict, Any, Deque, List
from threading import RLock

def _label_key(name: str, labels: Dict[str, str] = None) -> str:
    if not labels:
        return name
    label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
    return f"{name}{{{label_str}}}"

def _percentile(sorted_values: List[float], fraction: float) -> float:
    if not sorted_values:
        return 0.0
    index = min(len(sorted_values) - 1, int(len(sorted_values) * fraction))
    return sorted_values[index]

class MetricsRegistry:
    """Thread-safe in-process metrics, served as JSON on /metrics."""

    def __init__(self, histogram_window: int = 1000):
        self._lock = RLock()
        self._counters: Dict[str, float] = defaultdict(float)
        self._histograms: Dict[str, Deque[float]] = defaultdict(
            lambda: deque(maxlen=histogram_window)
        )
        self._gauges: Dict[str, float] = {}

    def increment_counter(self, name: str, labels: Dict[str, str] = None, value: float = 1.0):
        with self._lock:
            self._counters[_label_key(name, labels)] += value

    def record_histogram(self, name: str, value: float, labels: Dict[str, str] = None):
        with self._lock:
            self._histograms[_label_key(name, labels)].append(value)

    def set_gauge(self, name: str, value: float, labels: Dict[str, str] = None):
        with self._lock:
            self._gauges[_label_key(name, labels)] = value

    def get_counter(self, name: str, labels: Dict[str, str] = None) -> float:
        with self._lock:
            return self._counters.get(_label_key(name, labels), 0.0)

    def get_metrics(self) -> Dict[str, Any]:
        """Snapshot of all collected metrics."""
        with self._lock:
            histograms = {}
            for key, points in self._histograms.items():
                if not points:
                    continue
                values = sorted(points)
                histograms[key] = {
                    "count": len(values),
                    "mean": sum(values) / len(values),
                    "min": values[0],
                    "max": values[-1],
                    "p50": _percentile(values, 0.5),
                    "p95": _percentile(values, 0.95),
                }
            return {
                "counters": dict(self._counters),
                "histograms": histograms,
                "gauges": dict(self._gauges),
                "timestamp": time.time(),
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()
            self._gauges.clear()

# Global metrics registry
metrics_registry = MetricsRegistry()

def inc_counter(name: str, labels: Dict[str, str] = None, value: float = 1.0):
    """Increment counter."""
    metrics_registry.increment_counter(name, labels, value)

def record_duration(name: str, duration_ms: float, labels: Dict[str, str] = None):
    """Record duration in milliseconds."""
    metrics_registry.record_histogram(name, duration_ms, labels)

def set_gauge(name: str, value: float, labels: Dict[str, str] = None):
    """Set gauge value."""
    metrics_registry.set_gauge(name, value, labels)
