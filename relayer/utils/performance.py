"""
Operation metrics for the relayer.

This module records per-operation latencies and ingestion counters and
reports them together with process resource usage.
"""

import time
import threading
from contextlib import contextmanager
from typing import Dict, List, Any, Optional
import logging

import psutil

logger = logging.getLogger(__name__)


class PerformanceMonitor:
    """
    Collects latency samples and counters for service operations.

    Keeps at most ``max_samples`` latencies per metric so a long-running
    relayer does not grow without bound.
    """

    def __init__(self, max_samples: int = 10000, enabled: bool = True):
        """
        Initialize performance monitor.

        Args:
            max_samples: Latency samples kept per metric
            enabled: When False, recording calls are no-ops
        """
        self.max_samples = max_samples
        self.enabled = enabled
        self.metrics: Dict[str, List[float]] = {}
        self.counters: Dict[str, int] = {}
        self.start_time = time.time()
        self.lock = threading.Lock()

        self.process = psutil.Process()
        self.initial_memory = self.process.memory_info().rss

    def record_metric(self, name: str, value: float) -> None:
        if not self.enabled:
            return
        with self.lock:
            samples = self.metrics.setdefault(name, [])
            samples.append(value)
            if len(samples) > self.max_samples:
                del samples[0]

    def increment_counter(self, name: str, value: int = 1) -> None:
        if not self.enabled:
            return
        with self.lock:
            self.counters[name] = self.counters.get(name, 0) + value

    def get_counter(self, name: str) -> int:
        with self.lock:
            return self.counters.get(name, 0)

    def get_metric_stats(self, name: str) -> Dict[str, float]:
        """
        Get statistics for a metric.

        Args:
            name: Metric name

        Returns:
            Dictionary with min, max, avg, p95 and count
        """
        with self.lock:
            return _summarize(self.metrics.get(name, []))

    def get_system_stats(self) -> Dict[str, Any]:
        """Get current process statistics."""
        try:
            memory_info = self.process.memory_info()
            return {
                "memory_rss_mb": memory_info.rss / 1024 / 1024,
                "memory_percent": self.process.memory_percent(),
                "cpu_percent": self.process.cpu_percent(),
                "thread_count": self.process.num_threads(),
                "memory_growth_mb": (memory_info.rss - self.initial_memory) / 1024 / 1024,
            }
        except psutil.Error as e:
            logger.error(f"Error getting system stats: {str(e)}")
            return {}

    def get_summary(self) -> Dict[str, Any]:
        with self.lock:
            summary = {
                "uptime_seconds": time.time() - self.start_time,
                "counters": dict(self.counters),
                "metrics": {name: _summarize(values) for name, values in self.metrics.items() if values},
            }
        summary["system"] = self.get_system_stats()
        return summary

    def reset(self) -> None:
        """Reset all metrics and counters."""
        with self.lock:
            self.metrics.clear()
            self.counters.clear()
            self.start_time = time.time()
            self.initial_memory = self.process.memory_info().rss


def _summarize(values: List[float]) -> Dict[str, float]:
    if not values:
        return {"min": 0, "max": 0, "avg": 0, "p95": 0, "count": 0}
    ordered = sorted(values)
    return {
        "min": ordered[0],
        "max": ordered[-1],
        "avg": sum(ordered) / len(ordered),
        "p95": ordered[min(len(ordered) - 1, int(0.95 * len(ordered)))],
        "count": len(ordered),
    }


@contextmanager
def measure_latency(monitor: Optional[PerformanceMonitor], operation_name: str):
    """
    Context manager to measure operation latency.

    Args:
        monitor: Performance monitor instance, or None to skip measuring
        operation_name: Name of the operation being measured
    """
    if monitor is None:
        yield
        return
    start_time = time.perf_counter()
    try:
        yield
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        monitor.record_metric(f"{operation_name}_latency_ms", latency_ms)
