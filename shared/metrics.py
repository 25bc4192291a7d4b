"""
Prometheus metrics for the catalog cache.
"""

import threading
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, write_to_textfile


class MetricsCollector:
    """Centralized metrics collector for cache entries."""

    def __init__(self, service_name: str = "catalog_cache", registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        # A private registry keeps several collectors in one process from clashing
        self.registry = registry if registry is not None else CollectorRegistry()
        self._metrics: Dict[str, Any] = {}
        self._lock = threading.Lock()
        self._setup_metrics()

    def _setup_metrics(self):
        self._metrics["cache_loads_total"] = Counter(
            "cache_loads_total",
            "Cache load attempts by outcome",
            ["cache_key", "mode", "result"],
            registry=self.registry
        )

        self._metrics["cache_load_duration_seconds"] = Histogram(
            "cache_load_duration_seconds",
            "Time spent in the fetcher",
            ["cache_key"],
            registry=self.registry
        )

        self._metrics["cache_oracle_checks_total"] = Counter(
            "cache_oracle_checks_total",
            "Change oracle checks by outcome",
            ["cache_key", "result"],
            registry=self.registry
        )

        self._metrics["cache_persist_total"] = Counter(
            "cache_persist_total",
            "Durable store reads and writes by outcome",
            ["cache_key", "result"],
            registry=self.registry
        )

        self._metrics["cache_stale"] = Gauge(
            "cache_stale",
            "1 when the oracle reports newer data than the cached copy",
            ["cache_key"],
            registry=self.registry
        )

    def sample(self, metric_name: str, **labels) -> Optional[float]:
        """Read back the current value of a sample (``_total`` suffix included)."""
        return self.registry.get_sample_value(metric_name, labels)

    def write_textfile(self, path: str) -> None:
        """Dump every metric in Prometheus text format, for the node exporter textfile collector."""
        write_to_textfile(path, self.registry)

    def increment_counter(self, metric_name: str, **labels):
        if metric_name in self._metrics:
            with self._lock:
                self._metrics[metric_name].labels(**labels).inc()

    def set_gauge(self, metric_name: str, value: float, **labels):
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).set(value)

    def observe_histogram(self, metric_name: str, value: float, **labels):
        if metric_name in self._metrics:
            self._metrics[metric_name].labels(**labels).observe(value)
