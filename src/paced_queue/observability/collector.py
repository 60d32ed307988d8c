# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Unified metrics collector supporting both dict-based and Prometheus metrics.

Features:
    1. Thread-safe counter/gauge/histogram operations
    2. Prometheus metric registration (prometheus_client)
    3. Dict-based snapshot for JSON export
    4. Label cardinality protection (max 1000 unique combinations per metric)
    5. Optional HTTP server for Prometheus scraping

Usage:
    >>> from paced_queue.observability.collector import get_metrics_collector
    >>> collector = get_metrics_collector()
    >>> collector.inc_counter('paced_queue_items_dispatched_total',
    ...                       labels={'queue': 'emails'})
    >>> metrics = collector.get_metrics()

Thread Safety:
    All operations are thread-safe. Uses RLock for reentrant locking.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, ClassVar

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from .constants import (
    ACTIVE_INVOCATIONS,
    DRAINS_TOTAL,
    INVOCATION_DURATION_SECONDS,
    INVOCATIONS_COMPLETED_TOTAL,
    INVOCATIONS_FAILED_TOTAL,
    ITEMS_CLEARED_TOTAL,
    ITEMS_DISPATCHED_TOTAL,
    ITEMS_ENQUEUED_TOTAL,
    LATENCY_BUCKETS,
    QUEUE_DEPTH,
    TICKS_TOTAL,
)

logger = logging.getLogger(__name__)


@dataclass
class MetricDefinition:
    """
    Definition for a metric that can be instantiated.

    Describes a metric's type, help text, label names and histogram buckets.
    """

    name: str
    metric_type: str  # 'counter', 'gauge', 'histogram'
    description: str
    label_names: tuple[str, ...] = ()
    buckets: list[float] | None = None


# Pre-defined metrics for the library
METRIC_DEFINITIONS: dict[str, MetricDefinition] = {
    # === Queue Counters ===
    ITEMS_ENQUEUED_TOTAL: MetricDefinition(
        ITEMS_ENQUEUED_TOTAL,
        "counter",
        "Total items enqueued",
        ("queue",),
    ),
    ITEMS_DISPATCHED_TOTAL: MetricDefinition(
        ITEMS_DISPATCHED_TOTAL,
        "counter",
        "Total items dispatched to the processor",
        ("queue",),
    ),
    INVOCATIONS_COMPLETED_TOTAL: MetricDefinition(
        INVOCATIONS_COMPLETED_TOTAL,
        "counter",
        "Total processor invocations completed successfully",
        ("queue",),
    ),
    INVOCATIONS_FAILED_TOTAL: MetricDefinition(
        INVOCATIONS_FAILED_TOTAL,
        "counter",
        "Total processor invocations that failed",
        ("queue",),
    ),
    DRAINS_TOTAL: MetricDefinition(
        DRAINS_TOTAL,
        "counter",
        "Total drain events signalled",
        ("queue",),
    ),
    TICKS_TOTAL: MetricDefinition(
        TICKS_TOTAL,
        "counter",
        "Total scheduler tick evaluations",
        ("queue",),
    ),
    ITEMS_CLEARED_TOTAL: MetricDefinition(
        ITEMS_CLEARED_TOTAL,
        "counter",
        "Total items removed by clear()",
        ("queue",),
    ),
    # === Gauges ===
    QUEUE_DEPTH: MetricDefinition(
        QUEUE_DEPTH,
        "gauge",
        "Current number of buffered items",
        ("queue",),
    ),
    ACTIVE_INVOCATIONS: MetricDefinition(
        ACTIVE_INVOCATIONS,
        "gauge",
        "Currently outstanding processor invocations",
        ("queue",),
    ),
    # === Histograms ===
    INVOCATION_DURATION_SECONDS: MetricDefinition(
        INVOCATION_DURATION_SECONDS,
        "histogram",
        "Duration of processor invocations",
        ("queue",),
        buckets=LATENCY_BUCKETS,
    ),
}


class UnifiedMetricsCollector:
    """
    Unified metrics collector supporting both dict-based and Prometheus metrics.

    Thread Safety:
        All operations use RLock for thread-safe access. The lock is reentrant
        to allow nested calls from callbacks.

    Cardinality Protection:
        To prevent unbounded memory growth, a maximum of MAX_LABEL_COMBINATIONS
        unique label combinations are tracked per metric.

    Example:
        >>> collector = UnifiedMetricsCollector(registry=CollectorRegistry())
        >>> collector.inc_counter('paced_queue_ticks_total',
        ...                       labels={'queue': 'default'})
        >>> metrics = collector.get_metrics()
    """

    MAX_LABEL_COMBINATIONS: ClassVar[int] = 1000
    MAX_HISTOGRAM_SAMPLES: ClassVar[int] = 10000

    def __init__(
        self,
        enable_prometheus: bool = True,
        registry: CollectorRegistry | None = None,
    ) -> None:
        """
        Initialize the metrics collector.

        Args:
            enable_prometheus: Whether to mirror metrics into prometheus_client
            registry: Optional Prometheus CollectorRegistry (for testing)
        """
        self._enable_prometheus = enable_prometheus
        self._registry = registry if registry is not None else REGISTRY

        # Dict-based metrics (always available)
        self._counters: dict[str, dict[str, int]] = defaultdict(
            lambda: defaultdict(int)
        )
        self._gauges: dict[str, dict[str, float]] = defaultdict(
            lambda: defaultdict(float)
        )
        self._histograms: dict[str, dict[str, list[float]]] = defaultdict(
            lambda: defaultdict(list)
        )

        self._lock = threading.RLock()

        # Prometheus metric instances (lazy initialized)
        self._prom_metrics: dict[str, Any] = {}

        self._label_combinations: dict[str, set[str]] = defaultdict(set)

        self._server_running = False

        logger.debug(
            f"UnifiedMetricsCollector initialized "
            f"(prometheus={'enabled' if self._enable_prometheus else 'disabled'})"
        )

    def _labels_to_key(self, labels: dict[str, str] | None) -> str:
        """Convert labels dict to a stable string key."""
        if not labels:
            return ""
        return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))

    def _check_cardinality(self, name: str, label_key: str) -> bool:
        """
        Check if adding this label combination would exceed cardinality limit.

        Returns:
            True if the label combination is allowed, False otherwise
        """
        if label_key in self._label_combinations[name]:
            return True
        if len(self._label_combinations[name]) >= self.MAX_LABEL_COMBINATIONS:
            logger.warning(
                f"Cardinality limit ({self.MAX_LABEL_COMBINATIONS}) reached "
                f"for metric {name}. Dropping label combination: {label_key}"
            )
            return False
        self._label_combinations[name].add(label_key)
        return True

    def _get_or_create_prom_metric(
        self, name: str, metric_type: str, labels: dict[str, str] | None
    ) -> Any | None:
        """Get or create the Prometheus instance backing ``name``."""
        if not self._enable_prometheus:
            return None

        with self._lock:
            if name in self._prom_metrics:
                return self._prom_metrics[name]

            defn = METRIC_DEFINITIONS.get(name)
            if defn is None or defn.metric_type != metric_type:
                # Dynamic metric (not pre-defined)
                defn = MetricDefinition(
                    name,
                    metric_type,
                    f"Dynamic {metric_type}: {name}",
                    tuple(sorted(labels)) if labels else (),
                )

            try:
                if metric_type == "counter":
                    metric = Counter(
                        name,
                        defn.description,
                        list(defn.label_names),
                        registry=self._registry,
                    )
                elif metric_type == "gauge":
                    metric = Gauge(
                        name,
                        defn.description,
                        list(defn.label_names),
                        registry=self._registry,
                    )
                else:
                    metric = Histogram(
                        name,
                        defn.description,
                        list(defn.label_names),
                        buckets=defn.buckets or LATENCY_BUCKETS,
                        registry=self._registry,
                    )
            except ValueError as e:
                # Duplicate registration in a shared registry; stay dict-only
                logger.warning(f"Failed to create Prometheus {metric_type} {name}: {e}")
                self._prom_metrics[name] = None
                return None

            self._prom_metrics[name] = metric
            return metric

    # === Counter Operations ===

    def inc_counter(
        self,
        name: str,
        value: int = 1,
        labels: dict[str, str] | None = None,
    ) -> None:
        """
        Increment a counter metric.

        Args:
            name: Metric name (should follow Prometheus naming convention)
            value: Value to increment by (must be non-negative)
            labels: Optional labels dict

        Raises:
            ValueError: If value is negative
        """
        if value < 0:
            raise ValueError("Counter increment must be non-negative")

        label_key = self._labels_to_key(labels)

        with self._lock:
            if not self._check_cardinality(name, label_key):
                return
            self._counters[name][label_key] += value

        prom_counter = self._get_or_create_prom_metric(name, "counter", labels)
        if prom_counter is not None:
            try:
                if labels:
                    prom_counter.labels(**labels).inc(value)
                else:
                    prom_counter.inc(value)
            except ValueError as e:
                logger.debug(f"Prometheus counter update failed for {name}: {e}")

    # === Gauge Operations ===

    def set_gauge(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Set a gauge metric to a specific value."""
        label_key = self._labels_to_key(labels)

        with self._lock:
            if not self._check_cardinality(name, label_key):
                return
            self._gauges[name][label_key] = value

        prom_gauge = self._get_or_create_prom_metric(name, "gauge", labels)
        if prom_gauge is not None:
            try:
                if labels:
                    prom_gauge.labels(**labels).set(value)
                else:
                    prom_gauge.set(value)
            except ValueError as e:
                logger.debug(f"Prometheus gauge update failed for {name}: {e}")

    # === Histogram Operations ===

    def observe_histogram(
        self,
        name: str,
        value: float,
        labels: dict[str, str] | None = None,
    ) -> None:
        """Record an observation in a histogram."""
        label_key = self._labels_to_key(labels)

        with self._lock:
            if not self._check_cardinality(name, label_key):
                return
            samples = self._histograms[name][label_key]
            samples.append(value)
            # Keep only recent observations to prevent memory growth
            if len(samples) > self.MAX_HISTOGRAM_SAMPLES:
                del samples[: len(samples) - self.MAX_HISTOGRAM_SAMPLES // 2]

        prom_histogram = self._get_or_create_prom_metric(name, "histogram", labels)
        if prom_histogram is not None:
            try:
                if labels:
                    prom_histogram.labels(**labels).observe(value)
                else:
                    prom_histogram.observe(value)
            except ValueError as e:
                logger.debug(f"Prometheus histogram observe failed for {name}: {e}")

    # === Snapshot Operations ===

    def get_metrics(self) -> dict[str, Any]:
        """
        Get a snapshot of all metrics.

        Returns a dict suitable for JSON serialization with structure:
        {
            "counters": {"metric_name": {"label_key": value, ...}, ...},
            "gauges": {"metric_name": {"label_key": value, ...}, ...},
            "histograms": {"metric_name": {"label_key": {...}, ...}, ...}
        }
        """
        with self._lock:
            counters = {
                name: dict(label_values)
                for name, label_values in self._counters.items()
            }
            gauges = {
                name: dict(label_values) for name, label_values in self._gauges.items()
            }

            histograms: dict[str, dict[str, dict[str, Any]]] = {}
            for name, label_values in self._histograms.items():
                histograms[name] = {}
                for label_key, observations in label_values.items():
                    if observations:
                        histograms[name][label_key] = {
                            "count": len(observations),
                            "sum": sum(observations),
                            "avg": sum(observations) / len(observations),
                            "min": min(observations),
                            "max": max(observations),
                        }

        return {
            "counters": counters,
            "gauges": gauges,
            "histograms": histograms,
        }

    def get_flat_metrics(self) -> dict[str, Any]:
        """
        Get counters and gauges in a flat dict.

        Labeled metrics use the format "metric_name{label=value,...}".
        """
        result: dict[str, Any] = {}

        with self._lock:
            for store in (self._counters, self._gauges):
                for name, label_values in store.items():
                    for label_key, value in label_values.items():
                        if label_key:
                            result[f"{name}{{{label_key}}}"] = value
                        else:
                            result[name] = value

        return result

    # === Lifecycle ===

    def reset(self) -> None:
        """Reset all dict-based metrics to zero."""
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()
            self._label_combinations.clear()

        logger.debug("Metrics collector reset")

    # === Prometheus HTTP Server ===

    def start_http_server(self, host: str = "127.0.0.1", port: int = 9090) -> bool:
        """
        Start the Prometheus HTTP server for metrics scraping.

        Args:
            host: Host to bind to (default: 127.0.0.1 for localhost only)
            port: Port to bind to

        Returns:
            True if server started successfully, False otherwise
        """
        if self._server_running:
            logger.warning("Prometheus server already running")
            return True

        try:
            # start_http_server runs in a daemon thread
            start_http_server(port, addr=host, registry=self._registry)
        except OSError as e:
            logger.error(f"Failed to start Prometheus server: {e}")
            return False

        self._server_running = True
        logger.info(f"Prometheus metrics server started on {host}:{port}")
        return True

    @property
    def prometheus_enabled(self) -> bool:
        """Check if Prometheus metrics are enabled."""
        return self._enable_prometheus

    @property
    def server_running(self) -> bool:
        """Check if the Prometheus HTTP server is running."""
        return self._server_running


# =============================================================================
# Singleton Pattern
# =============================================================================

_global_collector: UnifiedMetricsCollector | None = None
_collector_lock = threading.Lock()


def get_metrics_collector(
    enable_prometheus: bool = True,
) -> UnifiedMetricsCollector:
    """
    Get or create the global metrics collector singleton.

    Args:
        enable_prometheus: Whether to enable Prometheus metrics
            (only used on first call)

    Returns:
        The UnifiedMetricsCollector singleton
    """
    global _global_collector

    if _global_collector is None:
        with _collector_lock:
            if _global_collector is None:
                _global_collector = UnifiedMetricsCollector(
                    enable_prometheus=enable_prometheus
                )

    return _global_collector


def reset_metrics_collector() -> None:
    """
    Reset the global metrics collector singleton (mainly for testing).

    Prometheus instances already registered in the default registry stay
    registered; a fresh singleton reuses nothing and will log a warning
    when re-registering the same names, falling back to dict-only storage
    for them.
    """
    global _global_collector
    with _collector_lock:
        if _global_collector:
            _global_collector.reset()
        _global_collector = None


__all__ = [
    "METRIC_DEFINITIONS",
    "MetricDefinition",
    "UnifiedMetricsCollector",
    "get_metrics_collector",
    "reset_metrics_collector",
]
