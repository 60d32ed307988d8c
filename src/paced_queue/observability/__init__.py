# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Observability and metrics for Paced Queue.

Classes:
    UnifiedMetricsCollector: Metrics collector backed by dicts and Prometheus.
    MetricDefinition: Schema for a pre-defined metric.

Protocols:
    MetricsCollectorProtocol: Protocol for metrics collection backends.

Functions:
    get_metrics_collector: Get the global metrics collector singleton.
    reset_metrics_collector: Reset the global metrics collector singleton.
"""

from .collector import (
    METRIC_DEFINITIONS,
    MetricDefinition,
    UnifiedMetricsCollector,
    get_metrics_collector,
    reset_metrics_collector,
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
    METRIC_PREFIX,
    QUEUE_DEPTH,
    TICKS_TOTAL,
)
from .protocols import MetricsCollectorProtocol

__all__ = [
    "ACTIVE_INVOCATIONS",
    "DRAINS_TOTAL",
    "INVOCATIONS_COMPLETED_TOTAL",
    "INVOCATIONS_FAILED_TOTAL",
    "INVOCATION_DURATION_SECONDS",
    "ITEMS_CLEARED_TOTAL",
    "ITEMS_DISPATCHED_TOTAL",
    "ITEMS_ENQUEUED_TOTAL",
    "LATENCY_BUCKETS",
    "METRIC_DEFINITIONS",
    "METRIC_PREFIX",
    "QUEUE_DEPTH",
    "TICKS_TOTAL",
    "MetricDefinition",
    "MetricsCollectorProtocol",
    "UnifiedMetricsCollector",
    "get_metrics_collector",
    "reset_metrics_collector",
]
