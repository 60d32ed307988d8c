# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Metric name constants following Prometheus naming conventions.

All metric names use the `paced_queue_` prefix.

Naming Conventions:
    - Counter metrics end with `_total`
    - Histogram metrics for time end with `_seconds`
    - Gauges use present-tense descriptive names

Label Best Practices:
    Every metric carries a single `queue` label holding the configured
    queue name. Never label by item: items are caller-defined and unbounded.

Usage:
    >>> from paced_queue.observability.constants import ITEMS_DISPATCHED_TOTAL
    >>> print(ITEMS_DISPATCHED_TOTAL)
    'paced_queue_items_dispatched_total'
"""


# =============================================================================
# Global Prefix
# =============================================================================

METRIC_PREFIX = "paced_queue"
"""Prefix for all Prometheus metrics in this library."""


# =============================================================================
# Queue Counters (scheduler/scheduler.py)
# =============================================================================

ITEMS_ENQUEUED_TOTAL = f"{METRIC_PREFIX}_items_enqueued_total"
"""Total items added through any of the enqueue operations."""

ITEMS_DISPATCHED_TOTAL = f"{METRIC_PREFIX}_items_dispatched_total"
"""Total items popped from the buffer and handed to the processor."""

INVOCATIONS_COMPLETED_TOTAL = f"{METRIC_PREFIX}_invocations_completed_total"
"""Total processor invocations that finished without error."""

INVOCATIONS_FAILED_TOTAL = f"{METRIC_PREFIX}_invocations_failed_total"
"""Total processor invocations that raised or whose awaitable failed."""

DRAINS_TOTAL = f"{METRIC_PREFIX}_drains_total"
"""Total drain events signalled on non-persistent queues."""

TICKS_TOTAL = f"{METRIC_PREFIX}_ticks_total"
"""Total evaluations of the tick algorithm."""

ITEMS_CLEARED_TOTAL = f"{METRIC_PREFIX}_items_cleared_total"
"""Total items removed from the buffer by clear()."""


# =============================================================================
# Active State Gauges
# =============================================================================

QUEUE_DEPTH = f"{METRIC_PREFIX}_queue_depth"
"""Items currently buffered (excludes in-flight items)."""

ACTIVE_INVOCATIONS = f"{METRIC_PREFIX}_active_invocations"
"""Processor invocations currently outstanding."""


# =============================================================================
# Histograms
# =============================================================================

INVOCATION_DURATION_SECONDS = f"{METRIC_PREFIX}_invocation_duration_seconds"
"""Time from dispatch to completion of a processor invocation."""

LATENCY_BUCKETS: list[float] = [
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
]
"""Default latency buckets for invocation duration histograms (in seconds)."""


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
    "METRIC_PREFIX",
    "QUEUE_DEPTH",
    "TICKS_TOTAL",
]
