# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Paced Queue - a pausable, rate-paced in-memory work queue.

This library drains an ordered buffer of opaque items through a single
processor function, one item per tick, with a configurable delay between
ticks, an optional cap on concurrent invocations, and pause/resume control.

Key Features:
    - FIFO buffer with head insertion that preserves batch order
    - Fixed inter-dispatch delay; first dispatch after an add is immediate
    - Unbounded (timer-driven) or bounded (completion-driven) concurrency
    - Stop-and-notify or persistent end-of-queue policies
    - Sync, async and thread-pool processors
    - Injectable timer (asyncio loop or manual virtual clock)
    - Prometheus metrics via the unified collector

Quick Start:
    >>> from paced_queue import Scheduler
    >>>
    >>> async def process(item):
    ...     await handle(item)
    >>>
    >>> async with Scheduler(process, delay=0.2, max_concurrent=3) as queue:
    ...     queue.enqueue_tail_all(work)
    ...     await queue.join()

Main Exports:
    - Scheduler, create_scheduler: The queue and its factory
    - QueueConfig: Configuration options
    - EventLoopTimer, ManualTimer, TimerProtocol: Timer facility
    - PacedQueueError and subclasses: Error types

State lives only in process memory; nothing is persisted.

Version: 1.0.0
"""

__version__ = "1.0.0"

from .exceptions import (
    ConfigurationError,
    InvalidArgumentError,
    PacedQueueError,
    SchedulerClosedError,
)
from .observability import (
    MetricsCollectorProtocol,
    UnifiedMetricsCollector,
    get_metrics_collector,
)
from .protocols import (
    CompletionCallback,
    Processor,
    TimerProtocol,
)
from .scheduler import (
    UNBOUNDED,
    QueueConfig,
    Scheduler,
    create_scheduler,
)
from .timers import (
    EventLoopTimer,
    ManualTimer,
)

__all__ = [
    "UNBOUNDED",
    "CompletionCallback",
    "ConfigurationError",
    # Timers
    "EventLoopTimer",
    "InvalidArgumentError",
    "ManualTimer",
    # Observability
    "MetricsCollectorProtocol",
    # Exceptions
    "PacedQueueError",
    # Protocols
    "Processor",
    # Config
    "QueueConfig",
    # Scheduler
    "Scheduler",
    "SchedulerClosedError",
    "TimerProtocol",
    "UnifiedMetricsCollector",
    "create_scheduler",
    "get_metrics_collector",
]
