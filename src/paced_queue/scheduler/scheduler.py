# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Paced single-queue scheduler.

A Scheduler owns an ordered buffer of opaque items and drains it through a
caller-supplied processor, one item per tick, with a configurable delay
between ticks. Ticks are deferred callbacks on an injected timer, so at
most one tick is ever pending and every dispatch happens asynchronously
with respect to the call that enqueued the item.
"""

import asyncio
import concurrent.futures
import inspect
import logging
import threading
import time
from collections import defaultdict, deque
from collections.abc import Iterable, Mapping
from functools import partial
from typing import Any, Generic

from typing_extensions import Self

from ..exceptions import InvalidArgumentError, SchedulerClosedError
from ..observability.collector import get_metrics_collector
from ..observability.constants import (
    ACTIVE_INVOCATIONS,
    DRAINS_TOTAL,
    INVOCATION_DURATION_SECONDS,
    INVOCATIONS_COMPLETED_TOTAL,
    INVOCATIONS_FAILED_TOTAL,
    ITEMS_CLEARED_TOTAL,
    ITEMS_DISPATCHED_TOTAL,
    ITEMS_ENQUEUED_TOTAL,
    QUEUE_DEPTH,
    TICKS_TOTAL,
)
from ..observability.protocols import MetricsCollectorProtocol
from ..protocols.processor import Item, Processor
from ..protocols.timer import TimerProtocol
from ..timers.event_loop import EventLoopTimer
from .config import QueueConfig

logger = logging.getLogger(__name__)

# Per-instance counter names and their Prometheus counterparts
STAT_ITEMS_ENQUEUED = "items_enqueued"
STAT_ITEMS_DISPATCHED = "items_dispatched"
STAT_INVOCATIONS_COMPLETED = "invocations_completed"
STAT_INVOCATIONS_FAILED = "invocations_failed"
STAT_DRAINS = "drains"
STAT_TICKS = "ticks"
STAT_ITEMS_CLEARED = "items_cleared"

STAT_TO_METRIC: dict[str, str] = {
    STAT_ITEMS_ENQUEUED: ITEMS_ENQUEUED_TOTAL,
    STAT_ITEMS_DISPATCHED: ITEMS_DISPATCHED_TOTAL,
    STAT_INVOCATIONS_COMPLETED: INVOCATIONS_COMPLETED_TOTAL,
    STAT_INVOCATIONS_FAILED: INVOCATIONS_FAILED_TOTAL,
    STAT_DRAINS: DRAINS_TOTAL,
    STAT_TICKS: TICKS_TOTAL,
    STAT_ITEMS_CLEARED: ITEMS_CLEARED_TOTAL,
}


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Scheduler(Generic[Item]):
    """
    A paced, pausable work queue drained by a single processor.

    Each tick pops the head item and hands it to the processor. In
    unbounded mode (``max_concurrent=-1``) the next tick is scheduled
    ``delay`` seconds after the dispatch regardless of whether the
    invocation finished. With a positive ``max_concurrent`` the next tick
    is scheduled ``delay`` seconds after the invocation completes, and a
    tick that finds the cap saturated stops until a completion re-arms it.

    When the buffer empties, a non-persistent queue calls ``on_complete``
    once for that drain; a persistent queue simply idles. Either way the
    next enqueue or ``resume()`` re-arms it.

    Processor failures are logged and counted, never retried; the failed
    item is not requeued.

    Threading:
        All calls must come from the thread that runs the timer's callbacks
        (the event loop thread for EventLoopTimer). Mutating a scheduler from
        several threads needs external locking around the buffer. Thread-pool
        futures returned by the processor are completed on that thread too:
        through the event loop when one is running, otherwise through a
        zero-delay ``timer.schedule`` issued from the worker thread, so
        timers used outside asyncio must accept ``schedule`` from any thread
        (ManualTimer does).

    Example:
        >>> async def send(email):
        ...     await mailer.deliver(email)
        >>>
        >>> queue = Scheduler(send, delay=0.5, max_concurrent=2)
        >>> queue.enqueue_tail_all(outbox)
        >>> await queue.join()
    """

    def __init__(
        self,
        processor: Processor[Item],
        config: QueueConfig | Mapping[str, Any] | None = None,
        *,
        timer: TimerProtocol | None = None,
        metrics_enabled: bool = False,
        metrics_collector: MetricsCollectorProtocol | None = None,
        **options: Any,
    ) -> None:
        """
        Initialize the Scheduler.

        Args:
            processor: Callable invoked once per dispatched item
            config: QueueConfig, options mapping, or None for defaults
            timer: Timer used to defer ticks (default: EventLoopTimer)
            metrics_enabled: Report to the global metrics collector
            metrics_collector: Explicit collector (implies metrics_enabled)
            **options: Queue options applied on top of ``config``

        Raises:
            InvalidArgumentError: If processor is not callable or timer does
                not satisfy TimerProtocol
            ConfigurationError: If the configuration is invalid
        """
        if not callable(processor):
            raise InvalidArgumentError(
                "processor must be callable", argument="processor"
            )
        if timer is not None and not isinstance(timer, TimerProtocol):
            raise InvalidArgumentError(
                "timer must provide schedule() and cancel()", argument="timer"
            )

        self.config = QueueConfig.coerce(config, **options)
        self._processor = processor
        self._timer: TimerProtocol = timer if timer is not None else EventLoopTimer()

        self._items: deque[Item] = deque()
        self._paused = self.config.start_paused
        self._active_count = 0
        self._scheduled_tick: Any = None
        # Set once an empty buffer has been handled (drain signalled or
        # clear() called); reset when new items arrive.
        self._settled = False
        self._closed = False

        self._tasks: set[Any] = set()
        self._idle_event: asyncio.Event | None = None

        self._setup_metrics(metrics_enabled, metrics_collector)

        logger.info(
            f"Initialized {self.__class__.__name__} '{self.config.name}' "
            f"(delay={self.config.delay}s, max_concurrent={self.config.max_concurrent}, "
            f"persistent={self.config.persistent}, paused={self._paused})"
        )

    def _setup_metrics(
        self,
        metrics_enabled: bool,
        metrics_collector: MetricsCollectorProtocol | None,
    ) -> None:
        """Setup metrics collection if enabled."""
        self.stats: dict[str, int] = defaultdict(int)
        self.stats.update({name: 0 for name in STAT_TO_METRIC})

        self.metrics_enabled = metrics_enabled or metrics_collector is not None
        if metrics_collector is not None:
            self.metrics_collector: MetricsCollectorProtocol | None = metrics_collector
        elif self.metrics_enabled:
            self.metrics_collector = get_metrics_collector()
        else:
            self.metrics_collector = None
        self._metric_labels = {"queue": self.config.name}

    # ===== QUERIES =====

    def size(self) -> int:
        """Number of buffered items (excludes items already dispatched)."""
        return len(self._items)

    def index_of(self, item: Item) -> int:
        """Index of the first buffered item equal to ``item``, or -1."""
        try:
            return self._items.index(item)
        except ValueError:
            return -1

    @property
    def items(self) -> list[Item]:
        """Snapshot of the buffer in processing order."""
        return list(self._items)

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def active_count(self) -> int:
        """Processor invocations dispatched and not yet completed."""
        return self._active_count

    def has_pending_tick(self) -> bool:
        return self._scheduled_tick is not None

    def is_closed(self) -> bool:
        return self._closed

    def is_idle(self) -> bool:
        """
        True when nothing will happen without further calls.

        That is: no tick is pending, no invocation is in flight, and the
        buffer is either empty or paused.
        """
        return (
            self._scheduled_tick is None
            and self._active_count == 0
            and (not self._items or self._paused)
        )

    # ===== MUTATION =====

    def enqueue_tail(self, item: Item) -> int:
        """Append one item; returns the new size."""
        return self.enqueue_tail_all([item])

    def enqueue_head(self, item: Item) -> int:
        """Prepend one item; returns the new size."""
        return self.enqueue_head_all([item])

    def enqueue_tail_all(self, items: Iterable[Item] | None) -> int:
        """
        Append a sequence of items in order; returns the new size.

        Raises:
            InvalidArgumentError: If ``items`` is a str or bytes object
        """
        return self._enqueue(items, at_head=False)

    def enqueue_head_all(self, items: Iterable[Item] | None) -> int:
        """
        Prepend a sequence of items, keeping their relative order.

        ``enqueue_head_all([a, b, c])`` on ``[x]`` gives ``[a, b, c, x]``.

        Raises:
            InvalidArgumentError: If ``items`` is a str or bytes object
        """
        return self._enqueue(items, at_head=True)

    def _enqueue(self, items: Iterable[Item] | None, at_head: bool) -> int:
        self._ensure_open()
        if items is None:
            batch: list[Item] = []
        elif isinstance(items, (str, bytes, bytearray)):
            raise InvalidArgumentError(
                f"items must be an iterable of items, not {type(items).__name__}; "
                f"use enqueue_tail()/enqueue_head() for a single value",
                argument="items",
            )
        else:
            batch = list(items)

        if at_head:
            self._items.extendleft(reversed(batch))
        else:
            self._items.extend(batch)

        try:
            size = self._after_mutation()
        except Exception:
            # Arming failed: take the batch back out so the buffer is unchanged
            for _ in batch:
                if at_head:
                    self._items.popleft()
                else:
                    self._items.pop()
            self._state_changed()
            raise

        self._note_enqueued(len(batch))
        return size

    def clear(self) -> list[Item]:
        """
        Disarm the pending tick and empty the buffer.

        In-flight invocations are not cancelled. Safe to call on an empty
        or closed scheduler.

        Returns:
            The removed items in their buffered order
        """
        self._disarm()
        removed = list(self._items)
        self._items.clear()
        self._settled = True
        if removed:
            self._count(STAT_ITEMS_CLEARED, len(removed))
            logger.debug(f"Cleared {len(removed)} item(s) from queue '{self.config.name}'")
        self._state_changed()
        return removed

    # ===== RUN CONTROL =====

    def pause(self) -> None:
        """Cancel the pending tick and stop dispatching until resume()."""
        self._disarm()
        if not self._paused:
            logger.debug(f"Queue '{self.config.name}' paused")
        self._paused = True
        self._state_changed()

    def resume(self) -> None:
        """
        Clear the paused flag and arm a tick if there is work to do.

        The first dispatch after a resume is not delayed; ``delay`` only
        separates consecutive dispatches.
        """
        self._ensure_open()
        if self._paused:
            logger.debug(f"Queue '{self.config.name}' resumed")
        self._paused = False
        if self._items and self._scheduled_tick is None:
            self._arm(0.0)
        self._state_changed()

    def start(self) -> None:
        """Start processing; same as resume()."""
        self.resume()

    def close(self) -> list[Item]:
        """
        Pause, clear and retire the scheduler.

        Later enqueue or resume calls raise SchedulerClosedError; pause(),
        clear() and all queries keep working. In-flight invocations are
        left to finish. Calling close() twice is harmless.

        Returns:
            Items that were still buffered
        """
        if self._closed:
            return []
        self.pause()
        removed = self.clear()
        self._closed = True
        logger.info(
            f"{self.__class__.__name__} '{self.config.name}' closed "
            f"({len(removed)} item(s) dropped, {self._active_count} in flight)"
        )
        return removed

    async def join(self) -> None:
        """
        Wait until the scheduler is idle (see is_idle()).

        Requires the scheduler's timer callbacks to run on the current
        event loop.
        """
        while not self.is_idle():
            if self._idle_event is None:
                self._idle_event = asyncio.Event()
            self._idle_event.clear()
            await self._idle_event.wait()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    async def __aenter__(self) -> Self:
        """
        Async context manager entry.

        Example:
            async with Scheduler(process) as queue:
                queue.enqueue_tail(item)
                await queue.join()
        """
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Close the scheduler even if the block raised."""
        self.close()

    # ===== TICK =====

    def _tick(self) -> None:
        """One evaluation of the scheduling algorithm."""
        self._scheduled_tick = None
        self._count(STAT_TICKS)

        if self._paused:
            logger.debug(f"Tick on paused queue '{self.config.name}', stopping")
            self._state_changed()
            return

        max_concurrent = self.config.max_concurrent
        if self.config.is_bounded and self._active_count >= max_concurrent:
            logger.debug(
                f"Queue '{self.config.name}' saturated "
                f"({self._active_count}/{max_concurrent}), waiting for a completion"
            )
            return

        if not self._items:
            try:
                self._on_empty()
            finally:
                self._state_changed()
            return

        item = self._items.popleft()
        self._active_count += 1
        self._dispatch(item)

        if not self.config.is_bounded and not self._paused and not self._closed:
            self._arm(self.config.delay)
        self._state_changed()

    def _on_empty(self) -> None:
        if self.config.persistent or self._settled:
            self._settled = True
            logger.debug(f"Queue '{self.config.name}' idle, waiting for more items")
            return

        self._settled = True
        self._count(STAT_DRAINS)
        logger.debug(f"Queue '{self.config.name}' drained")
        if self.config.on_complete is not None:
            self.config.on_complete()

    def _dispatch(self, item: Item) -> None:
        started = time.monotonic()
        self._count(STAT_ITEMS_DISPATCHED)
        try:
            result = self._processor(item)
        except Exception:
            logger.exception(f"Processor raised for queue '{self.config.name}'")
            self._finish_invocation(started, failed=True)
            return
        self._track_completion(result, started)

    def _track_completion(self, result: Any, started: float) -> None:
        """Wait on whatever completion signal the processor returned."""
        signal: Any
        if isinstance(result, concurrent.futures.Future):
            if _running_loop() is not None:
                # Route thread-pool completions back onto the loop
                signal = asyncio.wrap_future(result)
            else:
                self._tasks.add(result)
                result.add_done_callback(
                    partial(
                        self._on_pool_done,
                        started=started,
                        owner=threading.get_ident(),
                    )
                )
                return
        elif isinstance(result, asyncio.Future):
            signal = result
        elif inspect.isawaitable(result):
            if _running_loop() is None:
                if inspect.iscoroutine(result):
                    result.close()
                logger.error(
                    f"Processor for queue '{self.config.name}' returned an awaitable "
                    f"but no event loop is running"
                )
                self._finish_invocation(started, failed=True)
                return
            signal = asyncio.ensure_future(result)
        else:
            self._finish_invocation(started, failed=False)
            return

        self._tasks.add(signal)
        signal.add_done_callback(partial(self._on_signal_done, started=started))

    def _on_pool_done(
        self, signal: concurrent.futures.Future, started: float, owner: int
    ) -> None:
        """
        Done-callback for a thread-pool future when no event loop is running.

        The callback runs on whichever thread completed the future. Only the
        dispatching thread may touch scheduler state, so a completion from a
        worker thread is handed to the timer and finished when the timer
        next runs its callbacks.
        """
        if threading.get_ident() == owner:
            self._on_signal_done(signal, started=started)
            return
        self._timer.schedule(0.0, partial(self._on_signal_done, signal, started=started))

    def _on_signal_done(self, signal: Any, started: float) -> None:
        self._tasks.discard(signal)
        failed = False
        if signal.cancelled():
            failed = True
            logger.debug(f"Invocation on queue '{self.config.name}' was cancelled")
        else:
            exc = signal.exception()
            if exc is not None:
                failed = True
                logger.error(
                    f"Processor failed for queue '{self.config.name}': {exc!r}",
                    exc_info=exc,
                )
        self._finish_invocation(started, failed)

    def _finish_invocation(self, started: float, failed: bool) -> None:
        self._active_count = max(0, self._active_count - 1)
        self._count(STAT_INVOCATIONS_FAILED if failed else STAT_INVOCATIONS_COMPLETED)
        if self.metrics_collector is not None:
            self.metrics_collector.observe_histogram(
                INVOCATION_DURATION_SECONDS,
                time.monotonic() - started,
                labels=self._metric_labels,
            )

        # Bounded mode is driven by completions
        if self.config.is_bounded and not self._paused and not self._closed:
            self._arm(self.config.delay)
        self._state_changed()

    # ===== HELPERS =====

    def _arm(self, delay: float) -> None:
        self._disarm()
        self._scheduled_tick = self._timer.schedule(delay, self._tick)

    def _disarm(self) -> None:
        if self._scheduled_tick is not None:
            self._timer.cancel(self._scheduled_tick)
            self._scheduled_tick = None

    def _ensure_open(self) -> None:
        if self._closed:
            raise SchedulerClosedError(
                f"Queue '{self.config.name}' is closed", queue_name=self.config.name
            )

    def _note_enqueued(self, count: int) -> None:
        if count:
            self._settled = False
            self._count(STAT_ITEMS_ENQUEUED, count)
            logger.debug(
                f"Enqueued {count} item(s) on queue '{self.config.name}' "
                f"(size={len(self._items)})"
            )

    def _after_mutation(self) -> int:
        if not self._paused:
            self.resume()
        else:
            self._state_changed()
        return self.size()

    def _count(self, stat: str, value: int = 1) -> None:
        self.stats[stat] += value
        if self.metrics_collector is not None:
            self.metrics_collector.inc_counter(
                STAT_TO_METRIC[stat], value, labels=self._metric_labels
            )

    def _state_changed(self) -> None:
        if self.metrics_collector is not None:
            self.metrics_collector.set_gauge(
                QUEUE_DEPTH, len(self._items), labels=self._metric_labels
            )
            self.metrics_collector.set_gauge(
                ACTIVE_INVOCATIONS, self._active_count, labels=self._metric_labels
            )
        if self._idle_event is not None and self.is_idle():
            self._idle_event.set()

    def get_metrics(self) -> dict[str, Any]:
        """
        Get current scheduler state and counters.

        Returns:
            Dictionary suitable for JSON serialization
        """
        metrics: dict[str, Any] = {
            "scheduler_type": self.__class__.__name__,
            "queue": self.config.name,
            "size": len(self._items),
            "active_count": self._active_count,
            "paused": self._paused,
            "closed": self._closed,
            "pending_tick": self._scheduled_tick is not None,
            "persistent": self.config.persistent,
            "max_concurrent": self.config.max_concurrent,
            "delay": self.config.delay,
        }
        metrics.update(self.stats)

        if self.metrics_enabled and hasattr(self.metrics_collector, "get_flat_metrics"):
            metrics["unified_metrics"] = self.metrics_collector.get_flat_metrics()  # type: ignore[union-attr]

        return metrics

    def __repr__(self) -> str:
        state = "closed" if self._closed else "paused" if self._paused else "running"
        return (
            f"<{self.__class__.__name__} {self.config.name!r} {state} "
            f"size={len(self._items)} active={self._active_count}>"
        )


# Factory function mirroring the keyword-driven construction style
def create_scheduler(
    processor: Processor[Item],
    config: QueueConfig | Mapping[str, Any] | None = None,
    timer: TimerProtocol | None = None,
    **kwargs: Any,
) -> Scheduler[Item]:
    """
    Factory function to create a Scheduler.

    Args:
        processor: Callable invoked once per dispatched item
        config: Optional QueueConfig or options mapping
        timer: Optional timer (default: EventLoopTimer)
        **kwargs: Queue options (``delay``, ``persistent``, ``max_concurrent``,
            ``on_complete``, ``start_paused``, ``name``) or Scheduler keyword
            arguments (``metrics_enabled``, ``metrics_collector``)

    Returns:
        Configured Scheduler instance

    Raises:
        InvalidArgumentError: If processor is not callable
        ConfigurationError: If options are invalid
    """
    return Scheduler(processor, config, timer=timer, **kwargs)


__all__ = [
    "STAT_TO_METRIC",
    "Scheduler",
    "create_scheduler",
]
