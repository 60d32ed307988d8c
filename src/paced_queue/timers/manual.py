# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Virtual-clock timer driven explicitly by the caller."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from heapq import heappop, heappush
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class _PendingCallback:
    handle: int
    due: float
    callback: Callable[[], Any]
    cancelled: bool = False


class ManualTimer:
    """
    Timer whose clock only moves when ``advance`` is called.

    Nothing runs in the background: due callbacks fire synchronously
    inside ``advance``/``run_due``, in due-time order (ties in scheduling
    order). A callback scheduled with zero delay from inside a running
    callback fires during the same ``advance`` call.

    ``schedule`` and ``cancel`` may be called from any thread; callbacks
    only ever run on the thread that calls ``advance``/``run_due``.

    Useful for deterministic tests and simulations of a scheduler's
    cadence without sleeping.

    Example:
        >>> timer = ManualTimer()
        >>> queue = Scheduler(processor, delay=1.0, timer=timer)
        >>> queue.enqueue_tail_all(["a", "b"])
        2
        >>> timer.advance(0)      # first dispatch has no delay
        1
        >>> timer.advance(1.0)    # next dispatch after the configured delay
        1
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._next_handle = 1
        self._pending: dict[int, _PendingCallback] = {}
        self._heap: list[tuple[float, int]] = []
        self._lock = threading.Lock()

    @property
    def now(self) -> float:
        """Current virtual time in seconds."""
        return self._now

    @property
    def pending_count(self) -> int:
        """Number of callbacks scheduled and not yet fired or cancelled."""
        with self._lock:
            return sum(1 for entry in self._pending.values() if not entry.cancelled)

    @property
    def next_due(self) -> float | None:
        """Virtual time of the earliest live callback, or None."""
        with self._lock:
            live = [entry.due for entry in self._pending.values() if not entry.cancelled]
        return min(live) if live else None

    def schedule(self, delay: float, callback: Callable[[], Any]) -> int:
        """Schedule ``callback`` at ``now + delay``; returns an integer handle."""
        if delay < 0:
            raise ValueError("delay must be >= 0")
        with self._lock:
            handle = self._next_handle
            self._next_handle += 1
            entry = _PendingCallback(
                handle=handle, due=self._now + delay, callback=callback
            )
            self._pending[handle] = entry
            heappush(self._heap, (entry.due, handle))
        return handle

    def cancel(self, handle: Any) -> None:
        """Cancel a scheduled callback if it has not fired yet."""
        with self._lock:
            entry = self._pending.get(handle)
            if entry is not None:
                entry.cancelled = True

    def advance(self, seconds: float) -> int:
        """Move the clock forward and fire everything that became due."""
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        return self.run_due(self._now + seconds)

    def _pop_due(self, until: float) -> _PendingCallback | None:
        with self._lock:
            while self._heap and self._heap[0][0] <= until:
                _, handle = heappop(self._heap)
                entry = self._pending.pop(handle, None)
                if entry is not None and not entry.cancelled:
                    self._now = max(self._now, entry.due)
                    return entry
        return None

    def run_due(self, until: float) -> int:
        """Fire callbacks due at or before ``until``; returns how many fired."""
        if until < self._now:
            raise ValueError("time cannot move backwards")
        fired = 0
        while True:
            entry = self._pop_due(until)
            if entry is None:
                break
            entry.callback()
            fired += 1
        with self._lock:
            self._now = until
        if fired:
            logger.debug(f"ManualTimer fired {fired} callback(s) up to t={until:.3f}")
        return fired

    def run_all(self, max_steps: int = 10_000) -> int:
        """Keep advancing to the next due callback until none remain."""
        fired = 0
        for _ in range(max_steps):
            due = self.next_due
            if due is None:
                return fired
            fired += self.run_due(max(due, self._now))
        raise RuntimeError(f"ManualTimer still busy after {max_steps} steps")


__all__ = ["ManualTimer"]
