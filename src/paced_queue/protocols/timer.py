# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Protocol for the host timer facility."""

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TimerProtocol(Protocol):
    """
    Minimal protocol for deferred callbacks.

    The scheduler needs nothing else from its environment: it asks the
    timer to run a callback after a delay and, later, possibly to cancel
    that callback before it fires. Handles are opaque to the scheduler.
    """

    def schedule(self, delay: float, callback: Callable[[], Any]) -> Any:
        """
        Run ``callback`` after ``delay`` seconds and return a handle.

        Outside an event loop the scheduler also calls this from worker
        threads to hand back thread-pool completions, so such timers must
        accept calls from any thread while still running callbacks on
        their own.
        """
        ...

    def cancel(self, handle: Any) -> None:
        """Cancel a handle returned by ``schedule``. Must tolerate fired handles."""
        ...
