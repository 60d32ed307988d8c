# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
asyncio-backed timer for the paced queue scheduler.

Callbacks run on the event loop via ``loop.call_later``; handles are the
``asyncio.TimerHandle`` objects returned by the loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class EventLoopTimer:
    """
    Timer that defers callbacks onto an asyncio event loop.

    The loop is bound lazily: if none is passed in, the first call to
    ``schedule`` captures the running loop. Scheduling from a thread with
    no running loop is a usage error.

    Example:
        >>> timer = EventLoopTimer()
        >>> handle = timer.schedule(0.5, callback)   # inside a coroutine
        >>> timer.cancel(handle)
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop | None:
        """The bound event loop, or None until the first schedule call."""
        return self._loop

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None or self._loop.is_closed():
            try:
                self._loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise RuntimeError(
                    "EventLoopTimer needs a running event loop; "
                    "pass loop= or use ManualTimer outside asyncio"
                ) from e
        return self._loop

    def schedule(self, delay: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        """Run ``callback`` on the loop after ``delay`` seconds."""
        loop = self._get_loop()
        handle = loop.call_later(max(0.0, delay), callback)
        logger.debug(f"Scheduled callback in {delay:.3f}s")
        return handle

    def cancel(self, handle: Any) -> None:
        """Cancel a pending handle. Cancelling a fired handle is a no-op."""
        if handle is not None:
            handle.cancel()


__all__ = ["EventLoopTimer"]
