# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Timer implementations satisfying TimerProtocol.

- EventLoopTimer: defers callbacks onto the running asyncio loop (default)
- ManualTimer: virtual clock for tests and simulations
"""

from .event_loop import EventLoopTimer
from .manual import ManualTimer

__all__ = [
    "EventLoopTimer",
    "ManualTimer",
]
