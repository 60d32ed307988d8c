# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Protocol definitions for paced queue collaborators.

This module provides the interfaces for the pluggable pieces that surround
the scheduler.

Available protocols:
- TimerProtocol: Interface for scheduling and cancelling deferred callbacks

Supporting types:
- Processor: Callable invoked once per dispatched item
- CompletionCallback: Zero-argument drain notification
"""

from .processor import CompletionCallback, Item, Processor
from .timer import TimerProtocol

__all__ = [
    "CompletionCallback",
    "Item",
    "Processor",
    "TimerProtocol",
]
