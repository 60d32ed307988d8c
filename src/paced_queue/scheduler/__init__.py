# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""
Paced queue scheduler.

This module provides:
- QueueConfig: Configuration for one queue
- Scheduler: The paced, pausable queue itself
- create_scheduler: Keyword-driven factory
"""

from .config import DEFAULT_DELAY, UNBOUNDED, QueueConfig
from .scheduler import Scheduler, create_scheduler

__all__ = [
    "DEFAULT_DELAY",
    "UNBOUNDED",
    # Config
    "QueueConfig",
    # Scheduler
    "Scheduler",
    "create_scheduler",
]
