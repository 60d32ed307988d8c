# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Type aliases for the caller-supplied processor and completion callback."""

from collections.abc import Callable
from typing import Any, TypeVar

Item = TypeVar("Item")

Processor = Callable[[Item], Any]
"""Called once per dispatched item.

May return a plain value (the invocation is complete as soon as the call
returns), an awaitable (coroutine, task or ``asyncio.Future``), or a
``concurrent.futures.Future``. Only completion is observed, never the
returned value.
"""

CompletionCallback = Callable[[], Any]
"""Zero-argument callback fired when a non-persistent queue drains."""
