# Copyright 2026 Seth Bang
# SPDX-License-Identifier: Apache-2.0
"""Exception classes for the paced queue library.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from PacedQueueError, making it easy to catch
all queue-related exceptions with a single except clause.

Failures raised by a processor are never wrapped in these types: the
scheduler treats a failed invocation as a completed one and does not
surface processor errors to callers.
"""


class PacedQueueError(Exception):
    """Base exception for all paced queue errors.

    This is the root exception class for the paced queue library.
    Catch this exception to handle any error originating from the library.

    Example:
        try:
            queue.enqueue_tail(item)
        except PacedQueueError as e:
            logger.error(f"Queue error: {e}")
    """

    pass


class InvalidArgumentError(PacedQueueError, TypeError):
    """Raised when a scheduler is built with an unusable argument.

    The only argument the scheduler itself validates at construction is
    the processor, which must be callable. A non-callable completion
    callback is rejected the same way.

    Attributes:
        argument: Name of the offending argument, if known.

    Example:
        try:
            queue = Scheduler(processor=None)
        except InvalidArgumentError as e:
            logger.error(f"Bad argument {e.argument!r}: {e}")
    """

    def __init__(self, message: str, argument: str | None = None):
        super().__init__(message)
        self.argument = argument


class ConfigurationError(PacedQueueError, ValueError):
    """Raised when configuration is invalid.

    This exception is raised while building a QueueConfig when the
    provided values are out of range or of the wrong shape.

    Common causes include:
    - A negative inter-step delay
    - A max_concurrent value that is neither -1/None nor positive
    - A config object that is neither a QueueConfig nor a mapping

    Example:
        try:
            config = QueueConfig(delay=-1)
        except ConfigurationError as e:
            logger.error(f"Invalid configuration: {e}")
            raise SystemExit(1)
    """

    pass


class SchedulerClosedError(PacedQueueError):
    """Raised when a closed scheduler is asked to do more work.

    After ``Scheduler.close()`` the buffer is empty, the timer is
    disarmed, and any enqueue, ``resume()`` or ``start()`` call raises
    this error. ``pause()``, ``clear()`` and queries such as ``size()``
    keep working.

    Attributes:
        queue_name: Name of the closed queue, if known.

    Example:
        queue.close()
        try:
            queue.enqueue_tail(item)
        except SchedulerClosedError as e:
            logger.warning(f"Queue '{e.queue_name}' is closed")
    """

    def __init__(self, message: str, queue_name: str | None = None):
        super().__init__(message)
        self.queue_name = queue_name
