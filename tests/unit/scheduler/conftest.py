"""Shared fixtures for scheduler unit tests.

Most scheduler tests run on a ManualTimer so tick cadence can be checked
without sleeping: ``timer.advance(seconds)`` fires every tick that became
due, synchronously.
"""

import concurrent.futures

import pytest

from paced_queue.timers.manual import ManualTimer


class RecordingProcessor:
    """Processor that records (virtual time, item) for each dispatch."""

    def __init__(self, timer: ManualTimer) -> None:
        self.timer = timer
        self.calls: list[tuple[float, object]] = []

    def __call__(self, item):
        self.calls.append((self.timer.now, item))

    @property
    def items(self) -> list[object]:
        return [item for _, item in self.calls]

    @property
    def times(self) -> list[float]:
        return [when for when, _ in self.calls]


class DeferredProcessor:
    """Processor whose invocations stay outstanding until resolved by the test.

    Returns a concurrent.futures.Future per item; resolving it runs the
    scheduler's completion handling synchronously in the test thread.
    """

    def __init__(self) -> None:
        self.futures: dict[object, concurrent.futures.Future] = {}
        self.order: list[object] = []
        self.outstanding = 0
        self.max_outstanding = 0

    def __call__(self, item):
        future: concurrent.futures.Future = concurrent.futures.Future()
        self.futures[item] = future
        self.order.append(item)
        self.outstanding += 1
        self.max_outstanding = max(self.max_outstanding, self.outstanding)
        return future

    def complete(self, item, error: BaseException | None = None) -> None:
        self.outstanding -= 1
        if error is None:
            self.futures[item].set_result(None)
        else:
            self.futures[item].set_exception(error)


@pytest.fixture
def timer():
    return ManualTimer()


@pytest.fixture
def recorder(timer):
    return RecordingProcessor(timer)


@pytest.fixture
def deferred():
    return DeferredProcessor()
