"""Tests for the top-level paced_queue namespace."""

import paced_queue


class TestPackageExports:
    def test_version(self):
        assert paced_queue.__version__ == "1.0.0"

    def test_all_names_resolve(self):
        for name in paced_queue.__all__:
            assert hasattr(paced_queue, name), name

    def test_core_exports(self):
        from paced_queue import (
            UNBOUNDED,
            ManualTimer,
            QueueConfig,
            Scheduler,
            create_scheduler,
        )

        queue = create_scheduler(lambda item: None, timer=ManualTimer())
        assert isinstance(queue, Scheduler)
        assert queue.config == QueueConfig()
        assert queue.config.max_concurrent == UNBOUNDED

    def test_errors_share_base(self):
        for name in ("InvalidArgumentError", "ConfigurationError", "SchedulerClosedError"):
            assert issubclass(getattr(paced_queue, name), paced_queue.PacedQueueError)
