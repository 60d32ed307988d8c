"""
Unit tests for Scheduler construction, buffer operations and queries.

Tick behaviour lives in test_tick_loop.py; these tests keep the scheduler
paused or avoid advancing the timer so only the buffer is exercised.
"""

import concurrent.futures
from unittest.mock import Mock

import pytest

from paced_queue.exceptions import ConfigurationError, InvalidArgumentError
from paced_queue.scheduler.config import QueueConfig
from paced_queue.scheduler.scheduler import STAT_TO_METRIC, Scheduler, create_scheduler
from paced_queue.timers.event_loop import EventLoopTimer
from paced_queue.timers.manual import ManualTimer


class TestSchedulerInit:
    def test_defaults(self, timer):
        queue = Scheduler(Mock(), timer=timer)

        assert queue.config == QueueConfig()
        assert queue.size() == 0
        assert queue.active_count == 0
        assert not queue.paused
        assert not queue.is_closed()
        assert not queue.has_pending_tick()
        assert queue.is_idle()

    def test_default_timer_is_event_loop_timer(self):
        """Building outside a loop is fine; the loop is bound on first schedule."""
        queue = Scheduler(Mock())
        assert isinstance(queue._timer, EventLoopTimer)

    @pytest.mark.parametrize("processor", [None, 42, "process", object()])
    def test_rejects_non_callable_processor(self, processor, timer):
        with pytest.raises(InvalidArgumentError) as exc_info:
            Scheduler(processor, timer=timer)
        assert exc_info.value.argument == "processor"

    def test_invalid_argument_is_type_error(self, timer):
        with pytest.raises(TypeError):
            Scheduler(None, timer=timer)

    def test_rejects_timer_without_protocol(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            Scheduler(Mock(), timer=object())
        assert exc_info.value.argument == "timer"

    def test_config_object(self, timer):
        config = QueueConfig(name="jobs", delay=1.0)
        queue = Scheduler(Mock(), config, timer=timer)
        assert queue.config is config

    def test_options_mapping(self, timer):
        queue = Scheduler(Mock(), {"maxConcurrent": 2, "startPaused": True}, timer=timer)
        assert queue.config.max_concurrent == 2
        assert queue.paused

    def test_keyword_options(self, timer):
        queue = Scheduler(Mock(), timer=timer, delay=0.5, persistent=True, name="mail")
        assert queue.config.delay == 0.5
        assert queue.config.persistent is True
        assert queue.config.name == "mail"

    def test_invalid_options(self, timer):
        with pytest.raises(ConfigurationError):
            Scheduler(Mock(), timer=timer, delay=-1)

    def test_stats_start_at_zero(self, timer):
        queue = Scheduler(Mock(), timer=timer)
        assert set(queue.stats) == set(STAT_TO_METRIC)
        assert all(value == 0 for value in queue.stats.values())

    def test_logs_initialization(self, timer, caplog):
        with caplog.at_level("INFO", logger="paced_queue"):
            Scheduler(Mock(), timer=timer, name="emails")
        assert "Initialized Scheduler 'emails'" in caplog.text


class TestEnqueue:
    @pytest.fixture
    def queue(self, timer):
        return Scheduler(Mock(), timer=timer, start_paused=True)

    def test_enqueue_tail_returns_size(self, queue):
        assert queue.enqueue_tail("a") == 1
        assert queue.enqueue_tail("b") == 2
        assert queue.items == ["a", "b"]

    def test_enqueue_head_returns_size(self, queue):
        queue.enqueue_tail("a")
        assert queue.enqueue_head("b") == 2
        assert queue.items == ["b", "a"]

    def test_enqueue_tail_all(self, queue):
        queue.enqueue_tail("x")
        assert queue.enqueue_tail_all(["a", "b", "c"]) == 4
        assert queue.items == ["x", "a", "b", "c"]

    def test_enqueue_head_all_keeps_batch_order(self, queue):
        queue.enqueue_tail("x")
        assert queue.enqueue_head_all(["a", "b", "c"]) == 4
        assert queue.items == ["a", "b", "c", "x"]

    def test_accepts_any_iterable(self, queue):
        queue.enqueue_tail_all(item for item in range(3))
        queue.enqueue_head_all(("y", "z"))
        assert queue.items == ["y", "z", 0, 1, 2]

    @pytest.mark.parametrize("items", [None, []])
    def test_empty_batch_adds_nothing(self, queue, items):
        queue.enqueue_tail("a")
        assert queue.enqueue_tail_all(items) == 1
        assert queue.enqueue_head_all(items) == 1
        assert queue.stats["items_enqueued"] == 1

    def test_none_is_a_valid_item(self, queue):
        """Items are opaque; None enqueued singly is stored."""
        assert queue.enqueue_tail(None) == 1
        assert queue.items == [None]

    def test_duplicates_allowed(self, queue):
        queue.enqueue_tail_all(["a", "a"])
        assert queue.size() == 2

    def test_counts_enqueued_items(self, queue):
        queue.enqueue_tail_all(["a", "b"])
        queue.enqueue_head("c")
        assert queue.stats["items_enqueued"] == 3

    def test_empty_batch_does_not_arm_idle_queue(self, timer):
        queue = Scheduler(Mock(), timer=timer)
        queue.enqueue_tail_all([])
        assert not queue.has_pending_tick()


class UnavailableTimer(ManualTimer):
    """ManualTimer whose schedule() can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.available = True

    def schedule(self, delay, callback):
        if not self.available:
            raise RuntimeError("timer unavailable")
        return super().schedule(delay, callback)


class TestEnqueueRollback:
    """An enqueue whose tick cannot be armed leaves the buffer as it was."""

    @pytest.mark.parametrize(
        "call",
        [
            lambda q: q.enqueue_tail("z"),
            lambda q: q.enqueue_head("z"),
            lambda q: q.enqueue_tail_all(["y", "z"]),
            lambda q: q.enqueue_head_all(["y", "z"]),
        ],
    )
    def test_buffer_unchanged_when_arming_fails(self, call):
        timer = UnavailableTimer()
        queue = Scheduler(
            lambda item: concurrent.futures.Future(), timer=timer, max_concurrent=1
        )
        queue.enqueue_tail_all(["a", "b"])
        timer.advance(0)
        queue.enqueue_tail("c")
        timer.advance(0)
        # Saturated with no tick pending, so the next enqueue has to arm one
        assert queue.items == ["b", "c"]
        assert not queue.has_pending_tick()

        timer.available = False
        with pytest.raises(RuntimeError, match="timer unavailable"):
            call(queue)

        assert queue.items == ["b", "c"]
        assert queue.stats["items_enqueued"] == 3

    def test_enqueue_works_once_timer_recovers(self):
        timer = UnavailableTimer()
        timer.available = False
        queue = Scheduler(Mock(), timer=timer)

        with pytest.raises(RuntimeError):
            queue.enqueue_tail("a")
        timer.available = True

        assert queue.enqueue_tail("a") == 1
        assert queue.has_pending_tick()


class TestStringBatches:
    @pytest.mark.parametrize("batch", ["job", b"job", bytearray(b"job")])
    def test_string_batch_rejected(self, timer, batch):
        queue = Scheduler(Mock(), timer=timer, start_paused=True)

        with pytest.raises(InvalidArgumentError) as exc_info:
            queue.enqueue_tail_all(batch)
        with pytest.raises(InvalidArgumentError):
            queue.enqueue_head_all(batch)

        assert exc_info.value.argument == "items"
        assert queue.size() == 0

    def test_single_string_item_kept_whole(self, timer):
        queue = Scheduler(Mock(), timer=timer, start_paused=True)
        queue.enqueue_tail("job")
        queue.enqueue_head(b"raw")
        queue.enqueue_tail_all(["a", "bc"])
        assert queue.items == [b"raw", "job", "a", "bc"]


class TestIndexOf:
    def test_found(self, timer):
        queue = Scheduler(Mock(), timer=timer, start_paused=True)
        queue.enqueue_tail_all(["a", "b", "c"])
        assert queue.index_of("a") == 0
        assert queue.index_of("c") == 2

    def test_missing(self, timer):
        queue = Scheduler(Mock(), timer=timer, start_paused=True)
        queue.enqueue_tail("a")
        assert queue.index_of("z") == -1

    def test_first_match_wins(self, timer):
        queue = Scheduler(Mock(), timer=timer, start_paused=True)
        queue.enqueue_tail_all(["a", "b", "a"])
        assert queue.index_of("a") == 0

    def test_uses_equality(self, timer):
        queue = Scheduler(Mock(), timer=timer, start_paused=True)
        queue.enqueue_tail({"id": 1})
        assert queue.index_of({"id": 1}) == 0

    def test_dispatched_items_no_longer_found(self, timer, recorder):
        queue = Scheduler(recorder, timer=timer, delay=1.0)
        queue.enqueue_tail_all(["a", "b"])
        timer.advance(0)
        assert queue.index_of("a") == -1
        assert queue.index_of("b") == 0


class TestClear:
    def test_returns_snapshot(self, timer):
        queue = Scheduler(Mock(), timer=timer, start_paused=True)
        queue.enqueue_tail_all(["a", "b", "c"])

        removed = queue.clear()

        assert removed == ["a", "b", "c"]
        assert queue.size() == 0

    def test_snapshot_is_independent(self, timer):
        queue = Scheduler(Mock(), timer=timer, start_paused=True)
        queue.enqueue_tail("a")
        removed = queue.clear()
        queue.enqueue_tail("b")
        assert removed == ["a"]

    def test_clear_empty(self, timer):
        queue = Scheduler(Mock(), timer=timer)
        assert queue.clear() == []
        assert queue.stats["items_cleared"] == 0

    def test_disarms_pending_tick(self, timer):
        processor = Mock()
        queue = Scheduler(processor, timer=timer)
        queue.enqueue_tail("a")
        assert queue.has_pending_tick()

        queue.clear()
        timer.advance(10.0)

        assert not queue.has_pending_tick()
        processor.assert_not_called()

    def test_does_not_change_pause_state(self, timer):
        queue = Scheduler(Mock(), timer=timer)
        queue.clear()
        assert not queue.paused

    def test_counts_cleared_items(self, timer):
        queue = Scheduler(Mock(), timer=timer, start_paused=True)
        queue.enqueue_tail_all(["a", "b"])
        queue.clear()
        assert queue.stats["items_cleared"] == 2


class TestQueries:
    def test_paused_property(self, timer):
        queue = Scheduler(Mock(), timer=timer)
        assert queue.paused is False
        queue.pause()
        assert queue.paused is True
        assert not hasattr(queue, "is_paused")

    def test_items_is_a_copy(self, timer):
        queue = Scheduler(Mock(), timer=timer, start_paused=True)
        queue.enqueue_tail("a")
        queue.items.append("b")
        assert queue.size() == 1

    def test_paused_with_items_is_idle(self, timer):
        queue = Scheduler(Mock(), timer=timer, start_paused=True)
        queue.enqueue_tail("a")
        assert queue.is_idle()

    def test_armed_queue_is_not_idle(self, timer):
        queue = Scheduler(Mock(), timer=timer)
        queue.enqueue_tail("a")
        assert not queue.is_idle()

    def test_get_metrics(self, timer):
        queue = Scheduler(lambda item: None, timer=timer, name="jobs", max_concurrent=2)
        queue.enqueue_tail_all(["a", "b"])
        timer.advance(0)

        metrics = queue.get_metrics()

        assert metrics["scheduler_type"] == "Scheduler"
        assert metrics["queue"] == "jobs"
        assert metrics["size"] == 1
        assert metrics["active_count"] == 0
        assert metrics["paused"] is False
        assert metrics["closed"] is False
        assert metrics["pending_tick"] is True
        assert metrics["max_concurrent"] == 2
        assert metrics["items_enqueued"] == 2
        assert metrics["items_dispatched"] == 1
        assert metrics["invocations_completed"] == 1
        assert "unified_metrics" not in metrics

    def test_repr(self, timer):
        queue = Scheduler(Mock(), timer=timer, name="jobs", start_paused=True)
        queue.enqueue_tail("a")
        assert repr(queue) == "<Scheduler 'jobs' paused size=1 active=0>"
        queue.close()
        assert repr(queue) == "<Scheduler 'jobs' closed size=0 active=0>"


class TestCreateScheduler:
    def test_factory(self, timer):
        processor = Mock()
        queue = create_scheduler(processor, timer=timer, delay=0.25, persistent=True)

        assert isinstance(queue, Scheduler)
        assert queue.config.delay == 0.25
        assert queue.config.persistent is True

    def test_factory_with_mapping(self, timer):
        queue = create_scheduler(Mock(), {"onComplete": Mock()}, timer)
        assert queue.config.on_complete is not None

    def test_factory_validates_processor(self, timer):
        with pytest.raises(InvalidArgumentError):
            create_scheduler("nope", timer=timer)
