"""
Tests for the Timer Registry

Run with: pytest -q
"""
import threading
import time

import pytest

from tasklane.kernel import TaskLifecycle, TaskStatus
from tasklane.scheduler import TimerRegistry


class TestTimerRegistry:
    """Tests for TimerRegistry over a manual scheduler."""

    # ==================== SCHEDULE TESTS ====================

    def test_schedule_registers_job(self, timers, scheduler):
        """Test schedule returns a handle backed by a scheduler job."""
        handle = timers.schedule(1, 1500, lambda h: None)

        assert handle is not None
        assert handle.task_id == 1
        assert handle.delay_ms == 1500
        assert handle.job_id in scheduler.jobs
        assert timers.is_active(1)
        assert timers.is_current(1, handle)

    def test_schedule_twice_is_rejected(self, timers, scheduler):
        """Test at most one countdown per task."""
        first = timers.schedule(1, 1000, lambda h: None)
        second = timers.schedule(1, 2000, lambda h: None)

        assert second is None
        assert timers.get(1) is first
        assert len(scheduler.jobs) == 1

    def test_negative_delay_is_clamped(self, timers):
        """Test a negative delay becomes zero."""
        handle = timers.schedule(1, -50, lambda h: None)

        assert handle.delay_ms == 0

    def test_failed_add_job_leaves_no_entry(self):
        """Test a scheduler error does not leave a dangling entry."""
        class RefusingScheduler:
            running = True

            def add_job(self, *args, **kwargs):
                raise RuntimeError("refused")

        timers = TimerRegistry(RefusingScheduler())

        with pytest.raises(RuntimeError):
            timers.schedule(1, 100, lambda h: None)

        assert not timers.is_active(1)

    # ==================== CANCEL TESTS ====================

    def test_cancel_removes_job_and_entry(self, timers, scheduler):
        """Test cancel stops the countdown before it fires."""
        handle = timers.schedule(1, 1000, lambda h: None)

        assert timers.cancel(1) is True
        assert not timers.is_active(1)
        assert handle.job_id not in scheduler.jobs

    def test_cancel_absent_is_noop(self, timers):
        """Test cancel without an entry returns False."""
        assert timers.cancel(42) is False

    def test_cancel_after_dispatch_invalidates_handle(self, timers, scheduler):
        """Test a handle already given to a worker is no longer current after cancel."""
        calls = []
        handle = timers.schedule(1, 1000, calls.append)
        runner = scheduler.dispatch(handle.job_id)

        assert timers.cancel(1) is True
        runner()

        # The registry still calls back; the callback must check is_current
        assert calls == [handle]
        assert not timers.is_current(1, handle)

    # ==================== FIRE TESTS ====================

    def test_fire_marks_handle_and_calls_back(self, timers, scheduler):
        """Test firing passes the handle to the callback."""
        calls = []
        handle = timers.schedule(1, 10, calls.append)

        scheduler.fire(handle.job_id)

        assert handle.fired is True
        assert calls == [handle]

    def test_fire_callback_errors_are_contained(self, timers, scheduler, caplog):
        """Test a raising callback is logged, not propagated."""
        def explode(handle):
            raise ValueError("boom")

        handle = timers.schedule(1, 10, explode)

        scheduler.fire(handle.job_id)

        assert any("boom" in record.getMessage() for record in caplog.records)

    def test_discard_only_removes_matching_handle(self, timers):
        """Test discard ignores handles that were replaced."""
        old = timers.schedule(1, 10, lambda h: None)
        timers.cancel(1)
        new = timers.schedule(1, 10, lambda h: None)

        timers.discard(1, old)
        assert timers.get(1) is new

        timers.discard(1, new)
        assert not timers.is_active(1)

    def test_active_ids(self, timers):
        """Test active_ids lists registered tasks in order."""
        timers.schedule(3, 10, lambda h: None)
        timers.schedule(1, 10, lambda h: None)

        assert timers.active_ids() == [1, 3]
        assert len(timers) == 2

    # ==================== LIFECYCLE TESTS ====================

    def test_start_and_shutdown(self, timers, scheduler):
        """Test start/shutdown drive the underlying scheduler."""
        timers.start()
        assert scheduler.running is True

        timers.shutdown()
        assert scheduler.running is False


class TestBackgroundTimers:
    """Tests against a real APScheduler BackgroundScheduler."""

    @pytest.fixture
    def live_timers(self):
        timers = TimerRegistry()
        timers.start()
        yield timers
        timers.shutdown()

    def test_countdown_fires(self, live_timers):
        """Test a short countdown fires on a worker thread."""
        fired = threading.Event()

        live_timers.schedule(1, 50, lambda h: fired.set())

        assert fired.wait(timeout=5)

    def test_cancelled_countdown_never_fires(self, live_timers):
        """Test cancel before the deadline prevents the callback."""
        fired = threading.Event()

        live_timers.schedule(1, 300, lambda h: fired.set())
        live_timers.cancel(1)

        assert not fired.wait(timeout=0.6)

    def test_task_completes_end_to_end(self, live_timers, store):
        """Test a real run completes after its duration."""
        engine = TaskLifecycle(store, live_timers)
        task = store.create(title="Quick", description="Short work", duration=100)

        engine.run(task)

        deadline = time.monotonic() + 5
        while time.monotonic() < deadline:
            if store.get(task.id).status == TaskStatus.COMPLETED:
                break
            time.sleep(0.02)

        done = store.get(task.id)
        assert done.status == TaskStatus.COMPLETED
        assert done.elapsed_time == 100
        assert not live_timers.is_active(task.id)
