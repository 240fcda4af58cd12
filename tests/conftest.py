"""
Shared pytest fixtures for the Tasklane test suite.

Lifecycle tests drive time with FakeClock and fire countdowns by hand
through ManualScheduler, so elapsed-time math is exact.
"""
import random
from datetime import datetime, timedelta, timezone

import pytest
from apscheduler.jobstores.base import JobLookupError

from tasklane.storage import Database
from tasklane.kernel import TaskStore, TaskLifecycle
from tasklane.scheduler import TimerRegistry


class ManualScheduler:
    """Scheduler stand-in: jobs only run when fired."""

    def __init__(self):
        self.running = False
        self.jobs = {}

    def start(self):
        self.running = True

    def shutdown(self, wait=True):
        self.running = False

    def add_job(self, func, trigger, args=None, id=None, **kwargs):
        self.jobs[id] = (func, list(args or []), trigger)

    def remove_job(self, job_id):
        if job_id not in self.jobs:
            raise JobLookupError(job_id)
        del self.jobs[job_id]

    def dispatch(self, job_id):
        """Take a job off the schedule as a worker would; returns a runner."""
        func, args, _ = self.jobs.pop(job_id)
        return lambda: func(*args)

    def fire(self, job_id):
        self.dispatch(job_id)()


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += timedelta(milliseconds=ms)


@pytest.fixture
def db(tmp_path):
    """Fresh database for each test."""
    return Database(tmp_path / "test.sqlite3")


@pytest.fixture
def store(db):
    return TaskStore(db)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def timers(scheduler):
    return TimerRegistry(scheduler)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lifecycle(store, timers, clock):
    """Engine with manual timers and a fake clock."""
    return TaskLifecycle(store, timers, clock=clock, rng=random.Random(7))


@pytest.fixture
def fire(timers, scheduler):
    """Fire the registered countdown of a task."""
    def _fire(task_id):
        handle = timers.get(task_id)
        assert handle is not None, f"no timer for task {task_id}"
        scheduler.fire(handle.job_id)
    return _fire
