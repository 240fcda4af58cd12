"""
Tasklane - Timer Registry

One-shot countdowns keyed by task id, backed by APScheduler date jobs.

The registry is the source of truth for "is this task ticking". It is
process-local: a restart loses every entry (see TaskLifecycle.recover).
"""
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from ..config.logging import log_error

logger = logging.getLogger("tasklane.scheduler.timers")


@dataclass
class TimerHandle:
    """A registered countdown. Identity is what matters: see TimerRegistry.is_current."""
    task_id: int
    delay_ms: int
    run_at: datetime
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    fired: bool = False


FireCallback = Callable[[TimerHandle], None]


class TimerRegistry:
    """
    Per-task countdown registry.

    Operations:
        - schedule(): register a countdown (at most one per task)
        - cancel(): stop and remove a countdown
        - is_active(): existence check
        - is_current(): whether a handle is still the registered one
        - discard(): drop an entry after its countdown fired
    """

    def __init__(self, scheduler=None):
        """
        Args:
            scheduler: APScheduler scheduler. If None, a private
                BackgroundScheduler is created.
        """
        self._scheduler = scheduler if scheduler is not None else BackgroundScheduler(timezone=timezone.utc)
        self._entries: Dict[int, TimerHandle] = {}
        self._lock = threading.Lock()

    # ==================== LIFECYCLE ====================

    def start(self) -> None:
        """Start the underlying scheduler."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Timer scheduler started")

    def shutdown(self) -> None:
        """Stop the underlying scheduler. Pending countdowns are dropped."""
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Timer scheduler stopped (%d timers dropped)", len(self))

    # ==================== COUNTDOWNS ====================

    def schedule(
        self,
        task_id: int,
        delay_ms: int,
        on_fire: FireCallback,
    ) -> Optional[TimerHandle]:
        """
        Register a countdown that calls ``on_fire(handle)`` once.

        Args:
            task_id: Task ID
            delay_ms: Delay in milliseconds; 0 fires as soon as possible
            on_fire: Callback run on a scheduler worker thread

        Returns:
            The new handle, or None if the task already has a countdown
        """
        delay_ms = max(0, int(delay_ms))
        run_at = datetime.now(timezone.utc) + timedelta(milliseconds=delay_ms)

        with self._lock:
            if task_id in self._entries:
                logger.warning("Timer already registered for task %s; not scheduling", task_id)
                return None

            handle = TimerHandle(task_id=task_id, delay_ms=delay_ms, run_at=run_at)
            self._entries[task_id] = handle
            try:
                self._scheduler.add_job(
                    self._fire,
                    DateTrigger(run_date=run_at),
                    args=[handle, on_fire],
                    id=handle.job_id,
                    misfire_grace_time=None,
                )
            except Exception:
                del self._entries[task_id]
                raise

        logger.debug("Timer scheduled for task %s in %sms", task_id, delay_ms)
        return handle

    def cancel(self, task_id: int) -> bool:
        """
        Stop a countdown before it fires and remove it.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            handle = self._entries.pop(task_id, None)
            if handle is None:
                return False

            if not handle.fired:
                try:
                    self._scheduler.remove_job(handle.job_id)
                except JobLookupError:
                    # Already handed to a worker; is_current() now rejects it
                    logger.debug("Timer job for task %s already dispatched", task_id)

        logger.debug("Timer cancelled for task %s", task_id)
        return True

    def is_active(self, task_id: int) -> bool:
        with self._lock:
            return task_id in self._entries

    def is_current(self, task_id: int, handle: TimerHandle) -> bool:
        with self._lock:
            return self._entries.get(task_id) is handle

    def get(self, task_id: int) -> Optional[TimerHandle]:
        with self._lock:
            return self._entries.get(task_id)

    def discard(self, task_id: int, handle: TimerHandle) -> None:
        """Remove the entry for a fired countdown, if it is still registered."""
        with self._lock:
            if self._entries.get(task_id) is handle:
                del self._entries[task_id]

    def active_ids(self) -> List[int]:
        with self._lock:
            return sorted(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ==================== HELPERS ====================

    def _fire(self, handle: TimerHandle, on_fire: FireCallback) -> None:
        """Scheduler job body."""
        handle.fired = True
        try:
            on_fire(handle)
        except Exception as e:
            log_error(logger, e, context="timer fire", task_id=handle.task_id)
