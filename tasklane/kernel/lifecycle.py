"""
Tasklane - Task Lifecycle Engine

Runs, pauses, resumes, cancels and completes tasks. Reconciles the
persisted state machine with the timer registry.
"""
import logging
import random
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from .models import Task, TaskStatus
from .errors import TaskError, TaskNotFound, IllegalTransition
from .results import generate_result
from .store import TaskStore
from ..config.logging import log_error, log_task_transition
from ..scheduler.timers import TimerRegistry, TimerHandle

logger = logging.getLogger("tasklane.kernel.lifecycle")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_ms(start: Optional[datetime], end: datetime) -> int:
    """Whole milliseconds between two instants, never negative."""
    if start is None:
        return 0
    return max(0, round((end - start) / timedelta(milliseconds=1)))


class TaskLifecycle:
    """
    Task Lifecycle Engine.

    State Machine:
        NOT_STARTED --run--> IN_PROGRESS --pause--> PAUSED --resume--> IN_PROGRESS
                             │                      │
                             ├--cancel--> CANCELLED <┘
                             │            │
                             │            └--run--> IN_PROGRESS
                             └--(timer fires)--> COMPLETED

    Elapsed time is rebuilt from wall-clock deltas: ``last_run_at`` is
    captured when a countdown starts and read back when it stops.

    Every operation, including the timer fire path, holds a lock for
    its task id. Whoever takes the lock first wins a race: a fire that
    loses to pause/cancel finds its handle gone and does nothing; a
    pause/cancel that loses to a fire sees COMPLETED and is rejected.

    Store writes come before registry changes, so a failed write leaves
    the registry as it was.
    """

    def __init__(
        self,
        store: TaskStore,
        timers: Optional[TimerRegistry] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            store: Task record store
            timers: Timer registry owned by this engine. If None, a private one is created.
            clock: Returns the current aware UTC time
            rng: Random source for completion results
        """
        self.store = store
        self.timers = timers if timers is not None else TimerRegistry()
        self._clock = clock or utc_now
        self._rng = rng
        # One lock per task id ever touched; tasks are never deleted, so this
        # grows with the tasks table and no further
        self._locks: Dict[int, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ==================== RUN ====================

    def run(self, task: Task) -> Task:
        """
        Start a task from zero.

        Legal from NOT_STARTED and CANCELLED. The store shows IN_PROGRESS
        on return; the countdown may not have been picked up yet.

        Raises:
            TaskNotFound: If the task no longer exists
            IllegalTransition: If the task is not runnable
        """
        with self._lock_for(task.id):
            current = self._reload(task.id)
            if not current.status.is_runnable:
                raise IllegalTransition(current.id, current.status, "run")

            if self.timers.is_active(current.id):
                logger.info("Task %s already started", current.id)
                return current

            updated = self.store.update(
                current.id,
                status=TaskStatus.IN_PROGRESS,
                last_run_at=self._clock(),
                elapsed_time=0,
            )
            self._start_countdown(current, updated, updated.duration)

        log_task_transition(logger, updated.id, "run", updated.status.value,
                            remaining_ms=updated.duration)
        return updated

    # ==================== PAUSE ====================

    def pause(self, task: Task) -> Task:
        """
        Stop the countdown and bank the time worked since the last run/resume.

        Raises:
            TaskNotFound: If the task no longer exists
            IllegalTransition: If the task is not IN_PROGRESS
        """
        with self._lock_for(task.id):
            current = self._reload(task.id)
            if current.status is not TaskStatus.IN_PROGRESS:
                raise IllegalTransition(current.id, current.status, "pause")

            if not self.timers.is_active(current.id):
                logger.warning("Task %s has no active timer; treating as paused", current.id)
                return current

            worked = current.elapsed_time + elapsed_ms(current.last_run_at, self._clock())
            updated = self.store.update(
                current.id,
                status=TaskStatus.PAUSED,
                elapsed_time=min(current.duration, worked),
            )
            self.timers.cancel(current.id)

        log_task_transition(logger, updated.id, "pause", updated.status.value,
                            elapsed_ms=updated.elapsed_time)
        return updated

    # ==================== RESUME ====================

    def resume(self, task: Task) -> Task:
        """
        Restart the countdown for the work that is left.

        A task with nothing left completes as soon as the scheduler
        picks up its zero-delay countdown.

        Raises:
            TaskNotFound: If the task no longer exists
            IllegalTransition: If the task is not PAUSED
        """
        with self._lock_for(task.id):
            current = self._reload(task.id)
            if current.status is not TaskStatus.PAUSED:
                raise IllegalTransition(current.id, current.status, "resume")

            if self.timers.is_active(current.id):
                logger.info("Task %s already running", current.id)
                return current

            remaining = current.remaining
            updated = self.store.update(
                current.id,
                status=TaskStatus.IN_PROGRESS,
                last_run_at=self._clock(),
            )
            self._start_countdown(current, updated, remaining)

        log_task_transition(logger, updated.id, "resume", updated.status.value,
                            remaining_ms=remaining)
        return updated

    # ==================== CANCEL ====================

    def cancel(self, task: Task) -> Task:
        """
        Cancel a running or paused task. Progress is forfeited.

        Raises:
            TaskNotFound: If the task no longer exists
            IllegalTransition: If the task is neither IN_PROGRESS nor PAUSED
        """
        with self._lock_for(task.id):
            current = self._reload(task.id)
            if current.status not in (TaskStatus.IN_PROGRESS, TaskStatus.PAUSED):
                raise IllegalTransition(current.id, current.status, "cancel")

            updated = self.store.update(
                current.id,
                status=TaskStatus.CANCELLED,
                elapsed_time=0,
            )
            stopped = self.timers.cancel(current.id)

        log_task_transition(logger, updated.id, "cancel", updated.status.value,
                            timer_stopped=stopped)
        return updated

    # ==================== RECOVERY ====================

    def recover(self) -> int:
        """
        Reschedule IN_PROGRESS tasks that have no countdown, e.g. after a restart.

        Time since ``last_run_at`` counts as worked, so nothing is written:
        the countdown covers what is left and completion does the accounting.

        Returns:
            Number of countdowns scheduled
        """
        recovered = 0
        for task in self.store.list_by_status(TaskStatus.IN_PROGRESS):
            with self._lock_for(task.id):
                current = self._reload(task.id)
                if current.status is not TaskStatus.IN_PROGRESS:
                    continue
                if self.timers.is_active(current.id):
                    continue

                worked = current.elapsed_time + elapsed_ms(current.last_run_at, self._clock())
                remaining = max(0, current.duration - worked)
                self.timers.schedule(current.id, remaining, self._on_timer_fired)
                recovered += 1

            logger.info("Recovered task %s with %sms remaining", task.id, remaining)

        return recovered

    # ==================== COMPLETE ====================

    def _on_timer_fired(self, handle: TimerHandle) -> None:
        """Timer callback; runs on a scheduler worker thread."""
        with self._lock_for(handle.task_id):
            if not self.timers.is_current(handle.task_id, handle):
                logger.info("Dropping stale timer for task %s", handle.task_id)
                return
            self._complete(handle)

    def _complete(self, handle: TimerHandle) -> None:
        """Finish a task whose countdown fired. Caller holds the task lock."""
        task_id = handle.task_id
        try:
            task = self.store.get(task_id)
        except TaskError as e:
            log_error(logger, e, context="complete", task_id=task_id)
            return

        if task is None or task.status is not TaskStatus.IN_PROGRESS:
            logger.warning("Timer fired for task %s which is not in progress", task_id)
            self.timers.discard(task_id, handle)
            return

        now = self._clock()
        worked = task.elapsed_time + elapsed_ms(task.last_run_at, now)
        try:
            updated = self.store.update(
                task_id,
                status=TaskStatus.COMPLETED,
                result=generate_result(self._rng),
                completed_at=now,
                elapsed_time=min(task.duration, worked),
            )
        except TaskError as e:
            # Entry stays so pause/cancel can still reconcile the task
            log_error(logger, e, context="complete", task_id=task_id)
            return

        self.timers.discard(task_id, handle)
        log_task_transition(logger, task_id, "complete", updated.status.value,
                            result=updated.result, elapsed_ms=updated.elapsed_time)

    # ==================== HELPERS ====================

    def _lock_for(self, task_id: int) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(task_id)
            if lock is None:
                lock = self._locks[task_id] = threading.Lock()
            return lock

    def _reload(self, task_id: int) -> Task:
        task = self.store.get(task_id)
        if task is None:
            raise TaskNotFound(task_id)
        return task

    def _start_countdown(self, previous: Task, updated: Task, delay_ms: int) -> None:
        """Schedule completion; put the row back if scheduling fails."""
        try:
            self.timers.schedule(updated.id, delay_ms, self._on_timer_fired)
        except Exception:
            logger.error("Could not schedule timer for task %s; restoring state", updated.id)
            self.store.update(
                previous.id,
                status=previous.status,
                elapsed_time=previous.elapsed_time,
                last_run_at=previous.last_run_at,
            )
            raise
