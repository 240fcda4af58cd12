"""
Tasklane - Task Store

Repository over the ``tasks`` table: create, get, update, list.
"""
import logging
import sqlite3
from datetime import datetime
from enum import Enum
from functools import wraps
from typing import Optional, List, Any

from .models import Task, TaskStatus
from .errors import TaskNotFound, StoreFailure
from ..storage import Database, to_iso, now_iso

logger = logging.getLogger("tasklane.kernel.store")

# Columns the lifecycle is allowed to write after creation
UPDATABLE_FIELDS = frozenset({
    "status",
    "elapsed_time",
    "last_run_at",
    "result",
    "completed_at",
})


def _wrap_db_errors(func):
    """Re-raise sqlite errors as StoreFailure."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except sqlite3.Error as e:
            raise StoreFailure(f"{func.__name__} failed: {e}") from e
    return wrapper


def _to_column(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return to_iso(value)
    return value


class TaskStore:
    """
    Task record store.

    The lifecycle engine is the only writer of status, elapsed time,
    result and completion fields once a task exists.
    """

    def __init__(self, db: Optional[Database] = None):
        self._db = db

    @property
    def db(self) -> Database:
        """Get database instance (lazy init)."""
        if self._db is None:
            self._db = Database()
        return self._db

    @_wrap_db_errors
    def create(self, title: str, description: str, duration: int) -> Task:
        """
        Insert a NOT_STARTED task.

        Args:
            title: Task title
            description: Task description
            duration: Simulated work time, milliseconds

        Returns:
            Created Task
        """
        now = now_iso()

        with self.db.transaction():
            cursor = self.db.execute(
                """INSERT INTO tasks
                   (title, description, status, duration, elapsed_time, created_at, updated_at)
                   VALUES (?, ?, ?, ?, 0, ?, ?)""",
                (
                    title,
                    description,
                    TaskStatus.NOT_STARTED.value,
                    duration,
                    now,
                    now,
                )
            )
            task_id = cursor.lastrowid
            row = self.db.fetch_one("SELECT * FROM tasks WHERE id = ?", (task_id,))

        logger.info("Task %s created (duration=%sms)", task_id, duration)
        return Task.from_row(row)

    @_wrap_db_errors
    def get(self, task_id: int) -> Optional[Task]:
        """Get task by ID."""
        row = self.db.fetch_one("SELECT * FROM tasks WHERE id = ?", (task_id,))
        return Task.from_row(row)

    @_wrap_db_errors
    def update(self, task_id: int, **fields) -> Task:
        """
        Update selected fields of a task.

        Args:
            task_id: Task ID
            **fields: Column values; enums and datetimes are converted

        Returns:
            Updated Task

        Raises:
            TaskNotFound: If no row has this id
            ValueError: If a field is not updatable
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        assignments = [f"{name} = ?" for name in fields]
        params = [_to_column(value) for value in fields.values()]

        assignments.append("updated_at = ?")
        params.append(now_iso())
        params.append(task_id)

        with self.db.transaction():
            cursor = self.db.execute(
                f"UPDATE tasks SET {', '.join(assignments)} WHERE id = ?",
                tuple(params)
            )
            if cursor.rowcount == 0:
                raise TaskNotFound(task_id)
            row = self.db.fetch_one("SELECT * FROM tasks WHERE id = ?", (task_id,))

        return Task.from_row(row)

    @_wrap_db_errors
    def list(self) -> List[Task]:
        """Get all tasks, oldest first."""
        rows = self.db.fetch_all("SELECT * FROM tasks ORDER BY id ASC")
        return [Task.from_row(row) for row in rows]

    @_wrap_db_errors
    def list_by_status(self, status: TaskStatus) -> List[Task]:
        """Get tasks in one status, oldest first."""
        rows = self.db.fetch_all(
            "SELECT * FROM tasks WHERE status = ? ORDER BY id ASC",
            (status.value,)
        )
        return [Task.from_row(row) for row in rows]
