"""
Tasklane - Task Kernel Models

Data classes for tasks and their states.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Any, Dict
from enum import Enum

from ..storage import to_iso, parse_iso


class TaskStatus(str, Enum):
    """Task state machine states."""
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    @property
    def is_runnable(self) -> bool:
        """Check if ``run`` is legal from this status."""
        return self in (TaskStatus.NOT_STARTED, TaskStatus.CANCELLED)


@dataclass
class Task:
    """
    Task entity.

    A unit of simulated work with a fixed duration. All durations
    are milliseconds; all timestamps are timezone-aware UTC.
    """
    id: int
    title: str
    description: str

    # State machine
    status: TaskStatus = TaskStatus.NOT_STARTED

    # Simulated work
    duration: int = 30000
    elapsed_time: int = 0
    last_run_at: Optional[datetime] = None

    # Results
    result: Optional[str] = None
    completed_at: Optional[datetime] = None

    # Timestamps
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def remaining(self) -> int:
        """Work left as of the last reconciliation."""
        return max(0, self.duration - self.elapsed_time)

    @classmethod
    def from_row(cls, row) -> Optional["Task"]:
        """Create Task from database row."""
        if row is None:
            return None

        data = dict(row)

        status = data.get("status", TaskStatus.NOT_STARTED.value)
        if isinstance(status, str):
            status = TaskStatus(status)

        return cls(
            id=data["id"],
            title=data["title"],
            description=data["description"],
            status=status,
            duration=data.get("duration", 30000),
            elapsed_time=data.get("elapsed_time") or 0,
            last_run_at=parse_iso(data.get("last_run_at")),
            result=data.get("result"),
            completed_at=parse_iso(data.get("completed_at")),
            created_at=parse_iso(data.get("created_at")),
            updated_at=parse_iso(data.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the public JSON shape."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "duration": self.duration,
            "elapsedTime": self.elapsed_time,
            "lastRunAt": to_iso(self.last_run_at),
            "completedAt": to_iso(self.completed_at),
            "result": self.result,
            "createdAt": to_iso(self.created_at),
            "updatedAt": to_iso(self.updated_at),
        }
