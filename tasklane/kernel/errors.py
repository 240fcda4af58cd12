"""
Tasklane - Task Kernel Errors
"""
from .models import TaskStatus


STATUS_MESSAGES = {
    TaskStatus.NOT_STARTED: "This task hasn't started yet.",
    TaskStatus.CANCELLED: "This task is already cancelled.",
    TaskStatus.IN_PROGRESS: "This task is already running.",
    TaskStatus.PAUSED: "This task is already paused.",
    TaskStatus.COMPLETED: "This task is already completed.",
}

ACTION_HINTS = {
    "run": "You can only run a task that hasn't started yet or has been cancelled.",
    "pause": "You can only pause a running task.",
    "resume": "You can only resume a paused task.",
    "cancel": "You can only cancel a running or paused task.",
}


class TaskError(Exception):
    """Base class for task kernel errors."""
    pass


class TaskNotFound(TaskError):
    """Raised when a task id is unknown."""

    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__("Task not found.")


class IllegalTransition(TaskError):
    """Raised when an action is not legal from the task's current status."""

    def __init__(self, task_id: int, status: TaskStatus, action: str):
        self.task_id = task_id
        self.status = status
        self.action = action
        super().__init__(f"{STATUS_MESSAGES[status]} {ACTION_HINTS[action]}")


class StoreFailure(TaskError):
    """Raised when the underlying database fails."""
    pass
