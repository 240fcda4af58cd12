"""
Tasklane - Task Kernel

Task model, record store and the lifecycle engine.
"""
from .models import Task, TaskStatus
from .errors import (
    TaskError,
    TaskNotFound,
    IllegalTransition,
    StoreFailure,
    STATUS_MESSAGES,
)
from .results import RESULT_CATALOG, generate_result
from .store import TaskStore
from .lifecycle import TaskLifecycle

__all__ = [
    "Task",
    "TaskStatus",
    "TaskError",
    "TaskNotFound",
    "IllegalTransition",
    "StoreFailure",
    "STATUS_MESSAGES",
    "RESULT_CATALOG",
    "generate_result",
    "TaskStore",
    "TaskLifecycle",
]
