"""
Tasks API

Create and list tasks; run, pause, resume and cancel them.

Handlers are plain ``def`` so FastAPI runs them on its thread pool:
the lifecycle engine blocks on per-task locks.
"""

from typing import List

from fastapi import APIRouter, Depends

from ..config.settings import settings
from ..kernel.errors import TaskNotFound
from ..kernel.lifecycle import TaskLifecycle
from ..kernel.store import TaskStore
from .deps import get_store, get_lifecycle, get_task_payload
from .models import TaskCreate, TaskResponse, ErrorResponse


router = APIRouter(prefix="/tasks", tags=["tasks"])

LIFECYCLE_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Illegal transition"},
    404: {"model": ErrorResponse, "description": "Task not found"},
}

# 500 messages, keyed by route name
ERROR_MESSAGES = {
    "create_task": "An error occurred while creating the task.",
    "list_tasks": "An error occurred while fetching tasks.",
    "get_task": "An error occurred while fetching the task.",
    "run_task": "An error occurred while running the task.",
    "pause_task": "An error occurred while pausing the task.",
    "resume_task": "An error occurred while resuming the task.",
    "cancel_task": "An error occurred while cancelling the task.",
}


# =============================================================================
# Helpers
# =============================================================================

def _load(store: TaskStore, task_id: int):
    task = store.get(task_id)
    if task is None:
        raise TaskNotFound(task_id)
    return task


def _apply(action: str, task_id: int, store: TaskStore, lifecycle: TaskLifecycle) -> dict:
    """Run one lifecycle verb and return the re-read task."""
    task = _load(store, task_id)
    getattr(lifecycle, action)(task)
    return _load(store, task_id).to_dict()


# =============================================================================
# CRUD
# =============================================================================

TASK_CREATE_BODY = {
    "requestBody": {
        "required": True,
        "content": {
            "application/json": {"schema": TaskCreate.model_json_schema()},
            "application/x-www-form-urlencoded": {"schema": TaskCreate.model_json_schema()},
        },
    },
}


@router.post("", response_model=TaskResponse, status_code=201, openapi_extra=TASK_CREATE_BODY)
def create_task(
    data: TaskCreate = Depends(get_task_payload),
    store: TaskStore = Depends(get_store),
):
    """Create a task with the default duration. Accepts JSON or form bodies."""
    task = store.create(
        title=data.title,
        description=data.description,
        duration=settings.tasks.default_duration_ms,
    )
    return task.to_dict()


@router.get("", response_model=List[TaskResponse])
def list_tasks(store: TaskStore = Depends(get_store)):
    """List all tasks."""
    return [task.to_dict() for task in store.list()]


@router.get("/{task_id}", response_model=TaskResponse, responses={404: LIFECYCLE_RESPONSES[404]})
def get_task(task_id: int, store: TaskStore = Depends(get_store)):
    """Get single task by ID."""
    return _load(store, task_id).to_dict()


# =============================================================================
# Lifecycle
# =============================================================================

@router.put("/run/{task_id}", response_model=TaskResponse, responses=LIFECYCLE_RESPONSES)
def run_task(
    task_id: int,
    store: TaskStore = Depends(get_store),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """Run a task which hasn't started yet or has been cancelled."""
    return _apply("run", task_id, store, lifecycle)


@router.put("/pause/{task_id}", response_model=TaskResponse, responses=LIFECYCLE_RESPONSES)
def pause_task(
    task_id: int,
    store: TaskStore = Depends(get_store),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """Pause a running task."""
    return _apply("pause", task_id, store, lifecycle)


@router.put("/resume/{task_id}", response_model=TaskResponse, responses=LIFECYCLE_RESPONSES)
def resume_task(
    task_id: int,
    store: TaskStore = Depends(get_store),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """Resume a paused task."""
    return _apply("resume", task_id, store, lifecycle)


@router.put("/cancel/{task_id}", response_model=TaskResponse, responses=LIFECYCLE_RESPONSES)
def cancel_task(
    task_id: int,
    store: TaskStore = Depends(get_store),
    lifecycle: TaskLifecycle = Depends(get_lifecycle),
):
    """Cancel a task that is in progress or paused."""
    return _apply("cancel", task_id, store, lifecycle)
