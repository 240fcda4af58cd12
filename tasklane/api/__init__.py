"""
Tasklane API Layer

REST API for tasks and their simulated work.

Run:
    python run_api.py
    # or
    uvicorn tasklane.api.app:app --reload

Endpoints:
    GET  /health                  - Health check

    POST /tasks                   - Create task
    GET  /tasks                   - List tasks
    GET  /tasks/{id}              - Get task
    PUT  /tasks/run/{id}          - Run (from NOT_STARTED or CANCELLED)
    PUT  /tasks/pause/{id}        - Pause (from IN_PROGRESS)
    PUT  /tasks/resume/{id}       - Resume (from PAUSED)
    PUT  /tasks/cancel/{id}       - Cancel (from IN_PROGRESS or PAUSED)
"""

from .app import create_app, app
from .tasks import router as tasks_router

__all__ = [
    "create_app",
    "app",
    "tasks_router",
]
