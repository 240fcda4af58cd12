"""
Tasklane - Scheduler

Timer registry and the shared background scheduler behind it.
"""
from .timers import TimerRegistry, TimerHandle
from .background import (
    get_scheduler,
    start_scheduler,
    stop_scheduler,
)

__all__ = [
    "TimerRegistry",
    "TimerHandle",
    "get_scheduler",
    "start_scheduler",
    "stop_scheduler",
]
