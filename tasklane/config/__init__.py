"""
Tasklane - Configuration
"""
from .settings import Settings, DatabaseSettings, TaskSettings, ApiSettings, settings
from .logging import (
    setup_logging,
    get_logger,
    log_task_transition,
    log_error,
    request_id_var,
    JSONFormatter,
    ColoredFormatter,
)

__all__ = [
    "Settings",
    "DatabaseSettings",
    "TaskSettings",
    "ApiSettings",
    "settings",
    # Logging
    "setup_logging",
    "get_logger",
    "log_task_transition",
    "log_error",
    "request_id_var",
    "JSONFormatter",
    "ColoredFormatter",
]
