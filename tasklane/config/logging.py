"""
Tasklane - Logging Configuration
Structured logging with JSON support
"""

import logging
import sys
import json
import os
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pathlib import Path


# Filled by the request logging middleware, read by JSONFormatter
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logs"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if hasattr(record, "extra_data"):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


class ColoredFormatter(logging.Formatter):
    """Colored formatter for the console"""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Copy so other handlers keep the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(
    log_level: str = "INFO",
    json_logs: bool = False,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Configure the ``tasklane`` logger tree.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Use JSON output (production)
        log_file: Optional path to a log file

    Returns:
        Configured logger
    """
    logger = logging.getLogger("tasklane")
    logger.setLevel(getattr(logging, log_level.upper()))

    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, log_level.upper()))

    if json_logs:
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(ColoredFormatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))

    logger.addHandler(console_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter that merges bound context into ``extra_data``"""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get("extra", {})
        data = {**self.extra, **extra.get("extra_data", {})}
        if data:
            extra["extra_data"] = data
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str, **context) -> LoggerAdapter:
    """
    Get a logger bound to context.

    Args:
        name: Logger name, e.g. "api.tasks"
        **context: Extra context (task_id, request_id, ...)

    Returns:
        Logger with context
    """
    base_logger = logging.getLogger(f"tasklane.{name}")
    return LoggerAdapter(base_logger, context)


# === Logging helpers ===

def log_task_transition(
    logger: logging.Logger,
    task_id: int,
    action: str,
    status: str,
    **extra
):
    """Log a task state change"""
    logger.info(
        f"Task {task_id} {action} -> {status}",
        extra={"extra_data": {
            "task_id": task_id,
            "action": action,
            "status": status,
            **extra
        }}
    )


def log_error(
    logger: logging.Logger,
    error: Exception,
    context: str = "",
    **extra
):
    """Log an error with traceback"""
    logger.error(
        f"Error in {context}: {type(error).__name__}: {str(error)}",
        exc_info=True,
        extra={"extra_data": extra}
    )


DEBUG = os.environ.get("APP_ENV", "").lower() in ("development", "dev")

# Initialise on import
root_logger = setup_logging(
    log_level="DEBUG" if DEBUG else "INFO",
    json_logs=not DEBUG
)
