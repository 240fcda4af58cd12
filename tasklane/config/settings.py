"""
Tasklane - Configuration Settings
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DatabaseSettings:
    """Database configuration."""
    path: Path = field(
        default_factory=lambda: Path(os.environ.get("DATABASE_PATH", "data/tasklane.sqlite3"))
    )
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


@dataclass
class TaskSettings:
    """Simulated work configuration."""
    default_duration_ms: int = field(
        default_factory=lambda: int(os.environ.get("TASK_DURATION_MS", 30000))
    )
    # Reschedule IN_PROGRESS tasks left without a timer by a restart
    recover_on_startup: bool = field(
        default_factory=lambda: _env_bool("TASK_RECOVER_ON_STARTUP", True)
    )


@dataclass
class ApiSettings:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = field(default_factory=lambda: int(os.environ.get("PORT", 8000)))
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class Settings:
    """Main settings container."""
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    tasks: TaskSettings = field(default_factory=TaskSettings)
    api: ApiSettings = field(default_factory=ApiSettings)


# Global settings instance
settings = Settings()
