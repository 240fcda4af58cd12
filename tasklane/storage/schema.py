"""
Tasklane - Database Schema

Core tables:
- tasks: simulated work items and their lifecycle state
"""

SCHEMA_SQL = """
-- Tasks table (state machine)
CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT NOT NULL,

    -- State machine
    status TEXT NOT NULL DEFAULT 'NOT_STARTED'
        CHECK(status IN ('NOT_STARTED', 'IN_PROGRESS', 'PAUSED', 'CANCELLED', 'COMPLETED')),

    -- Simulated work, milliseconds
    duration INTEGER NOT NULL DEFAULT 30000,
    elapsed_time INTEGER NOT NULL DEFAULT 0,

    -- Results
    result TEXT,

    -- Timestamps
    last_run_at TEXT,
    completed_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);
"""


def init_schema(connection) -> None:
    """Initialize database schema."""
    connection.executescript(SCHEMA_SQL)
    connection.commit()
