"""
Tasklane - Database Module

Thread-safe SQLite database with thread-local connections.

HTTP handlers run on the server's thread pool and timer completions run
on scheduler workers; both write the same ``tasks`` rows, so every
thread gets its own connection and writes go through ``transaction()``.
"""
import sqlite3
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, List, Union
from contextlib import contextmanager

from ..config.settings import DatabaseSettings, settings
from .schema import init_schema

_db_logger = logging.getLogger("tasklane.database")


class Database:
    """
    SQLite database for the task store.

    Args:
        db_path: Database file. Defaults to ``config.path``.
        config: Journal mode and busy timeout. Defaults to global settings.
    """

    def __init__(
        self,
        db_path: Optional[Union[str, Path]] = None,
        config: Optional[DatabaseSettings] = None,
    ):
        self.config = config or settings.database
        self.path = Path(db_path if db_path is not None else self.config.path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        self._local = threading.local()

        self._open_checked()
        init_schema(self._connection())

    # ==================== CONNECTIONS ====================

    def _connection(self) -> sqlite3.Connection:
        """This thread's connection, opened on first use."""
        conn = getattr(self._local, "connection", None)
        if conn is None:
            conn = self._connect()
            self._local.connection = conn
        return conn

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self.path),
            check_same_thread=False,
            timeout=self.config.busy_timeout_ms / 1000.0,
        )
        conn.row_factory = sqlite3.Row
        try:
            for pragma in self._pragmas():
                conn.execute(pragma)
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    def _pragmas(self) -> List[str]:
        journal_mode = "WAL" if self.config.wal_mode else "DELETE"
        return [
            f"PRAGMA journal_mode = {journal_mode}",
            f"PRAGMA busy_timeout = {self.config.busy_timeout_ms}",
            "PRAGMA synchronous = NORMAL",
        ]

    def _drop_connection(self) -> None:
        conn = getattr(self._local, "connection", None)
        if conn is not None:
            conn.close()
        self._local.connection = None

    def _open_checked(self) -> None:
        """Open the startup connection; recreate the file if it is corrupt."""
        try:
            status = self._connection().execute("PRAGMA integrity_check").fetchone()[0]
        except sqlite3.DatabaseError as e:
            status = str(e)

        if status == "ok":
            return

        _db_logger.warning(
            "Database at %s failed integrity check (%s). Recreating empty.",
            self.path, status
        )
        self._drop_connection()
        for suffix in ("", "-shm", "-wal"):
            Path(f"{self.path}{suffix}").unlink(missing_ok=True)
        self._connection()

    def _in_transaction(self) -> bool:
        return getattr(self._local, "in_transaction", False)

    # ==================== QUERIES ====================

    def execute(
        self,
        sql: str,
        params: tuple = (),
    ) -> sqlite3.Cursor:
        """
        Execute one statement.

        Outside ``transaction()`` the statement is committed on success
        and rolled back on failure.

        Returns:
            Cursor (``lastrowid`` for INSERT, ``rowcount`` for UPDATE)
        """
        conn = self._connection()
        autocommit = not self._in_transaction()
        try:
            cursor = conn.execute(sql, params)
        except sqlite3.Error:
            if autocommit:
                conn.rollback()
            raise
        if autocommit:
            conn.commit()
        return cursor

    def fetch_one(
        self,
        sql: str,
        params: tuple = (),
    ) -> Optional[sqlite3.Row]:
        """Fetch single row, or None."""
        return self._connection().execute(sql, params).fetchone()

    def fetch_all(
        self,
        sql: str,
        params: tuple = (),
    ) -> List[sqlite3.Row]:
        return self._connection().execute(sql, params).fetchall()

    @contextmanager
    def transaction(self):
        """
        Write transaction holding SQLite's write lock from BEGIN.

        Usage:
            with db.transaction():
                db.execute(...)
                db.fetch_one(...)
        """
        conn = self._connection()
        conn.execute("BEGIN IMMEDIATE")
        self._local.in_transaction = True
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            self._local.in_transaction = False


# Timestamp helpers

def to_iso(value: Optional[datetime]) -> Optional[str]:
    """Format an aware datetime as a UTC ISO string with millisecond precision."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def parse_iso(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp as stored by ``to_iso``. Naive values are taken as UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


def now_iso() -> str:
    """Get current UTC time as ISO string."""
    return to_iso(datetime.now(timezone.utc))
