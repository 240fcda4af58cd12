"""
Tasklane - Storage Layer

Provides the SQLite database and timestamp helpers.
"""
from .database import Database, to_iso, parse_iso, now_iso
from .schema import init_schema, SCHEMA_SQL

__all__ = [
    # Database
    "Database",
    "to_iso",
    "parse_iso",
    "now_iso",
    # Schema
    "init_schema",
    "SCHEMA_SQL",
]
