"""Database infrastructure for SQLite persistence."""

from localauth.infrastructure.database.connection import Database, init_database

__all__ = [
    "Database",
    "init_database",
]
