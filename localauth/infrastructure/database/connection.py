"""SQLite database connection management."""

import asyncio
import sqlite3
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite
import structlog

logger = structlog.get_logger()

# SQL for creating tables
_CREATE_TABLES = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT UNIQUE NOT NULL COLLATE NOCASE,
    password TEXT NOT NULL,
    firstname TEXT NOT NULL,
    lastname TEXT NOT NULL,
    is_superuser INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 0,
    is_deleted INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    deleted_at TEXT,
    avatar_url TEXT NOT NULL DEFAULT ''
);

CREATE INDEX IF NOT EXISTS idx_users_email ON users(email);

CREATE TABLE IF NOT EXISTS nonces (
    token TEXT PRIMARY KEY,
    purpose TEXT NOT NULL,
    subject TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    consumed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_nonces_expires ON nonces(expires_at);
"""


class Database:
    """Async SQLite database wrapper.

    A single aiosqlite connection is shared by every request. All access is
    serialized through one lock so that a transaction opened by one request
    can never be committed or rolled back by a statement from another.
    """

    def __init__(self, db_path: str | Path) -> None:
        """Initialize the database.

        Args:
            db_path: Path to the SQLite database file, or ":memory:".
        """
        self._db_path = db_path if db_path == ":memory:" else Path(db_path)
        self._connection: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> str:
        """Database location as a string."""
        return str(self._db_path)

    async def connect(self) -> None:
        """Connect to the database and create tables if needed."""
        if isinstance(self._db_path, Path):
            self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)
        self._connection.row_factory = aiosqlite.Row

        await self._connection.executescript(_CREATE_TABLES)
        await self._connection.commit()

        logger.info("database_connected", path=self.path)

    async def disconnect(self) -> None:
        """Close the database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.info("database_disconnected", path=self.path)

    def _require_connection(self) -> aiosqlite.Connection:
        if not self._connection:
            raise RuntimeError("Database not connected")
        return self._connection

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[aiosqlite.Connection]:
        """Context manager for database transactions.

        Commits when the block exits normally and rolls back on any
        exception, so partial writes are never visible.

        Yields:
            The database connection for executing queries.

        Raises:
            RuntimeError: If database is not connected.
        """
        connection = self._require_connection()

        async with self._lock:
            try:
                yield connection
                await connection.commit()
            except BaseException:
                await connection.rollback()
                raise

    async def execute(
        self,
        sql: str,
        parameters: tuple[object, ...] | dict[str, object] | None = None,
    ) -> aiosqlite.Cursor:
        """Execute a single SQL statement in its own transaction.

        Args:
            sql: SQL statement to execute.
            parameters: Optional parameters for the statement.

        Returns:
            Cursor with execution results.

        Raises:
            RuntimeError: If database is not connected.
        """
        async with self.transaction() as connection:
            if parameters:
                return await connection.execute(sql, parameters)
            return await connection.execute(sql)

    async def fetch_one(
        self,
        sql: str,
        parameters: tuple[object, ...] | dict[str, object] | None = None,
    ) -> sqlite3.Row | None:
        """Fetch a single row.

        Args:
            sql: SQL query to execute.
            parameters: Optional parameters for the query.

        Returns:
            The first row or None.
        """
        async with self.transaction() as connection:
            cursor = await connection.execute(sql, parameters or ())
            return await cursor.fetchone()


async def init_database(db_path: str | Path) -> Database:
    """Create and connect a database.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        Connected database instance.
    """
    database = Database(db_path)
    await database.connect()
    return database
