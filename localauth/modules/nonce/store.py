"""Storage backends for one-time tokens."""

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Protocol
from uuid import UUID

import structlog

from localauth.infrastructure.database import Database
from localauth.modules.nonce.models import OneTimeToken

logger = structlog.get_logger()


def to_db_timestamp(value: datetime) -> str:
    """Format a UTC timestamp so that string order matches time order."""
    return value.isoformat(timespec="microseconds")


class TokenStore(Protocol):
    """Protocol for one-time token persistence.

    ``consume`` must be a single indivisible step: of any number of
    concurrent calls for the same token, at most one returns the token.
    """

    async def add(self, token: OneTimeToken) -> None:
        """Persist a freshly issued token."""
        ...

    async def get(self, token: str) -> OneTimeToken | None:
        """Return the token record, or None if unknown."""
        ...

    async def consume(
        self, token: str, purpose: str, subject: UUID, now: datetime
    ) -> OneTimeToken | None:
        """Mark a live, matching token consumed and return it.

        Returns None if the token is unknown, already consumed, expired at
        ``now`` or bound to a different purpose or subject.
        """
        ...

    async def purge(self, now: datetime) -> int:
        """Delete consumed and expired tokens; return how many were removed."""
        ...


class SQLiteTokenStore:
    """Token store backed by the ``nonces`` table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def add(self, token: OneTimeToken) -> None:
        await self._db.execute(
            """
            INSERT INTO nonces (token, purpose, subject, expires_at, consumed, created_at)
            VALUES (?, ?, ?, ?, 0, ?)
            """,
            (
                token.token,
                token.purpose,
                str(token.subject),
                to_db_timestamp(token.expires_at),
                to_db_timestamp(token.created_at),
            ),
        )

    async def get(self, token: str) -> OneTimeToken | None:
        row = await self._db.fetch_one(
            "SELECT * FROM nonces WHERE token = ?",
            (token,),
        )
        if row is None:
            return None
        return OneTimeToken.from_row(dict(row))

    async def consume(
        self, token: str, purpose: str, subject: UUID, now: datetime
    ) -> OneTimeToken | None:
        async with self._db.transaction() as connection:
            # Conditional update: the WHERE clause is the compare, SET is the swap
            cursor = await connection.execute(
                """
                UPDATE nonces SET consumed = 1
                WHERE token = ? AND purpose = ? AND subject = ?
                  AND consumed = 0 AND expires_at > ?
                """,
                (token, purpose, str(subject), to_db_timestamp(now)),
            )
            if cursor.rowcount != 1:
                return None

            cursor = await connection.execute(
                "SELECT * FROM nonces WHERE token = ?",
                (token,),
            )
            row = await cursor.fetchone()

        return OneTimeToken.from_row(dict(row)) if row else None

    async def purge(self, now: datetime) -> int:
        cursor = await self._db.execute(
            "DELETE FROM nonces WHERE consumed = 1 OR expires_at <= ?",
            (to_db_timestamp(now),),
        )
        return cursor.rowcount


class InMemoryTokenStore:
    """Process-local token store.

    Suitable for a single worker process and for tests. Tokens are lost on
    restart.
    """

    def __init__(self) -> None:
        self._tokens: dict[str, OneTimeToken] = {}
        self._lock = asyncio.Lock()

    async def add(self, token: OneTimeToken) -> None:
        async with self._lock:
            self._tokens[token.token] = token

    async def get(self, token: str) -> OneTimeToken | None:
        async with self._lock:
            return self._tokens.get(token)

    async def consume(
        self, token: str, purpose: str, subject: UUID, now: datetime
    ) -> OneTimeToken | None:
        async with self._lock:
            record = self._tokens.get(token)
            if (
                record is None
                or record.consumed
                or record.purpose != purpose
                or record.subject != subject
                or record.is_expired(now)
            ):
                return None
            consumed = replace(record, consumed=True)
            self._tokens[token] = consumed
            return consumed

    async def purge(self, now: datetime) -> int:
        async with self._lock:
            stale = [
                key
                for key, record in self._tokens.items()
                if record.consumed or record.is_expired(now)
            ]
            for key in stale:
                del self._tokens[key]
            return len(stale)
