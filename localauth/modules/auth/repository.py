"""User repository for database operations."""

import sqlite3
from dataclasses import replace
from uuid import UUID, uuid4

import structlog

from localauth.infrastructure.database import Database
from localauth.modules.auth.exceptions import AlreadyExistsError, NotFoundError
from localauth.modules.auth.models import User

logger = structlog.get_logger()

_INSERT_USER = """
INSERT INTO users (id, email, password, firstname, lastname, is_superuser,
                   is_active, is_deleted, created_at, updated_at, deleted_at,
                   avatar_url)
VALUES (:id, :email, :password, :firstname, :lastname, :is_superuser,
        :is_active, :is_deleted, :created_at, :updated_at, :deleted_at,
        :avatar_url)
"""

_UPDATE_USER = """
UPDATE users
SET email = :email, password = :password, firstname = :firstname,
    lastname = :lastname, is_superuser = :is_superuser, is_active = :is_active,
    is_deleted = :is_deleted, created_at = :created_at,
    updated_at = :updated_at, deleted_at = :deleted_at,
    avatar_url = :avatar_url
WHERE id = :id
"""


class UserRepository:
    """Repository for User persistence.

    Deleted users are ordinary rows here; filtering them is the service's
    job.
    """

    def __init__(self, database: Database) -> None:
        """Initialize the repository.

        Args:
            database: Database connection.
        """
        self._db = database

    async def get_by_id(self, user_id: UUID) -> User | None:
        """Get a user by ID.

        Args:
            user_id: The user's UUID.

        Returns:
            User if found, None otherwise.
        """
        row = await self._db.fetch_one(
            "SELECT * FROM users WHERE id = ?",
            (str(user_id),),
        )

        if row is None:
            return None

        return User.from_row(dict(row))

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by normalized email address.

        Args:
            email: The normalized email address.

        Returns:
            User if found, None otherwise.
        """
        row = await self._db.fetch_one(
            "SELECT * FROM users WHERE email = ?",
            (email,),
        )

        if row is None:
            return None

        return User.from_row(dict(row))

    async def upsert(self, user: User) -> User:
        """Insert a new user or update an existing one.

        A user without an id is new: an id is generated and the row inserted.
        A user with an id replaces the stored row with that id. Either way
        the write happens in a single transaction.

        Args:
            user: The validated user to write.

        Returns:
            The stored user (with its id assigned).

        Raises:
            AlreadyExistsError: If the email belongs to another row.
            NotFoundError: If updating an id that has no row.
        """
        is_new = user.id is None
        if is_new:
            user = replace(user, id=uuid4())

        try:
            async with self._db.transaction() as connection:
                cursor = await connection.execute(
                    _INSERT_USER if is_new else _UPDATE_USER,
                    user.to_row(),
                )
                if cursor.rowcount != 1:
                    raise NotFoundError()
        except sqlite3.IntegrityError as e:
            if "users.email" in str(e):
                raise AlreadyExistsError(
                    f"User with email {user.email} already exists"
                ) from e
            raise

        logger.info(
            "user_created" if is_new else "user_updated",
            user_id=str(user.id),
            email=user.email,
        )
        return user
