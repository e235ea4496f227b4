"""User domain model."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass
class User:
    """A local account.

    A deleted user is a tombstone: the row stays, ``is_deleted`` is set and
    ``deleted_at`` records when. Plaintext passwords never live on this type;
    they are passed to the service alongside it.

    Attributes:
        id: Server-generated identifier, None until first persisted.
        email: Normalized email address (unique).
        password_hash: Encoded bcrypt hash.
        first_name: Trimmed first name.
        last_name: Trimmed last name.
        is_active: Whether the account is active.
        is_superuser: Whether the account has superuser rights.
        is_deleted: Soft-delete marker.
        created_at: When the user was created.
        updated_at: When the user was last written.
        deleted_at: When the user was deleted, None if not deleted.
        avatar_url: Optional avatar image URL.
    """

    id: UUID | None
    email: str
    password_hash: str
    first_name: str
    last_name: str
    is_active: bool = False
    is_superuser: bool = False
    is_deleted: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    deleted_at: datetime | None = None
    avatar_url: str = ""

    @classmethod
    def anonymous(cls) -> "User":
        """Return the zero-value user that stands in for "not logged in"."""
        return cls(id=None, email="", password_hash="", first_name="", last_name="")

    @property
    def is_authenticated(self) -> bool:
        """True for a persisted, active, non-deleted account."""
        return self.id is not None and self.is_active and not self.is_deleted

    @classmethod
    def from_row(cls, row: dict[str, object]) -> "User":
        """Create a User from a database row.

        Args:
            row: Database row as a dictionary.

        Returns:
            User instance.
        """
        deleted_at = row.get("deleted_at")
        return cls(
            id=UUID(str(row["id"])),
            email=str(row["email"]),
            password_hash=str(row["password"]),
            first_name=str(row["firstname"]),
            last_name=str(row["lastname"]),
            is_active=bool(row["is_active"]),
            is_superuser=bool(row["is_superuser"]),
            is_deleted=bool(row["is_deleted"]),
            created_at=datetime.fromisoformat(str(row["created_at"])),
            updated_at=datetime.fromisoformat(str(row["updated_at"])),
            deleted_at=datetime.fromisoformat(str(deleted_at)) if deleted_at else None,
            avatar_url=str(row.get("avatar_url") or ""),
        )

    def to_row(self) -> dict[str, object]:
        """Map the user onto the columns of the ``users`` table."""
        if self.id is None or self.created_at is None or self.updated_at is None:
            raise ValueError("user must have an id and timestamps to be stored")
        return {
            "id": str(self.id),
            "email": self.email,
            "password": self.password_hash,
            "firstname": self.first_name,
            "lastname": self.last_name,
            "is_superuser": int(self.is_superuser),
            "is_active": int(self.is_active),
            "is_deleted": int(self.is_deleted),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
            "avatar_url": self.avatar_url,
        }
