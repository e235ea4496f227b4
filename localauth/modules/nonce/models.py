"""One-time token domain model."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class OneTimeToken:
    """A single-use credential scoped by purpose and subject.

    Attributes:
        token: Random opaque token string handed to the user.
        purpose: What the token authorizes (e.g. "password-reset").
        subject: The user the token is bound to.
        expires_at: Absolute deadline (UTC).
        consumed: Whether the token has been used.
        created_at: When the token was issued.
    """

    token: str
    purpose: str
    subject: UUID
    expires_at: datetime
    consumed: bool
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        """Return True if the deadline has passed at ``now``."""
        return now >= self.expires_at

    @classmethod
    def from_row(cls, row: dict[str, object]) -> "OneTimeToken":
        """Create a token from a database row."""
        return cls(
            token=str(row["token"]),
            purpose=str(row["purpose"]),
            subject=UUID(str(row["subject"])),
            expires_at=datetime.fromisoformat(str(row["expires_at"])),
            consumed=bool(row["consumed"]),
            created_at=datetime.fromisoformat(str(row["created_at"])),
        )
