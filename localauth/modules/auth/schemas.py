"""Pydantic schemas for the authentication API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from localauth.modules.auth.models import User


class UserCreate(BaseModel):
    """Schema for registering a local account.

    Email and name rules are enforced by the service so that the API and
    the web forms reject the same inputs. Superusers are only created by
    trusted callers such as ``scripts/create_user.py``.
    """

    email: str = Field(max_length=320)
    password: str = Field(max_length=128)
    first_name: str = Field(max_length=45)
    last_name: str = Field(max_length=45)


class UserUpdate(BaseModel):
    """Schema for updating a user's details."""

    email: str = Field(max_length=320)
    first_name: str = Field(max_length=45)
    last_name: str = Field(max_length=45)
    is_active: bool = True
    avatar_url: str = Field(default="", max_length=255)
    password: str | None = Field(default=None, max_length=128)


class UserResponse(BaseModel):
    """Schema for user response (excludes the password hash)."""

    id: UUID
    email: str
    first_name: str
    last_name: str
    is_active: bool
    is_superuser: bool
    is_deleted: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None
    avatar_url: str

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        """Build a response from a stored user."""
        if user.id is None or user.created_at is None or user.updated_at is None:
            raise ValueError("User has not been stored")
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            is_active=user.is_active,
            is_superuser=user.is_superuser,
            is_deleted=user.is_deleted,
            created_at=user.created_at,
            updated_at=user.updated_at,
            deleted_at=user.deleted_at,
            avatar_url=user.avatar_url,
        )


class LoginRequest(BaseModel):
    """Schema for checking credentials."""

    email: str
    password: str


class PasswordResetRequest(BaseModel):
    """Schema for starting a password reset."""

    email: str


class PasswordResetComplete(BaseModel):
    """Schema for finishing a password reset."""

    token: str
    email: str
    password: str = Field(max_length=128)
