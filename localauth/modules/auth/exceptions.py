"""Authentication service exceptions.

These are the only failures the service surfaces; the HTTP layer maps them
to responses.
"""

from localauth.modules.nonce.exceptions import InvalidTokenError


class AuthError(Exception):
    """Base exception for authentication service operations."""

    message = "authentication error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class InvalidIDError(AuthError):
    """Raised when a nil identifier is supplied where one is required."""

    message = "null id"


class InvalidAddressError(AuthError):
    """Raised when an email address does not parse."""

    message = "invalid email address"


class InvalidPasswordError(AuthError):
    """Raised when a new password is empty or whitespace only."""

    message = "password cannot be blank or all spaces"


class InvalidNameError(AuthError):
    """Raised when a first or last name is empty or whitespace only."""

    message = "name cannot be blank or all spaces"


class AlreadyExistsError(AuthError):
    """Raised when registering an email that is already on file."""

    message = "already exists"


class NotFoundError(AuthError):
    """Raised when a lookup by id or email finds nothing."""

    message = "user not found"


class IncorrectCredentialsError(AuthError):
    """Raised for any authentication failure.

    Covers unknown email, wrong password and deleted accounts alike so that
    callers cannot tell which one happened.
    """

    message = "incorrect email or password"


class InconsistentIDsError(AuthError):
    """Raised when an update targets an email owned by another account."""

    message = "inconsistent IDs"


class NotImplementedFeatureError(AuthError):
    """Raised by provider linking, which is not available."""

    message = "unimplemented feature or function"


__all__ = [
    "AlreadyExistsError",
    "AuthError",
    "InconsistentIDsError",
    "IncorrectCredentialsError",
    "InvalidAddressError",
    "InvalidIDError",
    "InvalidNameError",
    "InvalidPasswordError",
    "InvalidTokenError",
    "NotFoundError",
    "NotImplementedFeatureError",
]
