"""Validation applied to a user before every write."""

from dataclasses import replace

from pydantic.networks import validate_email
from pydantic_core import PydanticCustomError

from localauth.modules.auth.exceptions import (
    InvalidAddressError,
    InvalidNameError,
    InvalidPasswordError,
)
from localauth.modules.auth.models import User


def normalize_email(raw: str) -> str:
    """Parse an address and return its normalized form.

    Accepts a bare address or the ``Name <address>`` form. The domain is
    lowercased and internationalized domains are normalized; the local part
    is kept as written.

    Raises:
        InvalidAddressError: If the input is not a valid address.
    """
    try:
        _, address = validate_email(raw.strip())
    except PydanticCustomError as e:
        raise InvalidAddressError(f"invalid email address: {raw!r}") from e
    return address


def check_new_password(password: str) -> None:
    """Reject a new password that is empty after trimming.

    Raises:
        InvalidPasswordError: If the password is blank.
    """
    if not password.strip():
        raise InvalidPasswordError()


def validate_user(user: User, new_password: str | None = None) -> User:
    """Validate and normalize a user before it is persisted.

    Args:
        user: The user about to be written.
        new_password: The plaintext being set in this call, if any.

    Returns:
        A copy of ``user`` with normalized email and trimmed names.

    Raises:
        InvalidAddressError: If the email does not parse.
        InvalidPasswordError: If ``new_password`` is blank.
        InvalidNameError: If either name is blank after trimming.
    """
    email = normalize_email(user.email)

    if new_password is not None:
        check_new_password(new_password)

    first_name = user.first_name.strip()
    last_name = user.last_name.strip()
    if not first_name or not last_name:
        raise InvalidNameError()

    return replace(user, email=email, first_name=first_name, last_name=last_name)
