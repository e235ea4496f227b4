"""Password hashing with bcrypt."""

import bcrypt

# bcrypt only reads the first 72 bytes of a password
_MAX_PASSWORD_BYTES = 72

# Hash of a throwaway password, checked when no account matches so that a
# lookup miss costs as much as a wrong password.
_DUMMY_HASH = bcrypt.hashpw(b"localauth-timing-equalizer", bcrypt.gensalt())


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_PASSWORD_BYTES]


def hash_password(password: str) -> str:
    """Hash a password with a fresh salt.

    Args:
        password: Plain text password.

    Returns:
        The encoded bcrypt hash (``$2b$...``).
    """
    hashed = bcrypt.hashpw(_encode(password), bcrypt.gensalt())
    return hashed.decode("ascii")


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a stored hash in constant time.

    A malformed stored hash is treated as a mismatch.
    """
    try:
        return bcrypt.checkpw(_encode(password), hashed.encode("ascii"))
    except (ValueError, UnicodeEncodeError):
        return False


def burn_verification() -> None:
    """Spend one verification's worth of work without checking anything."""
    bcrypt.checkpw(b"", _DUMMY_HASH)
