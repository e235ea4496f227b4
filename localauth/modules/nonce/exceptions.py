"""One-time token exceptions."""


class NonceError(Exception):
    """Base exception for one-time token operations."""

    pass


class InvalidTokenError(NonceError):
    """Raised when a token is missing, expired, consumed or out of scope.

    The reason is deliberately not exposed to callers.
    """

    def __init__(self) -> None:
        super().__init__("invalid token")
