"""Single-use, expiring, purpose- and subject-scoped tokens."""

from localauth.modules.nonce.exceptions import InvalidTokenError, NonceError
from localauth.modules.nonce.models import OneTimeToken
from localauth.modules.nonce.service import TokenService
from localauth.modules.nonce.store import (
    InMemoryTokenStore,
    SQLiteTokenStore,
    TokenStore,
)

__all__ = [
    "InMemoryTokenStore",
    "InvalidTokenError",
    "NonceError",
    "OneTimeToken",
    "SQLiteTokenStore",
    "TokenService",
    "TokenStore",
]
