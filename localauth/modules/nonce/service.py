"""One-time token service."""

import secrets
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import UUID

import structlog

from localauth.modules.nonce.exceptions import InvalidTokenError
from localauth.modules.nonce.models import OneTimeToken
from localauth.modules.nonce.store import TokenStore

logger = structlog.get_logger()

# Bytes of randomness per token (43 url-safe characters)
TOKEN_BYTES = 32


def _now_utc() -> datetime:
    return datetime.now(UTC)


class TokenService:
    """Issues, looks up and consumes single-use tokens.

    Token lifecycle is ``issued -> consumed`` or ``issued -> expired``. Expiry
    is judged against the clock whenever a token is read, so correctness does
    not depend on ``purge_expired`` ever running.
    """

    def __init__(
        self,
        store: TokenStore,
        *,
        clock: Callable[[], datetime] = _now_utc,
    ) -> None:
        """Initialize the token service.

        Args:
            store: Token persistence backend.
            clock: Source of the current UTC time.
        """
        self._store = store
        self._clock = clock

    async def issue(self, purpose: str, subject: UUID, ttl: timedelta) -> OneTimeToken:
        """Issue a fresh token.

        Args:
            purpose: What the token authorizes.
            subject: The user the token is bound to.
            ttl: How long the token stays valid.

        Returns:
            The stored token.

        Raises:
            ValueError: If ttl is not positive.
        """
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")

        now = self._clock()
        token = OneTimeToken(
            token=secrets.token_urlsafe(TOKEN_BYTES),
            purpose=purpose,
            subject=subject,
            expires_at=now + ttl,
            consumed=False,
            created_at=now,
        )
        await self._store.add(token)

        logger.info(
            "token_issued",
            purpose=purpose,
            subject=str(subject),
            expires_at=token.expires_at.isoformat(),
        )
        return token

    async def get(self, token: str) -> OneTimeToken:
        """Look up a live token.

        Raises:
            InvalidTokenError: If the token is unknown, consumed or expired.
        """
        record = await self._store.get(token)
        if record is None or record.consumed or record.is_expired(self._clock()):
            raise InvalidTokenError()
        return record

    async def consume(self, token: str, purpose: str, subject: UUID) -> OneTimeToken:
        """Atomically check and invalidate a token.

        Args:
            token: The token value presented by the user.
            purpose: The purpose the caller expects.
            subject: The user the caller expects the token to be bound to.

        Returns:
            The consumed token.

        Raises:
            InvalidTokenError: If the token is unknown, expired, already
                consumed, or scoped to another purpose or subject.
        """
        record = await self._store.consume(token, purpose, subject, self._clock())
        if record is None:
            logger.warning("token_rejected", purpose=purpose, subject=str(subject))
            raise InvalidTokenError()

        logger.info("token_consumed", purpose=purpose, subject=str(subject))
        return record

    async def purge_expired(self) -> int:
        """Remove expired and consumed tokens from storage."""
        removed = await self._store.purge(self._clock())
        if removed:
            logger.info("tokens_purged", count=removed)
        return removed
