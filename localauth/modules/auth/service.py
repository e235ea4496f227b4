"""Authentication service for local accounts."""

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import UUID

import structlog

from localauth.infrastructure.observability import add_span_attributes, traced
from localauth.modules.auth.exceptions import (
    AlreadyExistsError,
    InconsistentIDsError,
    IncorrectCredentialsError,
    InvalidIDError,
    InvalidPasswordError,
    NotFoundError,
    NotImplementedFeatureError,
)
from localauth.modules.auth.models import User
from localauth.modules.auth.notifications import NotificationDispatcher
from localauth.modules.auth.password import (
    burn_verification,
    hash_password,
    verify_password,
)
from localauth.modules.auth.repository import UserRepository
from localauth.modules.auth.validation import (
    check_new_password,
    normalize_email,
    validate_user,
)
from localauth.modules.nonce import TokenService

logger = structlog.get_logger()

PASSWORD_RESET_PURPOSE = "password-reset"
PASSWORD_RESET_TTL = timedelta(hours=3)


def _now_utc() -> datetime:
    return datetime.now(UTC)


class AuthService:
    """Service for local account operations.

    Handles registration, authentication, profile updates, soft deletion and
    the two-step password reset. Email notifications are best effort: a
    failed send is logged and never fails the operation that triggered it.
    """

    def __init__(
        self,
        repository: UserRepository,
        tokens: TokenService,
        notifier: NotificationDispatcher | None = None,
        *,
        reset_ttl: timedelta = PASSWORD_RESET_TTL,
        clock: Callable[[], datetime] = _now_utc,
    ) -> None:
        """Initialize the auth service.

        Args:
            repository: User repository for database operations.
            tokens: One-time token service for reset tokens.
            notifier: Email notifications; None disables them.
            reset_ttl: Lifetime of a password reset token.
            clock: Source of the current UTC time.
        """
        self._repo = repository
        self._tokens = tokens
        self._notifier = notifier
        self._reset_ttl = reset_ttl
        self._clock = clock

    @traced(span_name="auth.register_local")
    async def register_local(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        *,
        is_superuser: bool = False,
    ) -> User:
        """Register a new local account.

        Args:
            email: Email address (normalized before storage).
            password: Plain text password.
            first_name: First name.
            last_name: Last name.
            is_superuser: Whether the account gets superuser rights.

        Returns:
            The created User.

        Raises:
            InvalidAddressError: If the email does not parse.
            InvalidPasswordError: If the password is blank.
            InvalidNameError: If a name is blank.
            AlreadyExistsError: If the email is already on file.
        """
        now = self._clock()
        candidate = validate_user(
            User(
                id=None,
                email=email,
                password_hash="",
                first_name=first_name,
                last_name=last_name,
                is_active=True,
                is_superuser=is_superuser,
                is_deleted=False,
                created_at=now,
                updated_at=now,
            ),
            new_password=password,
        )

        if await self._repo.get_by_email(candidate.email) is not None:
            raise AlreadyExistsError(f"User with email {candidate.email} already exists")

        candidate.password_hash = await asyncio.to_thread(hash_password, password)
        user = await self._repo.upsert(candidate)

        logger.info("user_registered", user_id=str(user.id), email=user.email)

        if self._notifier is not None:
            await self._notify("welcome", user, self._notifier.send_welcome(user))
        return user

    async def register_provider(
        self, provider_user: Mapping[str, object], *, is_superuser: bool = False
    ) -> User:
        """Register a user from an OAuth provider identity (not available)."""
        raise NotImplementedFeatureError()

    async def add_provider(
        self, user_id: UUID, provider_user: Mapping[str, object]
    ) -> User:
        """Link an OAuth provider identity to a user (not available)."""
        raise NotImplementedFeatureError()

    @traced(span_name="auth.authenticate")
    async def authenticate(self, email: str, password: str) -> User:
        """Authenticate a user by email and password.

        Unknown email, wrong password and deleted or inactive accounts all
        raise the same error.

        Args:
            email: User's email address.
            password: Plain text password.

        Returns:
            The authenticated User.

        Raises:
            InvalidAddressError: If the email does not parse.
            InvalidPasswordError: If the password is blank.
            IncorrectCredentialsError: If authentication fails.
        """
        address = normalize_email(email)
        if not password.strip():
            raise InvalidPasswordError()

        user = await self._repo.get_by_email(address)

        if user is None:
            await asyncio.to_thread(burn_verification)
            logger.warning("auth_failed_user_not_found", email=address)
            raise IncorrectCredentialsError()

        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            logger.warning("auth_failed_invalid_password", user_id=str(user.id))
            raise IncorrectCredentialsError()

        if user.is_deleted or not user.is_active:
            logger.warning("auth_failed_user_unavailable", user_id=str(user.id))
            raise IncorrectCredentialsError()

        add_span_attributes({"auth.user_id": str(user.id)})
        logger.info("user_authenticated", user_id=str(user.id))
        return user

    @traced(span_name="auth.get_by_id")
    async def get_by_id(self, user_id: UUID | None) -> User:
        """Get a user by ID, deleted or not.

        Raises:
            InvalidIDError: If the id is None or the nil UUID.
            NotFoundError: If no user has this id.
        """
        if user_id is None or user_id.int == 0:
            raise InvalidIDError()

        user = await self._repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError()
        return user

    @traced(span_name="auth.update")
    async def update(self, user: User, new_password: str | None = None) -> User:
        """Update a user's details.

        The stored row is found by email and must carry the same id as
        ``user``. The password only changes when ``new_password`` is given.

        Args:
            user: The user with updated fields.
            new_password: Plain text password to set, if changing it.

        Returns:
            The updated User.

        Raises:
            InvalidAddressError: If the email does not parse.
            InvalidPasswordError: If ``new_password`` is blank.
            InvalidNameError: If a name is blank.
            NotFoundError: If no user has this email.
            InconsistentIDsError: If the email belongs to another user.
        """
        candidate = validate_user(user, new_password)

        existing = await self._repo.get_by_email(candidate.email)
        if existing is None:
            raise NotFoundError()
        if existing.id != candidate.id:
            logger.warning(
                "update_rejected_inconsistent_ids",
                user_id=str(candidate.id),
                owner_id=str(existing.id),
            )
            raise InconsistentIDsError()

        password_hash = existing.password_hash
        if new_password is not None:
            password_hash = await asyncio.to_thread(hash_password, new_password)

        updated = await self._repo.upsert(
            replace(
                candidate,
                password_hash=password_hash,
                created_at=existing.created_at,
                updated_at=self._clock(),
            )
        )
        logger.info("user_details_updated", user_id=str(updated.id))
        return updated

    @traced(span_name="auth.delete")
    async def delete(self, user_id: UUID | None) -> User:
        """Flag a user as deleted.

        The row is kept. Deleting an already deleted user returns it
        unchanged, so ``deleted_at`` records the first deletion.

        Raises:
            InvalidIDError: If the id is None or the nil UUID.
            NotFoundError: If no user has this id.
        """
        user = await self.get_by_id(user_id)
        if user.is_deleted:
            return user

        now = self._clock()
        deleted = await self._repo.upsert(
            replace(
                validate_user(user),
                is_deleted=True,
                deleted_at=now,
                updated_at=now,
            )
        )
        logger.info("user_deleted", user_id=str(deleted.id))
        return deleted

    @traced(span_name="auth.begin_password_reset")
    async def begin_password_reset(self, email: str) -> None:
        """Issue a reset token and email it to the user.

        Raises:
            InvalidAddressError: If the email does not parse.
            IncorrectCredentialsError: If no usable account has this email.
        """
        user, user_id = await self._user_for_reset(email)

        token = await self._tokens.issue(
            PASSWORD_RESET_PURPOSE, user_id, self._reset_ttl
        )
        logger.info("password_reset_requested", user_id=str(user_id))

        if self._notifier is not None:
            await self._notify(
                "password_reset",
                user,
                self._notifier.send_password_reset(user, token.token),
            )

    @traced(span_name="auth.complete_password_reset")
    async def complete_password_reset(
        self, token: str, email: str, new_password: str
    ) -> User:
        """Consume a reset token and set a new password.

        The token is consumed before the password is written, so a rejected
        token never changes the credential. A blank password is rejected
        before the token is touched.

        Args:
            token: The reset token from the email.
            email: The account's email address.
            new_password: The new plain text password.

        Returns:
            The updated User.

        Raises:
            InvalidAddressError: If the email does not parse.
            IncorrectCredentialsError: If no usable account has this email.
            InvalidPasswordError: If the new password is blank.
            InvalidTokenError: If the token is missing, expired, consumed or
                issued for another user or purpose.
        """
        user, user_id = await self._user_for_reset(email)
        check_new_password(new_password)

        await self._tokens.consume(token, PASSWORD_RESET_PURPOSE, user_id)

        password_hash = await asyncio.to_thread(hash_password, new_password)
        updated = await self._repo.upsert(
            replace(
                validate_user(user, new_password),
                password_hash=password_hash,
                updated_at=self._clock(),
            )
        )
        logger.info("password_reset_completed", user_id=str(updated.id))

        if self._notifier is not None:
            await self._notify(
                "password_reset_confirm",
                updated,
                self._notifier.send_password_reset_confirm(updated),
            )
        return updated

    async def _user_for_reset(self, email: str) -> tuple[User, UUID]:
        """Resolve a reset request to a live account without revealing why not."""
        address = normalize_email(email)
        user = await self._repo.get_by_email(address)
        if user is None or user.id is None or user.is_deleted:
            logger.warning("password_reset_unknown_account", email=address)
            raise IncorrectCredentialsError()
        return user, user.id

    async def _notify(self, kind: str, user: User, send: Awaitable[object]) -> None:
        """Await a notification, logging instead of raising on failure."""
        try:
            await send
        except Exception as e:
            logger.error(
                "notification_failed",
                kind=kind,
                user_id=str(user.id),
                error=str(e),
                error_type=type(e).__name__,
            )
