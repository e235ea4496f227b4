"""Tests for the two-step password reset flow."""

from datetime import timedelta

import pytest

from localauth.infrastructure.database import Database
from localauth.modules.auth import (
    PASSWORD_RESET_PURPOSE,
    AuthService,
    IncorrectCredentialsError,
    InvalidPasswordError,
    InvalidTokenError,
    NotificationDispatcher,
    UserRepository,
)
from localauth.modules.auth.models import User
from localauth.modules.nonce import SQLiteTokenStore, TokenService
from tests.test_auth import FakeClock, RecordingTransport


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def tokens(database: Database, clock: FakeClock) -> TokenService:
    return TokenService(SQLiteTokenStore(database), clock=clock)


@pytest.fixture
def auth_service(
    database: Database,
    tokens: TokenService,
    transport: RecordingTransport,
    clock: FakeClock,
) -> AuthService:
    return AuthService(
        UserRepository(database),
        tokens,
        NotificationDispatcher(transport),
        clock=clock,
    )


@pytest.fixture
async def user(auth_service: AuthService, transport: RecordingTransport) -> User:
    user = await auth_service.register_local(
        "jane@example.com", "old-password", "Jane", "Doe"
    )
    transport.sent.clear()
    return user


def sent_token(transport: RecordingTransport) -> str:
    """Return the token carried by the last reset email."""
    return transport.sent[-1].variables["token"]


class TestBeginPasswordReset:
    """Tests for AuthService.begin_password_reset."""

    @pytest.mark.asyncio
    async def test_sends_reset_email_with_token(
        self,
        auth_service: AuthService,
        tokens: TokenService,
        transport: RecordingTransport,
        user: User,
    ) -> None:
        """Should issue a token bound to the user and email it."""
        await auth_service.begin_password_reset("jane@example.com")

        assert len(transport.sent) == 1
        message = transport.sent[0]
        assert message.subject == "Password Reset"
        assert message.variables["firstname"] == "Jane"

        record = await tokens.get(sent_token(transport))
        assert record.subject == user.id
        assert record.purpose == PASSWORD_RESET_PURPOSE
        assert record.expires_at - record.created_at == timedelta(hours=3)

    @pytest.mark.asyncio
    async def test_unknown_account(
        self, auth_service: AuthService, transport: RecordingTransport
    ) -> None:
        """Should raise IncorrectCredentials and send nothing."""
        with pytest.raises(IncorrectCredentialsError):
            await auth_service.begin_password_reset("nobody@example.com")
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_deleted_account(
        self, auth_service: AuthService, user: User, transport: RecordingTransport
    ) -> None:
        """Should treat a deleted account as unknown."""
        await auth_service.delete(user.id)

        with pytest.raises(IncorrectCredentialsError):
            await auth_service.begin_password_reset("jane@example.com")
        assert transport.sent == []

    @pytest.mark.asyncio
    async def test_email_failure_is_swallowed(
        self,
        auth_service: AuthService,
        transport: RecordingTransport,
        user: User,
    ) -> None:
        """Should still succeed when the email cannot be sent."""
        transport.fail = True

        await auth_service.begin_password_reset("jane@example.com")


class TestCompletePasswordReset:
    """Tests for AuthService.complete_password_reset."""

    @pytest.mark.asyncio
    async def test_round_trip(
        self, auth_service: AuthService, transport: RecordingTransport, user: User
    ) -> None:
        """Should set the new password and confirm by email."""
        await auth_service.begin_password_reset("jane@example.com")
        token = sent_token(transport)

        updated = await auth_service.complete_password_reset(
            token, "jane@example.com", "new-password"
        )

        assert updated.id == user.id
        await auth_service.authenticate("jane@example.com", "new-password")
        with pytest.raises(IncorrectCredentialsError):
            await auth_service.authenticate("jane@example.com", "old-password")
        assert transport.sent[-1].subject == "Password Reset Confirmation"

    @pytest.mark.asyncio
    async def test_token_is_single_use(
        self, auth_service: AuthService, transport: RecordingTransport, user: User
    ) -> None:
        """Should reject a second use of the same token."""
        await auth_service.begin_password_reset("jane@example.com")
        token = sent_token(transport)
        await auth_service.complete_password_reset(token, "jane@example.com", "first")

        with pytest.raises(InvalidTokenError):
            await auth_service.complete_password_reset(
                token, "jane@example.com", "second"
            )
        await auth_service.authenticate("jane@example.com", "first")

    @pytest.mark.asyncio
    async def test_expired_token(
        self,
        auth_service: AuthService,
        transport: RecordingTransport,
        clock: FakeClock,
        user: User,
    ) -> None:
        """Should reject a token past its deadline and keep the old password."""
        await auth_service.begin_password_reset("jane@example.com")
        clock.advance(timedelta(hours=3))

        with pytest.raises(InvalidTokenError):
            await auth_service.complete_password_reset(
                sent_token(transport), "jane@example.com", "new-password"
            )
        await auth_service.authenticate("jane@example.com", "old-password")

    @pytest.mark.asyncio
    async def test_token_bound_to_subject(
        self, auth_service: AuthService, transport: RecordingTransport, user: User
    ) -> None:
        """Should not let one user's token reset another user's password."""
        await auth_service.register_local("john@example.com", "johns-pw", "John", "Roe")
        await auth_service.begin_password_reset("jane@example.com")

        with pytest.raises(InvalidTokenError):
            await auth_service.complete_password_reset(
                sent_token(transport), "john@example.com", "hijacked"
            )
        await auth_service.authenticate("john@example.com", "johns-pw")

    @pytest.mark.asyncio
    async def test_blank_password_keeps_token(
        self, auth_service: AuthService, transport: RecordingTransport, user: User
    ) -> None:
        """Should reject a blank password without burning the token."""
        await auth_service.begin_password_reset("jane@example.com")
        token = sent_token(transport)

        with pytest.raises(InvalidPasswordError):
            await auth_service.complete_password_reset(token, "jane@example.com", " ")

        await auth_service.complete_password_reset(token, "jane@example.com", "ok")
        await auth_service.authenticate("jane@example.com", "ok")

    @pytest.mark.asyncio
    async def test_unknown_token(self, auth_service: AuthService, user: User) -> None:
        """Should raise InvalidTokenError for a token never issued."""
        with pytest.raises(InvalidTokenError):
            await auth_service.complete_password_reset(
                "made-up", "jane@example.com", "new-password"
            )

    @pytest.mark.asyncio
    async def test_unknown_account(self, auth_service: AuthService) -> None:
        """Should raise IncorrectCredentials for an address with no account."""
        with pytest.raises(IncorrectCredentialsError):
            await auth_service.complete_password_reset(
                "made-up", "nobody@example.com", "new-password"
            )
