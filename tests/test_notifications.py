"""Tests for notification rendering and dispatch."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest
from jinja2 import DictLoader, Environment

from localauth.infrastructure.email import LoggingTransport
from localauth.modules.auth import (
    EmailTemplateConfig,
    EmailTemplates,
    NotificationDispatcher,
    NotificationError,
)
from localauth.modules.auth.models import User
from tests.test_auth import RecordingTransport


@pytest.fixture
def user() -> User:
    now = datetime.now(UTC)
    return User(
        id=uuid4(),
        email="jane@example.com",
        password_hash="hashed",
        first_name="Jane",
        last_name="Doe",
        is_active=True,
        created_at=now,
        updated_at=now,
    )


class TestRender:
    """Tests for NotificationDispatcher.render."""

    def test_reset_link_uses_configured_base(self, user: User) -> None:
        """Should point the reset link at the configured URL."""
        dispatcher = NotificationDispatcher(
            LoggingTransport(),
            EmailTemplates(reset_url_base="https://auth.example.com/reset/"),
        )

        html = dispatcher.render("auth/password_reset.html", user)

        assert 'href="https://auth.example.com/reset/%recipient.token%"' in html
        assert "%recipient.firstname%" in html

    def test_missing_template(self, user: User) -> None:
        """Should raise NotificationError for an unknown template id."""
        dispatcher = NotificationDispatcher(LoggingTransport())

        with pytest.raises(NotificationError):
            dispatcher.render("auth/nope.html", user)

    def test_custom_environment(self, user: User) -> None:
        """Should render from a caller-supplied environment."""
        env = Environment(loader=DictLoader({"auth/welcome.html": "Hi {{ user.first_name }}"}))
        dispatcher = NotificationDispatcher(LoggingTransport(), environment=env)

        assert dispatcher.render("auth/welcome.html", user) == "Hi Jane"


class TestSend:
    """Tests for the send_* methods."""

    @pytest.mark.asyncio
    async def test_send_welcome(self, user: User) -> None:
        """Should send the welcome email with recipient variables."""
        transport = RecordingTransport()
        dispatcher = NotificationDispatcher(transport)

        await dispatcher.send_welcome(user)

        message = transport.sent[0]
        assert message.sender == "from@example.com"
        assert message.recipient == "jane@example.com"
        assert message.subject == "Welcome New User"
        assert message.variables == {"firstname": "Jane", "lastname": "Doe"}
        assert message.html is not None and "Welcome to localauth" in message.html

    @pytest.mark.asyncio
    async def test_send_password_reset_carries_token(self, user: User) -> None:
        """Should pass the token as a recipient variable."""
        transport = RecordingTransport()
        dispatcher = NotificationDispatcher(transport)

        await dispatcher.send_password_reset(user, "tok123")

        assert transport.sent[0].variables["token"] == "tok123"
        assert "%recipient.token%" in transport.sent[0].text

    @pytest.mark.asyncio
    async def test_configured_metadata(self, user: User) -> None:
        """Should use the configured sender and subject."""
        transport = RecordingTransport()
        config = EmailTemplateConfig(
            from_address="noreply@example.org",
            subject="All set",
            plain_text="Password changed.",
            template_id="auth/password_reset_confirm.html",
        )
        dispatcher = NotificationDispatcher(
            transport, EmailTemplates(password_reset_confirm=config)
        )

        await dispatcher.send_password_reset_confirm(user)

        message = transport.sent[0]
        assert message.sender == "noreply@example.org"
        assert message.subject == "All set"
        assert message.text == "Password changed."

    @pytest.mark.asyncio
    async def test_transport_failure(self, user: User) -> None:
        """Should wrap transport errors in NotificationError."""
        dispatcher = NotificationDispatcher(RecordingTransport(fail=True))

        with pytest.raises(NotificationError) as exc_info:
            await dispatcher.send_welcome(user)
        assert exc_info.value.kind == "welcome"

    @pytest.mark.asyncio
    async def test_logging_transport_records(self, user: User) -> None:
        """Should keep sent messages on the logging transport."""
        transport = LoggingTransport()
        message_id = await NotificationDispatcher(transport).send_welcome(user)

        assert message_id
        assert [m.recipient for m in transport.sent] == ["jane@example.com"]

    @pytest.mark.asyncio
    async def test_logging_transport_history_is_bounded(self, user: User) -> None:
        """Should keep only the most recent messages on the logging transport."""
        transport = LoggingTransport(history=2)
        dispatcher = NotificationDispatcher(transport)

        await dispatcher.send_welcome(user)
        await dispatcher.send_password_reset(user, "first")
        await dispatcher.send_password_reset(user, "second")

        assert len(transport.sent) == 2
        assert [m.variables.get("token") for m in transport.sent] == [
            "first",
            "second",
        ]
