"""Transactional email notifications for account events."""

from dataclasses import dataclass, field

import structlog
from jinja2 import DictLoader, Environment, TemplateError, select_autoescape

from localauth.infrastructure.email import (
    EmailMessage,
    EmailTransport,
    EmailTransportError,
)
from localauth.modules.auth.email_templates import TEMPLATES
from localauth.modules.auth.models import User

logger = structlog.get_logger()


class NotificationError(Exception):
    """Raised when a notification could not be rendered or delivered."""

    def __init__(self, kind: str, reason: str) -> None:
        self.kind = kind
        self.reason = reason
        super().__init__(f"Failed to send {kind} notification: {reason}")


@dataclass(frozen=True)
class EmailTemplateConfig:
    """Sender metadata and template for one kind of email."""

    from_address: str
    subject: str
    plain_text: str
    template_id: str


def _default_welcome() -> EmailTemplateConfig:
    return EmailTemplateConfig(
        from_address="from@example.com",
        subject="Welcome New User",
        plain_text="Welcome to our service. Thank you for signing up.",
        template_id="auth/welcome.html",
    )


def _default_password_reset() -> EmailTemplateConfig:
    return EmailTemplateConfig(
        from_address="from@example.com",
        subject="Password Reset",
        plain_text=(
            "Forgot your password? No problem! To reset your password, visit "
            "the following link: https://www.example.com/auth/password-reset/"
            "%recipient.token% If you did not request to have your password "
            "reset you can safely ignore this email. Rest assured your "
            "account is safe."
        ),
        template_id="auth/password_reset.html",
    )


def _default_password_reset_confirm() -> EmailTemplateConfig:
    return EmailTemplateConfig(
        from_address="from@example.com",
        subject="Password Reset Confirmation",
        plain_text="Your account's password was recently changed.",
        template_id="auth/password_reset_confirm.html",
    )


@dataclass(frozen=True)
class EmailTemplates:
    """Configuration for every notification the service sends.

    Built once at startup by the host application and passed to
    ``NotificationDispatcher``.
    """

    welcome: EmailTemplateConfig = field(default_factory=_default_welcome)
    password_reset: EmailTemplateConfig = field(default_factory=_default_password_reset)
    password_reset_confirm: EmailTemplateConfig = field(
        default_factory=_default_password_reset_confirm
    )
    app_name: str = "localauth"
    reset_url_base: str = "https://www.example.com/auth/password-reset/"


class NotificationDispatcher:
    """Renders and sends the welcome and password-reset emails."""

    def __init__(
        self,
        transport: EmailTransport,
        templates: EmailTemplates | None = None,
        *,
        environment: Environment | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            transport: Outbound email transport.
            templates: Per-kind sender metadata and template ids.
            environment: Jinja2 environment to render from. Defaults to the
                built-in templates; pass one to use your own layouts.
        """
        self._transport = transport
        self._templates = templates or EmailTemplates()
        self._env = environment or Environment(
            loader=DictLoader(TEMPLATES),
            autoescape=select_autoescape(default=True),
        )

    def render(self, template_id: str, user: User) -> str:
        """Render the HTML body for a user.

        Raises:
            NotificationError: If the template is missing or fails to render.
        """
        try:
            template = self._env.get_template(template_id)
            return template.render(
                user=user,
                app_name=self._templates.app_name,
                reset_url_base=self._templates.reset_url_base,
            )
        except TemplateError as e:
            raise NotificationError(template_id, str(e)) from e

    async def send_welcome(self, user: User) -> str:
        """Send the welcome email to a newly registered user."""
        return await self._send("welcome", self._templates.welcome, user, {})

    async def send_password_reset(self, user: User, token: str) -> str:
        """Send the reset link carrying ``token``."""
        return await self._send(
            "password_reset",
            self._templates.password_reset,
            user,
            {"token": token},
        )

    async def send_password_reset_confirm(self, user: User) -> str:
        """Tell the user their password was changed."""
        return await self._send(
            "password_reset_confirm",
            self._templates.password_reset_confirm,
            user,
            {},
        )

    async def _send(
        self,
        kind: str,
        config: EmailTemplateConfig,
        user: User,
        extra: dict[str, str],
    ) -> str:
        html = self.render(config.template_id, user)
        message = EmailMessage(
            sender=config.from_address,
            recipient=user.email,
            subject=config.subject,
            text=config.plain_text,
            html=html,
            variables={
                "firstname": user.first_name,
                "lastname": user.last_name,
                **extra,
            },
        )

        try:
            message_id = await self._transport.send(message)
        except EmailTransportError as e:
            raise NotificationError(kind, str(e)) from e

        logger.info(
            "notification_sent",
            kind=kind,
            user_id=str(user.id),
            message_id=message_id,
        )
        return message_id
