"""Outbound email delivery."""

from localauth.infrastructure.email.console import LoggingTransport
from localauth.infrastructure.email.exceptions import (
    EmailConfigurationError,
    EmailDeliveryError,
    EmailTransportError,
)
from localauth.infrastructure.email.mailgun import MailgunTransport
from localauth.infrastructure.email.protocol import EmailMessage, EmailTransport

__all__ = [
    "EmailConfigurationError",
    "EmailDeliveryError",
    "EmailMessage",
    "EmailTransport",
    "EmailTransportError",
    "LoggingTransport",
    "MailgunTransport",
]
