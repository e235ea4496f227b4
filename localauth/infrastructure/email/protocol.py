"""Protocol definition for email transports."""

from dataclasses import dataclass, field
from typing import Protocol


@dataclass
class EmailMessage:
    """A single transactional email.

    ``variables`` are per-recipient substitutions. Providers that support
    templated sending (Mailgun's ``%recipient.name%``) substitute them into
    ``text`` and ``html`` at delivery time.
    """

    sender: str
    recipient: str
    subject: str
    text: str
    html: str | None = None
    variables: dict[str, str] = field(default_factory=dict)


class EmailTransport(Protocol):
    """Protocol for outbound email delivery."""

    async def send(self, message: EmailMessage) -> str:
        """Deliver a message.

        Args:
            message: The message to send.

        Returns:
            Provider message identifier.

        Raises:
            EmailTransportError: If the message could not be delivered.
        """
        ...
