"""Email transport that writes messages to the log instead of sending them."""

from collections import deque
from uuid import uuid4

import structlog

from localauth.infrastructure.email.protocol import EmailMessage

logger = structlog.get_logger()

DEFAULT_HISTORY = 50


class LoggingTransport:
    """Development transport used when no email provider is configured.

    Only the most recent ``history`` messages are kept in ``sent``.
    """

    TRANSPORT_NAME = "log"

    def __init__(self, history: int = DEFAULT_HISTORY) -> None:
        self.sent: deque[EmailMessage] = deque(maxlen=history)

    async def send(self, message: EmailMessage) -> str:
        """Record and log the message."""
        message_id = f"<{uuid4()}@localauth.local>"
        self.sent.append(message)
        logger.info(
            "email_logged",
            message_id=message_id,
            recipient=message.recipient,
            subject=message.subject,
            variables=sorted(message.variables),
        )
        return message_id
