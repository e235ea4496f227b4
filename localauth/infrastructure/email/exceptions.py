"""Custom exceptions for outbound email delivery."""


class EmailTransportError(Exception):
    """Base exception for email transport errors."""

    def __init__(self, message: str, *, transport: str = "unknown") -> None:
        self.transport = transport
        super().__init__(message)


class EmailDeliveryError(EmailTransportError):
    """Raised when a message could not be handed to the provider."""


class EmailConfigurationError(EmailTransportError):
    """Raised when there's a configuration issue (e.g., missing API key)."""
