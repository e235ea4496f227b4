"""Mailgun HTTP API email transport."""

import json
from datetime import timedelta

import httpx
import structlog
from aiobreaker import CircuitBreaker, CircuitBreakerError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from localauth.infrastructure.email.exceptions import (
    EmailConfigurationError,
    EmailDeliveryError,
)
from localauth.infrastructure.email.protocol import EmailMessage
from localauth.infrastructure.observability import get_tracer

logger = structlog.get_logger()
tracer = get_tracer(__name__)


class MailgunTransport:
    """Sends email through the Mailgun messages endpoint.

    Includes resilience patterns:
    - Retries with exponential backoff for connection failures and timeouts
    - Circuit breaker to fail fast after repeated failures
    - Per-request timeout
    """

    TRANSPORT_NAME = "mailgun"
    BASE_URL = "https://api.mailgun.net/v3"

    def __init__(
        self,
        domain: str,
        api_key: str,
        *,
        base_url: str = BASE_URL,
        timeout_seconds: float = 10.0,
        circuit_breaker_fail_max: int = 5,
        circuit_breaker_timeout: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Mailgun transport.

        Args:
            domain: Sending domain registered with Mailgun.
            api_key: Mailgun private API key.
            base_url: API base URL (EU accounts use api.eu.mailgun.net).
            timeout_seconds: Request timeout in seconds.
            circuit_breaker_fail_max: Open circuit after this many failures.
            circuit_breaker_timeout: Time in seconds before attempting recovery.
            client: Optional preconfigured HTTP client.

        Raises:
            EmailConfigurationError: If domain or API key is missing.
        """
        if not domain or not api_key:
            raise EmailConfigurationError(
                "Mailgun domain and API key are required",
                transport=self.TRANSPORT_NAME,
            )

        self._url = f"{base_url.rstrip('/')}/{domain}/messages"
        self._timeout = timeout_seconds
        self._client = client or httpx.AsyncClient(
            auth=("api", api_key),
            timeout=timeout_seconds,
        )
        self._breaker = CircuitBreaker(
            fail_max=circuit_breaker_fail_max,
            timeout_duration=timedelta(seconds=circuit_breaker_timeout),
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def send(self, message: EmailMessage) -> str:
        """Send a message through Mailgun.

        Args:
            message: The message to send.

        Returns:
            The Mailgun message id.

        Raises:
            EmailDeliveryError: If Mailgun rejects the message, the circuit
                is open, or the request keeps failing after retries.
        """
        with tracer.start_as_current_span("email.send") as span:
            span.set_attribute("email.transport", self.TRANSPORT_NAME)

            try:
                message_id: str = await self._send_with_resilience(message)
                return message_id

            except CircuitBreakerError as e:
                span.record_exception(e)
                logger.warning("email_circuit_open", transport=self.TRANSPORT_NAME)
                raise EmailDeliveryError(
                    "Email service temporarily unavailable",
                    transport=self.TRANSPORT_NAME,
                ) from e

            except httpx.TimeoutException as e:
                span.record_exception(e)
                logger.warning(
                    "email_timeout",
                    transport=self.TRANSPORT_NAME,
                    timeout_seconds=self._timeout,
                )
                raise EmailDeliveryError(
                    f"Email request timed out after {self._timeout}s",
                    transport=self.TRANSPORT_NAME,
                ) from e

            except httpx.TransportError as e:
                span.record_exception(e)
                logger.error(
                    "email_connection_error",
                    transport=self.TRANSPORT_NAME,
                    error=str(e),
                )
                raise EmailDeliveryError(
                    "Unable to connect to email service",
                    transport=self.TRANSPORT_NAME,
                ) from e

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, max=5),
        reraise=True,
    )
    async def _send_with_resilience(self, message: EmailMessage) -> str:
        """Internal method with retry and circuit breaker logic."""
        return await self._breaker.call_async(  # type: ignore[no-any-return]
            self._do_send, message
        )

    async def _do_send(self, message: EmailMessage) -> str:
        """Execute the API call.

        httpx.TransportError is not caught here so the retry wrapper sees it.
        """
        data = {
            "from": message.sender,
            "to": message.recipient,
            "subject": message.subject,
            "text": message.text,
        }
        if message.html is not None:
            data["html"] = message.html
        if message.variables:
            data["recipient-variables"] = json.dumps(
                {message.recipient: message.variables}
            )

        response = await self._client.post(self._url, data=data)

        if response.is_error:
            logger.error(
                "email_rejected",
                transport=self.TRANSPORT_NAME,
                status_code=response.status_code,
                recipient=message.recipient,
            )
            raise EmailDeliveryError(
                f"Mailgun rejected message with status {response.status_code}",
                transport=self.TRANSPORT_NAME,
            )

        message_id = str(response.json().get("id", ""))
        logger.debug(
            "email_sent",
            transport=self.TRANSPORT_NAME,
            message_id=message_id,
            recipient=message.recipient,
        )
        return message_id
