"""
Resend email sender adapter - Implements EmailSender protocol over HTTPS.

Posts the message to the Resend API. The request has a bounded timeout and is
never retried here; any transport error or non-2xx response raises
EmailDeliveryFailed so the caller can report a retryable error.
"""

import logging

import httpx

from src.domain.exceptions import EmailDeliveryFailed

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class ResendEmailSender:
    """
    Implements EmailSender protocol via the Resend HTTP API.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        api_key: str,
        from_email: str,
        timeout_seconds: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        """
        Args:
            api_key: Resend API key (sent as a bearer token)
            from_email: Sender address, must be verified with Resend
            timeout_seconds: Upper bound for the whole request
            client: Optional pre-built client (tests inject a MockTransport)
        """
        self._api_key = api_key
        self._from_email = from_email
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def send(self, to: str, subject: str, text: str, html: str) -> None:
        """
        Raises:
            EmailDeliveryFailed: On transport error or non-2xx response
        """
        try:
            response = self._client.post(
                RESEND_API_URL,
                headers={
                    "Authorization": f"Bearer {self._api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "from": self._from_email,
                    "to": to,
                    "subject": subject,
                    "text": text,
                    "html": html,
                },
            )
        except httpx.HTTPError as e:
            logger.error("Resend request failed for %s: %s", to, e)
            raise EmailDeliveryFailed("Email provider unreachable") from e

        if not response.is_success:
            logger.error("Resend error %s for %s: %s", response.status_code, to, response.text)
            raise EmailDeliveryFailed(f"Email provider error ({response.status_code})")

        try:
            body = response.json()
        except ValueError:
            body = None
        provider_id = body.get("id") if isinstance(body, dict) else None
        logger.info("Resend accepted message for %s (id=%s)", to, provider_id)

    def close(self) -> None:
        self._client.close()
