"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging outgoing messages for development purposes.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints the plain-text body, which
    carries the verification code and the confirm link.
    """

    def send(self, to: str, subject: str, text: str, html: str) -> None:
        """
        Log the message to console (simulates email delivery).

        The message is logged at INFO level to be visible in container logs.
        The HTML body is not logged; it carries the same content as text.

        Args:
            to: Recipient email address (normalized by domain layer)
            subject: Subject line
            text: Plain-text body
            html: HTML body
        """
        logger.info("[EMAIL] To: %s Subject: %s\n%s", to, subject, text)
