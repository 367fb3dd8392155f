"""
Console mailer adapter - Implements Mailer protocol.

This module provides a console-based implementation of the domain's
mailer port, logging outgoing notifications for development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleMailer:
    """
    Implements Mailer protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    For demo/development purposes - prints messages instead of sending them.
    """

    def send(self, to: str, subject: str, html: str, text: str) -> None:
        """
        Log the message to console (simulates email delivery).

        The plain-text body is logged at INFO level to be visible in
        docker-compose logs; the HTML body is logged at DEBUG.

        Args:
            to: Recipient email address
            subject: Message subject
            html: HTML body
            text: Plain-text body
        """
        logger.info("[MAIL] To: %s Subject: %s\n%s", to, subject, text)
        logger.debug("[MAIL] HTML body for %s:\n%s", to, html)
