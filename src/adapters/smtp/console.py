"""
Console mailer adapter - Implements Mailer protocol.

This module provides a console-based implementation of the domain's
mailer port, logging messages instead of delivering them. For
development and docker-compose demos only.
"""

import logging

from src.domain.value_objects import EmailAddress

logger = logging.getLogger(__name__)


class ConsoleMailer:
    """
    Implements Mailer protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Only the plain text body is logged; it carries the confirmation link.
    """

    def send(
        self,
        recipient: EmailAddress,
        subject: str,
        html_body: str,
        plain_body: str,
    ) -> None:
        """
        Log the message to the console (simulates email delivery).

        In production, this would be replaced with the SMTP adapter.
        Logged at INFO level to be visible in docker-compose logs.
        """
        logger.info("[EMAIL] To: %s Subject: %s\n%s", recipient, subject, plain_body)
