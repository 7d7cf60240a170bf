"""
SMTP mailer adapter - Implements Mailer protocol.

Delivers multipart/alternative messages (plain text first, HTML second)
through an SMTP relay. A fresh connection is opened per message, so the
adapter holds no socket state and is safe to share between threads.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid

from src.domain.exceptions import InvalidRecipient, MailerError, MailSendFailed
from src.domain.value_objects import EmailAddress

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SmtpConfig:
    """Connection settings for the SMTP relay."""

    host: str
    port: int
    sender: str
    username: str = ""
    password: str = ""
    starttls: bool = True
    timeout_seconds: float = 10.0


class SmtpMailer:
    """
    Implements Mailer protocol via smtplib.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, config: SmtpConfig) -> None:
        self._config = config

    def send(
        self,
        recipient: EmailAddress,
        subject: str,
        html_body: str,
        plain_body: str,
    ) -> None:
        """
        Deliver a two-part message.

        Raises:
            InvalidRecipient: If the relay refused the recipient
            MailSendFailed: If the relay refused or dropped the message
            MailerError: On connection and other transport failures
        """
        message = self._build_message(recipient, subject, html_body, plain_body)

        try:
            with smtplib.SMTP(
                self._config.host, self._config.port, timeout=self._config.timeout_seconds
            ) as smtp:
                if self._config.starttls:
                    smtp.starttls()
                if self._config.username:
                    smtp.login(self._config.username, self._config.password)
                smtp.send_message(message)
        except smtplib.SMTPRecipientsRefused as exc:
            raise InvalidRecipient(f"recipient refused: {recipient}") from exc
        except (
            smtplib.SMTPSenderRefused,
            smtplib.SMTPDataError,
            smtplib.SMTPServerDisconnected,
        ) as exc:
            raise MailSendFailed(str(exc)) from exc
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("SMTP transport failure via %s: %s", self._config.host, exc)
            raise MailerError(str(exc)) from exc

        logger.debug("Email delivered to %s via %s", recipient, self._config.host)

    def _build_message(
        self,
        recipient: EmailAddress,
        subject: str,
        html_body: str,
        plain_body: str,
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._config.sender
        message["To"] = str(recipient)
        message["Subject"] = subject
        message["Message-ID"] = make_msgid()
        message.set_content(plain_body)
        message.add_alternative(html_body, subtype="html")
        return message
