"""
Unit tests for SmtpMailer adapter.

smtplib.SMTP is patched; no network connections are made.
"""

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from src.adapters.smtp.smtp import SmtpConfig, SmtpMailer
from src.domain.exceptions import InvalidRecipient, MailerError, MailSendFailed
from src.domain.value_objects import EmailAddress

RECIPIENT = EmailAddress("user@example.com")


@pytest.fixture
def config() -> SmtpConfig:
    return SmtpConfig(
        host="smtp.example.com",
        port=587,
        sender="no-reply@example.com",
        username="mailer",
        password="hunter2-but-longer",
    )


@pytest.fixture
def smtp():
    """Patched SMTP class; yields the connection object used inside `with`."""
    with patch("src.adapters.smtp.smtp.smtplib.SMTP") as smtp_class:
        connection = MagicMock()
        smtp_class.return_value.__enter__.return_value = connection
        connection.smtp_class = smtp_class
        yield connection


class TestSmtpMailerSend:
    """Tests for successful delivery."""

    def test_connects_with_configured_host_and_timeout(self, config: SmtpConfig, smtp) -> None:
        SmtpMailer(config).send(RECIPIENT, "Subject", "<p>hi</p>", "hi")
        smtp.smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=10.0)

    def test_starttls_and_login(self, config: SmtpConfig, smtp) -> None:
        SmtpMailer(config).send(RECIPIENT, "Subject", "<p>hi</p>", "hi")
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("mailer", "hunter2-but-longer")

    def test_no_login_without_username(self, smtp) -> None:
        config = SmtpConfig(host="localhost", port=25, sender="a@example.com", starttls=False)
        SmtpMailer(config).send(RECIPIENT, "Subject", "<p>hi</p>", "hi")
        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()

    def test_message_is_multipart_alternative(self, config: SmtpConfig, smtp) -> None:
        SmtpMailer(config).send(RECIPIENT, "Please confirm", "<p>html body</p>", "plain body")

        message = smtp.send_message.call_args[0][0]
        assert message["From"] == "no-reply@example.com"
        assert message["To"] == "user@example.com"
        assert message["Subject"] == "Please confirm"
        assert message.get_content_type() == "multipart/alternative"

        parts = list(message.iter_parts())
        assert [p.get_content_type() for p in parts] == ["text/plain", "text/html"]
        assert "plain body" in parts[0].get_content()
        assert "<p>html body</p>" in parts[1].get_content()


class TestSmtpMailerErrors:
    """Tests for smtplib exception translation."""

    def test_refused_recipient_is_invalid_recipient(self, config: SmtpConfig, smtp) -> None:
        smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused(
            {"user@example.com": (550, b"no such user")}
        )
        with pytest.raises(InvalidRecipient):
            SmtpMailer(config).send(RECIPIENT, "s", "h", "p")

    @pytest.mark.parametrize(
        "error",
        [
            smtplib.SMTPDataError(554, b"rejected"),
            smtplib.SMTPSenderRefused(553, b"bad sender", "no-reply@example.com"),
            smtplib.SMTPServerDisconnected("gone"),
        ],
    )
    def test_rejected_message_is_send_failed(self, config: SmtpConfig, smtp, error) -> None:
        smtp.send_message.side_effect = error
        with pytest.raises(MailSendFailed):
            SmtpMailer(config).send(RECIPIENT, "s", "h", "p")

    def test_connection_failure_is_mailer_error(self, config: SmtpConfig, smtp) -> None:
        smtp.smtp_class.side_effect = ConnectionRefusedError("refused")
        with pytest.raises(MailerError) as exc_info:
            SmtpMailer(config).send(RECIPIENT, "s", "h", "p")
        assert not isinstance(exc_info.value, (MailSendFailed, InvalidRecipient))

    def test_auth_failure_is_mailer_error(self, config: SmtpConfig, smtp) -> None:
        smtp.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        with pytest.raises(MailerError):
            SmtpMailer(config).send(RECIPIENT, "s", "h", "p")
