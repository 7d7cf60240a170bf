"""
Adversarial tests for confirmation token guessing.

Verifies that guessed tokens never confirm an account:
- Tokens of every wrong length are rejected without errors
- A burst of random guesses never succeeds
- Failed guesses do not disturb the real token
- Expired tokens stay dead even when presented correctly
"""

import secrets
from datetime import UTC, datetime, timedelta
from unittest.mock import Mock
from uuid import uuid4

import pytest

from conftest import BASE_URL, STRONG_PASSWORD, RecordingMailer, token_from_link
from src.domain.confirmation import ConfirmationService
from src.domain.exceptions import ConfirmationTokenExpired, ConfirmationTokenMismatch
from src.domain.models import User
from src.domain.value_objects import EmailAddress, Password

pytestmark = pytest.mark.adversarial


def create(service: ConfirmationService) -> User:
    user_id = service.create_user(
        EmailAddress("target@example.com"), Password(STRONG_PASSWORD), BASE_URL
    )
    return service.get_user(user_id)


class TestBruteForceAttacks:
    """Simulate an attacker guessing confirmation tokens."""

    @pytest.mark.parametrize("length", [0, 1, 16, 43, 45, 64, 4096])
    def test_wrong_length_tokens_rejected(
        self, service: ConfirmationService, length: int
    ) -> None:
        user = create(service)
        with pytest.raises(ConfirmationTokenMismatch):
            service.confirm_email(user, "A" * length)

    def test_random_guesses_never_confirm(self, service: ConfirmationService) -> None:
        user = create(service)
        for _ in range(500):
            guess = secrets.token_urlsafe(32)[:43] + "="
            with pytest.raises(ConfirmationTokenMismatch):
                service.confirm_email(user, guess)

        assert service.get_user(user.id).is_email_confirmed is False

    def test_guessing_does_not_disturb_real_token(
        self, service: ConfirmationService, mailer: RecordingMailer
    ) -> None:
        user = create(service)
        real = token_from_link(mailer.last.plain_body)

        for guess in (real[:-1], real + "A", real.lower(), real[::-1], ""):
            if guess == real:
                continue
            with pytest.raises(ConfirmationTokenMismatch):
                service.confirm_email(user, guess)

        user = service.get_user(user.id)
        assert user.email_confirmation_token == real
        service.confirm_email(user, real)

    def test_non_ascii_guess_rejected(self, service: ConfirmationService) -> None:
        user = create(service)
        with pytest.raises(ConfirmationTokenMismatch):
            service.confirm_email(user, "é" * 44)

    def test_unencodable_guess_rejected(self, service: ConfirmationService) -> None:
        """Lone surrogates (legal in JSON, not in UTF-8) fail like any other guess."""
        user = create(service)
        with pytest.raises(ConfirmationTokenMismatch):
            service.confirm_email(user, "\ud800" * 44)
        assert service.get_user(user.id).is_email_confirmed is False

    def test_expired_token_rejected_even_when_correct(self) -> None:
        repo = Mock()
        service = ConfirmationService(repo, Mock(), Mock())
        now = datetime.now(UTC)
        user = User(
            id=uuid4(),
            email=EmailAddress("target@example.com"),
            password_hash="$2b$04$hash",
            created_at=now - timedelta(days=2),
            updated_at=now - timedelta(days=2),
            email_confirmation_token="the-real-token",
            email_confirmation_sent_at=now - timedelta(hours=25),
        )

        with pytest.raises(ConfirmationTokenExpired):
            service.confirm_email(user, "the-real-token")
        repo.mark_confirmed.assert_not_called()
