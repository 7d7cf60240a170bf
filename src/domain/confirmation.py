"""
Confirmation domain service - Email ownership state machine.

This module contains the core business logic for account creation and
email confirmation. The service holds no mutable state of its own: every
transition is persisted through the repository, so concurrent requests
against different accounts never contend, and concurrent resends for the
same account resolve to whichever token the repository wrote last.

Confirmation Flow
=================

1. create_user() persists the account and hands the first confirmation
   send to the task runner. The caller gets the id back immediately; a
   failed send is logged, never raised (the user can ask for a resend).
2. send_email_confirmation() issues a fresh token, persists it (which
   supersedes any earlier token), then mails the confirmation link.
   Persistence happens first: a token never exists only in an email.
3. confirm_email() checks the token on record: present, issued less than
   24 hours ago, and equal to the presented token under constant-time
   comparison. On success the repository marks the account confirmed and
   promotes any pending new email.

Token format: SHA-256 over user id + 64-char alphanumeric salt + Unix
timestamp, URL-safe base64 encoded (44 characters).
"""

import base64
import hashlib
import logging
import secrets
import string
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

import bcrypt
from jinja2 import TemplateError
from uuid_extensions import uuid7

from .emails import ConfirmEmailAddressTemplate
from .exceptions import (
    ConfirmationEmailInUse,
    ConfirmationTokenExpired,
    ConfirmationTokenMismatch,
    CouldNotSendEmail,
    EmailAddressInUse,
    EmailAlreadyConfirmed,
    IdentityError,
    InvalidRecipient,
    MailerError,
    MailSendFailed,
    RepositoryError,
    UnknownError,
)
from .models import CONFIRMATION_TOKEN_TTL, NewUser, User
from .ports import Mailer, TaskRunner, UserRepository
from .value_objects import ConfirmationToken, EmailAddress, Password

logger = logging.getLogger(__name__)

TOKEN_SALT_LENGTH = 64
_SALT_ALPHABET = string.ascii_letters + string.digits

# bcrypt only consumes the first 72 bytes of its input.
_BCRYPT_MAX_BYTES = 72


def generate_confirmation_token(user_id: UUID, issued_at: datetime) -> ConfirmationToken:
    """
    Mint a confirmation token for an account.

    The salt comes from the secrets module, so two tokens generated in the
    same second for the same account still differ.
    """
    salt = "".join(secrets.choice(_SALT_ALPHABET) for _ in range(TOKEN_SALT_LENGTH))
    data = f"{user_id}{salt}{int(issued_at.timestamp())}"
    digest = hashlib.sha256(data.encode()).digest()
    return ConfirmationToken(base64.urlsafe_b64encode(digest).decode())


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class ConfirmationService:
    """
    Domain service for account creation and email confirmation.

    Orchestrates password hashing, persistence, token issuance and
    verification, and confirmation email dispatch.
    """

    repository: UserRepository
    mailer: Mailer
    tasks: TaskRunner
    bcrypt_cost: int = 10
    require_email_confirmation: bool = True

    def create_user(self, email: EmailAddress, password: Password, base_url: str) -> UUID:
        """
        Create an account and schedule its first confirmation email.

        Args:
            email: Validated email address
            password: Validated password (hashed here, never stored)
            base_url: Public base URL used to build the confirmation link

        Returns:
            The new account's id

        Raises:
            DuplicateEmail: If an account already owns the email
            UnknownError: On any other persistence failure
        """
        new_user = NewUser(id=uuid7(), email=email, password_hash=self._hash_password(password))

        try:
            user_id = self.repository.create(new_user)
        except RepositoryError as exc:
            raise UnknownError("could not create user") from exc

        logger.info("User created: %s", user_id)

        self.tasks.spawn("initial email confirmation", self._complete_signup, user_id, base_url)
        return user_id

    def get_user(self, user_id: UUID) -> User:
        """
        Load an account.

        Raises:
            UserNotFound: If no account has this id
            UnknownError: On any other persistence failure
        """
        try:
            return self.repository.get_by_id(user_id)
        except RepositoryError as exc:
            raise UnknownError("could not load user") from exc

    def send_email_confirmation(
        self,
        user: User,
        base_url: str,
        new_email: EmailAddress | None = None,
    ) -> datetime:
        """
        Issue a fresh confirmation token and email the confirmation link.

        Any previously issued token stops working as soon as the new one
        is persisted.

        Args:
            user: Account to confirm
            base_url: Public base URL used to build the confirmation link
            new_email: Address to move the account to (email-change flow)

        Returns:
            Token expiry: issuance time plus 24 hours

        Raises:
            EmailAlreadyConfirmed: If confirmed and no email change is in flight
            ConfirmationEmailInUse: If new_email belongs to another account
            CouldNotSendEmail: If the mailer failed to deliver
            UserNotFound: If the account no longer exists
            UnknownError: On persistence, rendering or unclassified transport failures
        """
        if new_email is None and user.is_email_confirmed and not user.has_pending_email_change:
            raise EmailAlreadyConfirmed()

        recipient = new_email or user.new_email or user.email
        return self._issue_and_send(user, base_url, recipient, new_email=new_email)

    def request_email_change(self, user: User, new_email: EmailAddress, base_url: str) -> datetime:
        """
        Start an email change by confirming the new address.

        The current email stays authoritative until the new one is confirmed.
        Asking to "change" to the current address withdraws any pending change
        and sends the confirmation to the current address; with nothing
        pending it is a plain resend.
        """
        if new_email != user.email:
            return self.send_email_confirmation(user, base_url, new_email=new_email)

        if not user.has_pending_email_change:
            return self.send_email_confirmation(user, base_url)

        logger.info("Pending email change withdrawn for user %s", user.id)
        return self._issue_and_send(user, base_url, user.email, clear_pending_email=True)

    def _issue_and_send(
        self,
        user: User,
        base_url: str,
        recipient: EmailAddress,
        new_email: EmailAddress | None = None,
        clear_pending_email: bool = False,
    ) -> datetime:
        issued_at = _utcnow()
        token = generate_confirmation_token(user.id, issued_at)

        try:
            self.repository.set_confirmation_token(
                user.id, token.value, new_email, clear_pending_email=clear_pending_email
            )
        except EmailAddressInUse as exc:
            raise ConfirmationEmailInUse(exc.email) from exc
        except RepositoryError as exc:
            raise UnknownError("could not store confirmation token") from exc

        logger.info("Confirmation token issued for user %s", user.id)

        template = ConfirmEmailAddressTemplate.for_token(base_url, user.id, token.value)
        try:
            html_body = template.render_html()
            plain_body = template.render_plain()
        except TemplateError as exc:
            raise UnknownError("could not render confirmation email") from exc

        try:
            self.mailer.send(recipient, template.subject, html_body, plain_body)
        except (MailSendFailed, InvalidRecipient) as exc:
            raise CouldNotSendEmail() from exc
        except MailerError as exc:
            raise UnknownError("mail transport failed") from exc

        logger.info("Confirmation email sent for user %s", user.id)
        return issued_at + CONFIRMATION_TOKEN_TTL

    def confirm_email(self, user: User, presented_token: str) -> None:
        """
        Verify a presented token and mark the account confirmed.

        Expiry is checked before the token comparison; the comparison
        itself runs in constant time whatever the input length.

        Raises:
            EmailAlreadyConfirmed: If confirmed and no email change is in flight
            ConfirmationTokenMismatch: If no token is on record, it differs, or a
                newer token replaced it before the account was marked confirmed
            ConfirmationTokenExpired: If the token was issued over 24 hours ago
            ConfirmationEmailInUse: If the pending email was claimed meanwhile
            UserNotFound: If the account no longer exists
            UnknownError: On any other persistence failure
        """
        if user.is_email_confirmed and not user.has_pending_email_change:
            raise EmailAlreadyConfirmed()

        if user.email_confirmation_token is None or user.email_confirmation_sent_at is None:
            raise ConfirmationTokenMismatch()

        if _utcnow() > user.email_confirmation_sent_at + CONFIRMATION_TOKEN_TTL:
            raise ConfirmationTokenExpired()

        if not ConfirmationToken(user.email_confirmation_token).matches(presented_token):
            raise ConfirmationTokenMismatch()

        try:
            self.repository.mark_confirmed(
                user.id, user.new_email, expected_token=user.email_confirmation_token
            )
        except EmailAddressInUse as exc:
            raise ConfirmationEmailInUse(exc.email) from exc
        except RepositoryError as exc:
            raise UnknownError("could not confirm email") from exc

        logger.info("Email confirmed for user %s", user.id)

    def _complete_signup(self, user_id: UUID, base_url: str) -> None:
        """
        Background half of create_user(). Best effort: failures are logged.
        """
        try:
            if self.require_email_confirmation:
                user = self.repository.get_by_id(user_id)
                self.send_email_confirmation(user, base_url)
            else:
                self.repository.mark_confirmed(user_id)
        except IdentityError as exc:
            logger.warning("Initial email confirmation for user %s failed: %s", user_id, exc)

    def _hash_password(self, password: Password) -> str:
        """Hash password using bcrypt with the configured cost factor."""
        return bcrypt.hashpw(
            password.as_bytes()[:_BCRYPT_MAX_BYTES], bcrypt.gensalt(rounds=self.bcrypt_cost)
        ).decode()
