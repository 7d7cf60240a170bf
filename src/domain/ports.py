"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from collections.abc import Callable
from typing import Any, Protocol
from uuid import UUID

from .models import NewUser, User
from .value_objects import EmailAddress


class UserRepository(Protocol):
    """Port interface for account persistence."""

    def create(self, new_user: NewUser) -> UUID:
        """
        Insert a new account.

        Email uniqueness must be enforced atomically (unique constraint
        or equivalent), never by a separate read-then-write.

        Args:
            new_user: Insert record with id, email and password hash

        Returns:
            The new account's id

        Raises:
            DuplicateEmail: If an account already owns the email
            RepositoryError: On any other persistence failure
        """
        ...

    def get_by_id(self, user_id: UUID) -> User:
        """
        Load an account.

        Raises:
            UserNotFound: If no account has this id
            RepositoryError: On any other persistence failure
        """
        ...

    def set_confirmation_token(
        self,
        user_id: UUID,
        token: str,
        pending_new_email: EmailAddress | None = None,
        *,
        clear_pending_email: bool = False,
    ) -> None:
        """
        Record a freshly issued confirmation token and stamp its issuance time.

        Overwrites any previous token. When pending_new_email is given it is
        stored as the in-flight email change and email_confirmed_at is
        cleared; when omitted, an existing pending change is kept unless
        clear_pending_email withdraws it.

        Raises:
            UserNotFound: If no account has this id
            EmailAddressInUse: If pending_new_email belongs to another account
            RepositoryError: On any other persistence failure
        """
        ...

    def mark_confirmed(
        self,
        user_id: UUID,
        pending_new_email: EmailAddress | None = None,
        *,
        expected_token: str | None = None,
    ) -> None:
        """
        Complete confirmation: stamp email_confirmed_at, clear token and issuance time.

        When expected_token is given, the token on record is compared to it
        under the same lock as the update, so a token replaced by a concurrent
        resend can no longer confirm the account.

        When pending_new_email is given it becomes the authoritative email and
        the pending field is cleared. Uniqueness of that email against other
        accounts is re-checked atomically, since another account may have
        claimed it after the change was requested.

        Raises:
            UserNotFound: If no account has this id
            ConfirmationTokenMismatch: If the token on record is not expected_token
            EmailAddressInUse: If pending_new_email now belongs to another account
            RepositoryError: On any other persistence failure
        """
        ...


class Mailer(Protocol):
    """Port interface for two-part (HTML + plain text) email delivery."""

    def send(
        self,
        recipient: EmailAddress,
        subject: str,
        html_body: str,
        plain_body: str,
    ) -> None:
        """
        Deliver a message.

        Imposing an I/O timeout is the adapter's job.

        Raises:
            MailSendFailed: If delivery failed
            InvalidRecipient: If the transport rejected the recipient
            MailerError: On any other transport failure
        """
        ...


class TaskRunner(Protocol):
    """Port interface for fire-and-forget background work."""

    def spawn(self, name: str, fn: Callable[..., Any], *args: Any) -> None:
        """
        Hand off fn(*args) to run without blocking the caller.

        The caller never sees the task's outcome; failures are the
        runner's to log.

        Args:
            name: Short description used in logs
            fn: Callable to run
            *args: Positional arguments for fn
        """
        ...
