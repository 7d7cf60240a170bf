"""
Domain exceptions - Semantic error types for the identity lifecycle.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Error kinds:
- Validation: EmailAddressError, PasswordError
- Conflict: DuplicateEmail, EmailAddressInUse, EmailAlreadyConfirmed,
  ConfirmationEmailInUse
- Not found: UserNotFound
- Token/state: ConfirmationTokenExpired, ConfirmationTokenMismatch
- Transport/unknown: RepositoryError, MailerError, CouldNotSendEmail, UnknownError

None of these carry HTTP status codes. The API layer maps them.
"""

from uuid import UUID


class IdentityError(Exception):
    """Base class for identity domain errors."""

    pass


# Value object validation


class EmailAddressError(IdentityError, ValueError):
    """Email address failed validation."""

    pass


class EmptyEmailAddress(EmailAddressError):
    """Email address is empty after trimming."""

    def __init__(self) -> None:
        super().__init__("email is empty")


class InvalidEmailAddress(EmailAddressError):
    """Email address does not look like local@domain.tld."""

    def __init__(self) -> None:
        super().__init__("email is invalid")


class PasswordError(IdentityError, ValueError):
    """Password failed validation."""

    pass


class PasswordTooShort(PasswordError):
    def __init__(self, minimum: int) -> None:
        super().__init__(f"password must be at least {minimum} characters long")


class PasswordTooLong(PasswordError):
    def __init__(self, maximum: int) -> None:
        super().__init__(f"password must be at most {maximum} characters long")


class PasswordNotEncodable(PasswordError):
    """Password holds characters with no UTF-8 encoding (lone surrogates)."""

    def __init__(self) -> None:
        super().__init__("password contains invalid characters")


class PasswordTooWeak(PasswordError):
    """Password is too easy to guess."""

    def __init__(self, suggestions: list[str] | None = None) -> None:
        self.suggestions = list(suggestions or [])
        message = "password is too weak"
        if self.suggestions:
            message = f"{message}: {' '.join(self.suggestions)}"
        super().__init__(message)


# Repository contract


class DuplicateEmail(IdentityError):
    """An account already exists with that email address."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"user already exists with email {email}")


class UserNotFound(IdentityError):
    """No account exists with the given id."""

    def __init__(self, user_id: UUID) -> None:
        self.user_id = user_id
        super().__init__(f"user {user_id} not found")


class EmailAddressInUse(IdentityError):
    """Another account already owns the requested email address."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"email {email} is already in use")


class RepositoryError(IdentityError):
    """Persistence failure that is not otherwise classified."""

    pass


# Mailer contract


class MailerError(IdentityError):
    """Mail transport failure of unknown kind."""

    pass


class MailSendFailed(MailerError):
    """Transport accepted the message but failed to deliver it."""

    pass


class InvalidRecipient(MailerError):
    """Transport rejected the recipient address."""

    pass


# Confirmation workflow


class EmailConfirmationError(IdentityError):
    """Base class for email confirmation failures."""

    pass


class EmailAlreadyConfirmed(EmailConfirmationError):
    def __init__(self) -> None:
        super().__init__("email is already confirmed")


class ConfirmationEmailInUse(EmailConfirmationError):
    """Pending email was claimed by another account before confirmation."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"email {email} is already in use")


class ConfirmationTokenExpired(EmailConfirmationError):
    def __init__(self) -> None:
        super().__init__("confirmation token expired")


class ConfirmationTokenMismatch(EmailConfirmationError):
    def __init__(self) -> None:
        super().__init__("confirmation token mismatch")


class CouldNotSendEmail(EmailConfirmationError):
    def __init__(self) -> None:
        super().__init__("could not send confirmation email")


class UnknownError(IdentityError):
    """Opaque failure surfaced to callers in place of collaborator errors."""

    pass
