"""
Domain layer - Pure business logic with zero web or database imports.

This package contains the identity and email-confirmation lifecycle:
value objects, the User aggregate, the error taxonomy, and the
confirmation service. It defines its own port interfaces for
infrastructure abstraction, ensuring true hexagonal architecture decoupling.
"""

from .confirmation import ConfirmationService, generate_confirmation_token
from .exceptions import (
    ConfirmationEmailInUse,
    ConfirmationTokenExpired,
    ConfirmationTokenMismatch,
    CouldNotSendEmail,
    DuplicateEmail,
    EmailAddressError,
    EmailAddressInUse,
    EmailAlreadyConfirmed,
    EmailConfirmationError,
    EmptyEmailAddress,
    IdentityError,
    InvalidEmailAddress,
    InvalidRecipient,
    MailerError,
    MailSendFailed,
    PasswordError,
    PasswordTooLong,
    PasswordTooShort,
    PasswordTooWeak,
    RepositoryError,
    UnknownError,
    UserNotFound,
)
from .models import CONFIRMATION_TOKEN_TTL, ConfirmationState, NewUser, User
from .ports import Mailer, TaskRunner, UserRepository
from .value_objects import ConfirmationToken, EmailAddress, Password

__all__ = [
    "CONFIRMATION_TOKEN_TTL",
    "ConfirmationEmailInUse",
    "ConfirmationService",
    "ConfirmationState",
    "ConfirmationToken",
    "ConfirmationTokenExpired",
    "ConfirmationTokenMismatch",
    "CouldNotSendEmail",
    "DuplicateEmail",
    "EmailAddress",
    "EmailAddressError",
    "EmailAddressInUse",
    "EmailAlreadyConfirmed",
    "EmailConfirmationError",
    "EmptyEmailAddress",
    "IdentityError",
    "InvalidEmailAddress",
    "InvalidRecipient",
    "Mailer",
    "MailerError",
    "MailSendFailed",
    "NewUser",
    "Password",
    "PasswordError",
    "PasswordTooLong",
    "PasswordTooShort",
    "PasswordTooWeak",
    "RepositoryError",
    "TaskRunner",
    "UnknownError",
    "User",
    "UserNotFound",
    "UserRepository",
    "generate_confirmation_token",
]
