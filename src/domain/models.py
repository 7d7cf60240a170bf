"""
Domain models - The User aggregate and its insert record.

Confirmation State Machine
==========================

States:
- UNCONFIRMED: Account created, no confirmation token on record
- CONFIRMATION_PENDING: Token issued and not yet used
- CONFIRMED: Email ownership proven, no token on record

Transitions:
    UNCONFIRMED          -> CONFIRMATION_PENDING  (token issued)
    CONFIRMATION_PENDING -> CONFIRMATION_PENDING  (token re-issued, old one superseded)
    CONFIRMATION_PENDING -> CONFIRMED             (correct token within 24 hours)
    CONFIRMED            -> CONFIRMATION_PENDING  (email change requested)

While an email change is pending, new_email holds the requested address
and email stays authoritative until the change is confirmed.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from uuid import UUID

from .value_objects import EmailAddress

CONFIRMATION_TOKEN_TTL = timedelta(hours=24)


class ConfirmationState(str, Enum):
    """Email confirmation lifecycle states."""

    UNCONFIRMED = "UNCONFIRMED"
    CONFIRMATION_PENDING = "CONFIRMATION_PENDING"
    CONFIRMED = "CONFIRMED"


@dataclass
class User:
    """
    User aggregate root.

    Invariant: email_confirmation_token and email_confirmation_sent_at
    are either both set or both None.
    """

    id: UUID
    email: EmailAddress
    password_hash: str = field(repr=False)
    created_at: datetime
    updated_at: datetime
    new_email: EmailAddress | None = None
    email_confirmed_at: datetime | None = None
    email_confirmation_token: str | None = field(default=None, repr=False)
    email_confirmation_sent_at: datetime | None = None

    def __post_init__(self) -> None:
        if (self.email_confirmation_token is None) != (self.email_confirmation_sent_at is None):
            raise ValueError(
                "email_confirmation_token and email_confirmation_sent_at must be set together"
            )

    @property
    def is_email_confirmed(self) -> bool:
        return self.email_confirmed_at is not None

    @property
    def has_pending_email_change(self) -> bool:
        return self.new_email is not None

    @property
    def confirmation_state(self) -> ConfirmationState:
        if self.email_confirmation_token is not None:
            return ConfirmationState.CONFIRMATION_PENDING
        if self.email_confirmed_at is not None:
            return ConfirmationState.CONFIRMED
        return ConfirmationState.UNCONFIRMED

    @property
    def confirmation_expires_at(self) -> datetime | None:
        """Issuance time plus the 24-hour validity window, if a token is on record."""
        if self.email_confirmation_sent_at is None:
            return None
        return self.email_confirmation_sent_at + CONFIRMATION_TOKEN_TTL


@dataclass(frozen=True)
class NewUser:
    """Insert record for a new account. Holds a hash, never a plaintext password."""

    id: UUID
    email: EmailAddress
    password_hash: str = field(repr=False)
