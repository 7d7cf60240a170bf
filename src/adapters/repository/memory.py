"""
In-memory repository adapter - Implements UserRepository protocol.

Thread-safe dictionary store used as a test double and as the
"memory" repository backend for local development. A single lock makes
each operation atomic, mirroring the row-level guarantees of the
PostgreSQL adapter.
"""

import secrets
import threading
from dataclasses import replace
from datetime import UTC, datetime
from uuid import UUID

from src.domain.exceptions import (
    ConfirmationTokenMismatch,
    DuplicateEmail,
    EmailAddressInUse,
    UserNotFound,
)
from src.domain.models import NewUser, User
from src.domain.value_objects import EmailAddress


class InMemoryUserRepository:
    """
    Implements UserRepository protocol with a dict guarded by a lock.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Returned User objects are copies; mutating them does not touch the store.
    """

    def __init__(self) -> None:
        self._users: dict[UUID, User] = {}
        self._lock = threading.Lock()

    def create(self, new_user: NewUser) -> UUID:
        with self._lock:
            if self._email_owner(new_user.email) is not None:
                raise DuplicateEmail(str(new_user.email))

            now = _utcnow()
            self._users[new_user.id] = User(
                id=new_user.id,
                email=new_user.email,
                password_hash=new_user.password_hash,
                created_at=now,
                updated_at=now,
            )
            return new_user.id

    def get_by_id(self, user_id: UUID) -> User:
        with self._lock:
            return replace(self._get(user_id))

    def set_confirmation_token(
        self,
        user_id: UUID,
        token: str,
        pending_new_email: EmailAddress | None = None,
        *,
        clear_pending_email: bool = False,
    ) -> None:
        with self._lock:
            user = self._get(user_id)
            now = _utcnow()

            if pending_new_email is None:
                self._users[user_id] = replace(
                    user,
                    new_email=None if clear_pending_email else user.new_email,
                    email_confirmation_token=token,
                    email_confirmation_sent_at=now,
                    updated_at=now,
                )
                return

            owner = self._email_owner(pending_new_email)
            if owner is not None and owner != user_id:
                raise EmailAddressInUse(str(pending_new_email))

            self._users[user_id] = replace(
                user,
                new_email=pending_new_email,
                email_confirmed_at=None,
                email_confirmation_token=token,
                email_confirmation_sent_at=now,
                updated_at=now,
            )

    def mark_confirmed(
        self,
        user_id: UUID,
        pending_new_email: EmailAddress | None = None,
        *,
        expected_token: str | None = None,
    ) -> None:
        with self._lock:
            user = self._get(user_id)
            now = _utcnow()

            if expected_token is not None and not _same_token(
                user.email_confirmation_token, expected_token
            ):
                raise ConfirmationTokenMismatch()

            email = user.email
            new_email = user.new_email
            if pending_new_email is not None:
                owner = self._email_owner(pending_new_email)
                if owner is not None and owner != user_id:
                    raise EmailAddressInUse(str(pending_new_email))
                email = pending_new_email
                new_email = None

            self._users[user_id] = replace(
                user,
                email=email,
                new_email=new_email,
                email_confirmed_at=now,
                email_confirmation_token=None,
                email_confirmation_sent_at=None,
                updated_at=now,
            )

    def _get(self, user_id: UUID) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise UserNotFound(user_id)
        return user

    def _email_owner(self, email: EmailAddress) -> UUID | None:
        for user in self._users.values():
            if user.email == email:
                return user.id
        return None


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _same_token(stored: str | None, expected: str) -> bool:
    if stored is None:
        return False
    return secrets.compare_digest(stored.encode(), expected.encode())
