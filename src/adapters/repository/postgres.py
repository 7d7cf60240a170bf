"""
PostgreSQL repository adapter - Implements UserRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Concurrency Design:
-------------------
1. **Email uniqueness**: Enforced by the UNIQUE constraint on users.email.
   create() never reads before writing; a UniqueViolation becomes
   DuplicateEmail.

2. **Token issuance**: A single UPDATE writes token and issuance time
   together (NOW() is the database clock). Concurrent resends for the
   same account serialize on the row lock; the last writer's token wins.

3. **Confirmation and promotion**: mark_confirmed() locks the account row,
   checks the stored token is still the one that was verified (a resend
   that committed first supersedes it), re-checks that no other account owns the
   pending email, then swaps it in within the same transaction. The UNIQUE
   constraint backs this up if another account claims the address between
   check and update.
"""

import logging
import secrets
from pathlib import Path
from uuid import UUID

import psycopg
from psycopg.errors import UniqueViolation
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import (
    ConfirmationTokenMismatch,
    DuplicateEmail,
    EmailAddressInUse,
    RepositoryError,
    UserNotFound,
)
from src.domain.models import NewUser, User
from src.domain.value_objects import EmailAddress

logger = logging.getLogger(__name__)

_USER_COLUMNS = """
    id, email, password_hash, new_email, email_confirmed_at,
    email_confirmation_token, email_confirmation_sent_at, created_at, updated_at
"""

_EMAIL_OWNED_BY_OTHER_SQL = "SELECT 1 FROM users WHERE email = %s AND id <> %s"


class PostgresUserRepository:
    """
    Implements UserRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def create(self, new_user: NewUser) -> UUID:
        """
        Insert a new account, relying on the UNIQUE constraint for email.

        Raises:
            DuplicateEmail: If an account already owns the email
            RepositoryError: On any other database failure
        """
        sql = """
            INSERT INTO users (id, email, password_hash)
            VALUES (%s, %s, %s)
            RETURNING id
        """

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (new_user.id, str(new_user.email), new_user.password_hash))
                row = cursor.fetchone()
                conn.commit()
        except UniqueViolation as exc:
            raise DuplicateEmail(str(new_user.email)) from exc
        except psycopg.Error as exc:
            logger.error("Failed to create user %s: %s", new_user.id, exc)
            raise RepositoryError("could not create user") from exc

        return row[0]

    def get_by_id(self, user_id: UUID) -> User:
        """
        Load an account by id.

        Raises:
            UserNotFound: If no account has this id
            RepositoryError: On any other database failure
        """
        sql = f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s"

        try:
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, (user_id,))
                row = cursor.fetchone()
        except psycopg.Error as exc:
            logger.error("Failed to load user %s: %s", user_id, exc)
            raise RepositoryError("could not load user") from exc

        if row is None:
            raise UserNotFound(user_id)

        return _row_to_user(row)

    def set_confirmation_token(
        self,
        user_id: UUID,
        token: str,
        pending_new_email: EmailAddress | None = None,
        *,
        clear_pending_email: bool = False,
    ) -> None:
        """
        Store a freshly issued token, stamping issuance time with NOW().

        With a pending email the account re-enters confirmation: new_email is
        set and email_confirmed_at cleared. Without one, new_email is kept
        unless clear_pending_email is set.

        Raises:
            UserNotFound: If no account has this id
            EmailAddressInUse: If pending_new_email belongs to another account
            RepositoryError: On any other database failure
        """
        resend_sql = """
            UPDATE users
            SET email_confirmation_token = %s,
                email_confirmation_sent_at = NOW(),
                new_email = CASE WHEN %s THEN NULL ELSE new_email END
            WHERE id = %s
        """

        change_sql = """
            UPDATE users
            SET email_confirmation_token = %s,
                email_confirmation_sent_at = NOW(),
                new_email = %s,
                email_confirmed_at = NULL
            WHERE id = %s
        """

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                if pending_new_email is None:
                    cursor.execute(resend_sql, (token, clear_pending_email, user_id))
                else:
                    cursor.execute(_EMAIL_OWNED_BY_OTHER_SQL, (str(pending_new_email), user_id))
                    if cursor.fetchone() is not None:
                        conn.rollback()
                        raise EmailAddressInUse(str(pending_new_email))
                    cursor.execute(change_sql, (token, str(pending_new_email), user_id))

                updated = cursor.rowcount
                conn.commit()
        except psycopg.Error as exc:
            logger.error("Failed to store confirmation token for user %s: %s", user_id, exc)
            raise RepositoryError("could not store confirmation token") from exc

        if updated == 0:
            raise UserNotFound(user_id)

    def mark_confirmed(
        self,
        user_id: UUID,
        pending_new_email: EmailAddress | None = None,
        *,
        expected_token: str | None = None,
    ) -> None:
        """
        Mark the account confirmed and clear its token.

        The row is locked first. Under that lock the stored token is compared
        to expected_token, and a pending email's ownership is re-checked,
        before the update runs in the same transaction.

        Raises:
            UserNotFound: If no account has this id
            ConfirmationTokenMismatch: If the stored token is not expected_token
            EmailAddressInUse: If pending_new_email now belongs to another account
            RepositoryError: On any other database failure
        """
        lock_sql = "SELECT email_confirmation_token FROM users WHERE id = %s FOR UPDATE"

        confirm_sql = """
            UPDATE users
            SET email_confirmed_at = NOW(),
                email_confirmation_token = NULL,
                email_confirmation_sent_at = NULL
            WHERE id = %s
        """

        promote_sql = """
            UPDATE users
            SET email = %s,
                new_email = NULL,
                email_confirmed_at = NOW(),
                email_confirmation_token = NULL,
                email_confirmation_sent_at = NULL
            WHERE id = %s
        """

        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(lock_sql, (user_id,))
                row = cursor.fetchone()
                if row is None:
                    conn.rollback()
                    raise UserNotFound(user_id)

                if expected_token is not None and not _same_token(row[0], expected_token):
                    conn.rollback()
                    raise ConfirmationTokenMismatch()

                if pending_new_email is None:
                    cursor.execute(confirm_sql, (user_id,))
                else:
                    email = str(pending_new_email)
                    cursor.execute(_EMAIL_OWNED_BY_OTHER_SQL, (email, user_id))
                    if cursor.fetchone() is not None:
                        conn.rollback()
                        raise EmailAddressInUse(email)

                    cursor.execute(promote_sql, (email, user_id))

                conn.commit()
        except UniqueViolation as exc:
            raise EmailAddressInUse(str(pending_new_email)) from exc
        except psycopg.Error as exc:
            logger.error("Failed to confirm email for user %s: %s", user_id, exc)
            raise RepositoryError("could not confirm email") from exc


def _same_token(stored: str | None, expected: str) -> bool:
    if stored is None:
        return False
    return secrets.compare_digest(stored.encode(), expected.encode())


def _row_to_user(row: dict) -> User:
    """Rebuild the aggregate from a users row. Stored emails were validated on write."""
    return User(
        id=row["id"],
        email=EmailAddress(row["email"]),
        password_hash=row["password_hash"],
        new_email=EmailAddress(row["new_email"]) if row["new_email"] else None,
        email_confirmed_at=row["email_confirmed_at"],
        email_confirmation_token=row["email_confirmation_token"],
        email_confirmation_sent_at=row["email_confirmation_sent_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            with pool.connection() as conn:
                conn.execute(sql_file.read_text())
                conn.commit()
        except psycopg.Error as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e

        logger.info("Migration complete: %s", sql_file.name)
