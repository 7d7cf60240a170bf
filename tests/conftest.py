"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory repository and recording mailer doubles
- A confirmation service wired to those doubles
- Strong sample passwords that pass the strength check
"""

from collections.abc import Generator
from dataclasses import dataclass, field

import pytest

from src.adapters.repository.memory import InMemoryUserRepository
from src.adapters.tasks.thread_pool import ThreadPoolTaskRunner
from src.domain.confirmation import ConfirmationService
from src.domain.value_objects import EmailAddress

STRONG_PASSWORD = "vX9#qLm2!pRt7wZe"
BASE_URL = "https://identity.example.com"


@dataclass
class SentEmail:
    recipient: EmailAddress
    subject: str
    html_body: str
    plain_body: str


@dataclass
class RecordingMailer:
    """Mailer double that keeps every message it is asked to send."""

    sent: list[SentEmail] = field(default_factory=list)
    fail_with: Exception | None = None

    def send(
        self,
        recipient: EmailAddress,
        subject: str,
        html_body: str,
        plain_body: str,
    ) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(SentEmail(recipient, subject, html_body, plain_body))

    @property
    def last(self) -> SentEmail:
        return self.sent[-1]


class InlineTaskRunner:
    """TaskRunner double that runs tasks synchronously in the caller's thread."""

    def __init__(self) -> None:
        self.spawned: list[str] = []

    def spawn(self, name, fn, *args) -> None:
        self.spawned.append(name)
        fn(*args)


def token_from_link(plain_body: str) -> str:
    """Pull the token query parameter out of a rendered confirmation email."""
    return plain_body.split("token=", 1)[1].split()[0]


@pytest.fixture
def repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def tasks() -> InlineTaskRunner:
    return InlineTaskRunner()


@pytest.fixture
def thread_pool() -> Generator[ThreadPoolTaskRunner, None, None]:
    runner = ThreadPoolTaskRunner(max_workers=2)
    yield runner
    runner.shutdown(wait=True)


@pytest.fixture
def service(
    repository: InMemoryUserRepository, mailer: RecordingMailer, tasks: InlineTaskRunner
) -> ConfirmationService:
    """Confirmation service over in-memory doubles; bcrypt at minimum cost for speed."""
    return ConfirmationService(repository=repository, mailer=mailer, tasks=tasks, bcrypt_cost=4)


@pytest.fixture(scope="session")
def pg_pool():
    """
    Connection pool for tests that need PostgreSQL.

    Skips the requesting test when the database is unreachable, so the
    unit suite runs without docker-compose. Migrations run once per session.
    """
    import psycopg
    from psycopg_pool import ConnectionPool

    from src.adapters.repository.postgres import run_migrations
    from src.config.settings import get_settings

    settings = get_settings()
    try:
        psycopg.connect(settings.database_url, connect_timeout=3).close()
    except psycopg.OperationalError as exc:
        pytest.skip(f"PostgreSQL unavailable: {exc}")

    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=True)
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_users(pg_pool) -> None:
    """Empty the users table before a database test."""
    with pg_pool.connection() as conn:
        conn.execute("DELETE FROM users")
        conn.commit()
