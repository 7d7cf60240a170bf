"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
Long-lived adapters (repository, mailer, task runner) are created during
app lifespan startup and stored in app.state.
"""

from fastapi import Depends, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository import InMemoryUserRepository, PostgresUserRepository
from src.adapters.smtp.console import ConsoleMailer
from src.adapters.smtp.smtp import SmtpConfig, SmtpMailer
from src.config.settings import Settings, get_settings
from src.domain.confirmation import ConfirmationService
from src.domain.ports import Mailer, TaskRunner, UserRepository


def create_repository(settings: Settings, pool: ConnectionPool | None) -> UserRepository:
    """Build the repository selected by settings.repository_backend."""
    if settings.repository_backend == "memory":
        return InMemoryUserRepository()
    if pool is None:
        raise ValueError("postgres repository backend requires a connection pool")
    return PostgresUserRepository(pool)


def create_mailer(settings: Settings) -> Mailer:
    """Build the mailer selected by settings.mail_backend."""
    if settings.mail_backend == "smtp":
        return SmtpMailer(
            SmtpConfig(
                host=settings.smtp_host,
                port=settings.smtp_port,
                sender=settings.smtp_sender,
                username=settings.smtp_username,
                password=settings.smtp_password,
                starttls=settings.smtp_starttls,
                timeout_seconds=settings.smtp_timeout_seconds,
            )
        )
    return ConsoleMailer()


def get_repository(request: Request) -> UserRepository:
    """Get the repository created at startup."""
    return request.app.state.repository


def get_mailer(request: Request) -> Mailer:
    """Get the mailer created at startup."""
    return request.app.state.mailer


def get_task_runner(request: Request) -> TaskRunner:
    """Get the background task runner created at startup."""
    return request.app.state.tasks


def get_base_url(settings: Settings = Depends(get_settings)) -> str:
    """Public base URL for confirmation links, without trailing slash."""
    return settings.base_url.rstrip("/")


def get_confirmation_service(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> ConfirmationService:
    """
    Create confirmation service with injected dependencies.

    Wires together the repository, mailer and task runner for the domain service.
    """
    return ConfirmationService(
        repository=get_repository(request),
        mailer=get_mailer(request),
        tasks=get_task_runner(request),
        bcrypt_cost=settings.bcrypt_cost,
        require_email_confirmation=settings.require_email_confirmation,
    )
