"""
Application entry point.

Builds the FastAPI app, mounts the v1 router under /api/v1, and wires
the adapters chosen by settings into app.state during lifespan startup.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.adapters.tasks.thread_pool import ThreadPoolTaskRunner
from src.api.dependencies import create_mailer, create_repository
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "v1",
        "description": "Create users and confirm ownership of their email addresses",
    },
]


def _open_database(settings: Settings) -> ConnectionPool | None:
    """Open the pool and apply migrations; None for the in-memory backend."""
    if settings.repository_backend != "postgres":
        logger.warning(
            "Repository backend is %r; data is lost on restart", settings.repository_backend
        )
        return None

    logger.info("Opening connection pool (%d-%d)", settings.pool_min_size, settings.pool_max_size)
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )
    run_migrations(pool)
    return pool


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: configure logging, open the database, build adapters.
    Shutdown: let queued background sends finish, then close the pool.
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    pool = _open_database(settings)
    app.state.pool = pool
    app.state.repository = create_repository(settings, pool)
    app.state.mailer = create_mailer(settings)
    app.state.tasks = ThreadPoolTaskRunner(max_workers=settings.background_workers)
    logger.info(
        "Ready: repository=%s mailer=%s", settings.repository_backend, settings.mail_backend
    )

    yield

    app.state.tasks.shutdown(wait=True)
    if pool is not None:
        pool.close()
    logger.info("Shutdown complete")


app = FastAPI(
    title="identity",
    description="User accounts with email ownership confirmation",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(v1_router, prefix="/api/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Liveness plus a round trip to the database when one is configured.

    A database failure propagates and surfaces as a 500.
    """
    if request.app.state.pool is not None:
        with request.app.state.pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}
