"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, and lifespan events.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request

from src.adapters.repository.memory import InMemoryMemberStore
from src.adapters.repository.postgres import (
    PostgresMemberStore,
    PostgresNotificationOutbox,
    create_pool,
    run_migrations,
)
from src.adapters.smtp.console import ConsoleMailer
from src.adapters.smtp.smtp import SmtpMailer
from src.api.error_handlers import register_error_handlers
from src.api.routes import router
from src.config.settings import Settings, get_settings
from src.domain.notifications import NotificationDispatcher, NotificationRelay
from src.domain.ports import Mailer

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "members",
        "description": "Membership registration API - Register members and look them up by ID",
    },
]


def build_mailer(settings: Settings) -> Mailer:
    """Select the mail transport configured by mail_backend."""
    if settings.mail_backend == "smtp":
        return SmtpMailer.from_settings(settings)
    return ConsoleMailer()


async def run_relay(relay: NotificationRelay, interval: float) -> None:
    """Deliver queued notifications until cancelled."""
    while True:
        try:
            delivered = await asyncio.to_thread(relay.drain)
            if delivered:
                logger.info("Delivered %d queued notification(s)", delivered)
        except Exception:
            logger.exception("Outbox relay pass failed")
        await asyncio.sleep(interval)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the member store (and database pool) on startup
    - Runs migrations on startup
    - Starts the outbox relay when notifications are queued
    - Stops the relay and closes the pool on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    logger.info("Starting application...")

    pool = None
    if settings.store_backend == "postgres":
        logger.info("Connecting to database...")
        pool = create_pool(
            settings.database_url,
            settings.pool_min_size,
            settings.pool_max_size,
            settings.io_timeout_seconds,
        )

        try:
            logger.info("Running database migrations...")
            run_migrations(pool)

            store = PostgresMemberStore(pool)
            outbox = PostgresNotificationOutbox(pool)
            mailer = build_mailer(settings)
        except Exception:
            logger.exception("Startup failed; closing database connection pool")
            pool.close()
            raise
    else:
        logger.warning("Using in-memory member store; data is lost on restart")
        store = outbox = InMemoryMemberStore()
        mailer = build_mailer(settings)

    # Store long-lived collaborators in app state for dependency injection
    app.state.pool = pool
    app.state.store = store
    app.state.mailer = mailer

    relay_task = None
    if settings.notification_mode == "outbox":
        relay = NotificationRelay(
            store=store,
            outbox=outbox,
            dispatcher=NotificationDispatcher(
                mailer=app.state.mailer,
                admin_email=settings.admin_email,
                organization_name=settings.organization_name,
            ),
            max_attempts=settings.outbox_max_attempts,
            batch_size=settings.outbox_batch_size,
            lease_seconds=settings.outbox_lease_seconds,
        )
        relay_task = asyncio.create_task(run_relay(relay, settings.outbox_poll_seconds))
        logger.info("Outbox relay started")

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if relay_task is not None:
        relay_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await relay_task
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="membership-registry",
    description="Membership registration API - assigns member IDs and sends confirmation emails",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_error_handlers(app)

app.include_router(router, prefix="/api")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if application and database are healthy.
    Raises exception if database connection fails.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}


def run() -> None:
    """Console entry point: serve the app with uvicorn on the configured port."""
    settings = get_settings()
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
