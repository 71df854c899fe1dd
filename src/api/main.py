"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from src.adapters.email.console import ConsoleEmailSender
from src.adapters.email.resend import ResendEmailSender
from src.adapters.store.memory import InMemoryBlobStores
from src.adapters.store.postgres import PostgresBlobStores, run_migrations
from src.api.errors import register_exception_handlers
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings
from src.domain.ports import BlobStores, Clock, EmailSender, utc_now

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Email verification and credential API v1 - "
        "Prove email control, create credentials and obtain sessions",
    },
]


def configure_state(
    app: FastAPI,
    settings: Settings,
    stores: BlobStores,
    email_sender: EmailSender,
    clock: Clock = utc_now,
) -> None:
    """Store infrastructure on app.state for dependency injection."""
    app.state.settings = settings
    app.state.stores = stores
    app.state.email_sender = email_sender
    app.state.clock = clock


def build_email_sender(settings: Settings) -> EmailSender:
    if settings.email_backend == "resend":
        if not settings.resend_api_key or not settings.from_email:
            raise RuntimeError("RESEND_API_KEY and FROM_EMAIL are required for the resend backend")
        return ResendEmailSender(
            api_key=settings.resend_api_key,
            from_email=settings.from_email,
            timeout_seconds=settings.email_timeout_seconds,
        )
    return ConsoleEmailSender()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Configures logging
    - Creates the store backend (and runs migrations for PostgreSQL)
    - Creates the email sender
    - Closes connection pool and HTTP client on shutdown
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    logger.info("Starting application...")
    if not settings.code_signing_secret:
        logger.warning("CODE_SIGNING_SECRET is not set; token endpoints will return 500")

    pool: ConnectionPool | None = None
    if settings.store_backend == "postgres":
        logger.info("Connecting to database...")
        # Create connection pool with explicit sizing
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            timeout=settings.pool_timeout_seconds,
        )

        logger.info("Running database migrations...")
        run_migrations(pool)
        stores: BlobStores = PostgresBlobStores(pool)
    else:
        logger.info("Using in-memory store (data is lost on restart)")
        stores = InMemoryBlobStores()

    email_sender = build_email_sender(settings)
    configure_state(app, settings, stores, email_sender)

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if isinstance(email_sender, ResendEmailSender):
        email_sender.close()
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="verigate",
    description="Email verification and credential bootstrap API - "
    "Two-channel proof of email control, scrypt credentials and signed sessions",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

register_exception_handlers(app)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with store validation.

    Returns 200 OK if application and store backend are healthy.
    A store failure is reported as 503 by the exception handlers.
    """
    request.app.state.stores.ping()
    return {"status": "healthy"}
