"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, logging, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.repository.memory import (
    InMemoryCodeRepository,
    InMemoryIssuanceLog,
    InMemoryUserRepository,
)
from src.adapters.repository.postgres import (
    PostgresCodeRepository,
    PostgresIssuanceLog,
    PostgresUserRepository,
    run_migrations,
)
from src.api.dependencies import (
    Infrastructure,
    build_email_sender,
    build_sms_sender,
    purge_expired_codes,
)
from src.api.v1 import router as v1_router
from src.config.settings import Settings, get_settings
from src.domain.exceptions import RateLimited, RegistrationError

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "OTP Registration API v1 - Verify email and phone, resume registrations, log in",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates the repositories for the configured storage backend
    - Runs migrations and purges expired codes on startup
    - Closes the connection pool on shutdown
    """
    settings: Settings = app.state.settings
    pool: ConnectionPool | None = None

    logger.info("Starting application...")

    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )

        logger.info("Running database migrations...")
        run_migrations(pool)

        infrastructure = Infrastructure(
            users=PostgresUserRepository(pool),
            codes=PostgresCodeRepository(pool),
            issuances=PostgresIssuanceLog(pool),
            email_sender=build_email_sender(settings),
            sms_sender=build_sms_sender(settings),
        )
        purged = purge_expired_codes(infrastructure, settings)
        logger.info("Purged %d expired verification code(s)", purged)
    else:
        logger.info("Using in-memory storage")
        infrastructure = Infrastructure(
            users=InMemoryUserRepository(),
            codes=InMemoryCodeRepository(),
            issuances=InMemoryIssuanceLog(),
            email_sender=build_email_sender(settings),
            sms_sender=build_sms_sender(settings),
        )

    if settings.is_debug_mode:
        logger.warning("DEBUG MODE: verification codes are echoed in API responses")

    # Store adapters in app state for dependency injection
    app.state.pool = pool
    app.state.infrastructure = infrastructure

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


async def registration_error_handler(request: Request, exc: RegistrationError) -> JSONResponse:
    """Render every domain error as {"error": message} with its status code."""
    headers = None
    if isinstance(exc, RateLimited):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=headers,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application; tests pass their own Settings."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    application = FastAPI(
        title="armoredmart-identity",
        description="OTP Registration API - Email and phone verification with resumable registration",
        version="0.1.0",
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.add_exception_handler(RegistrationError, registration_error_handler)

    # Include v1 API routes
    application.include_router(v1_router, prefix="/v1")

    @application.get("/health")
    async def health_check(request: Request) -> dict[str, str]:
        """
        Health check endpoint with database validation.

        Returns 200 OK if application and database (when configured) are healthy.
        Raises exception if database connection fails.
        """
        pool = request.app.state.pool
        if pool is not None:
            with pool.connection() as conn:
                conn.execute("SELECT 1")

        return {"status": "healthy"}

    return application


app = create_app()
