"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import run_migrations
from src.adapters.secrets.aws import SecretsManagerStore
from src.api.dependencies import build_dynamodb_repository
from src.api.errors import error_body, status_for
from src.api.v1 import router as v1_router
from src.config.settings import configure_logging, get_settings
from src.domain.exceptions import RegistrationError

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "v1",
        "description": "Account Registration API v1 - Create accounts on the identity server",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Fails fast on missing configuration
    - Creates the storage backend (connection pool + migrations, or DynamoDB client)
    - Creates the Secrets Manager client
    - Closes the connection pool on shutdown
    """
    settings = get_settings()
    configure_logging(settings.log_level)

    logger.info("Starting application...")
    settings.require()

    pool = None
    if settings.storage_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)
    else:
        app.state.dynamodb_repository = build_dynamodb_repository(settings)

    # Store in app state for dependency injection
    app.state.pool = pool
    app.state.secret_store = SecretsManagerStore.from_region(
        settings.aws_region, settings.storage_timeout_seconds
    )

    logger.info("Application startup complete (storage backend: %s)", settings.storage_backend)

    yield

    logger.info("Shutting down application...")
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="user-management",
    description="Account Registration API - Validates requests, creates accounts on the "
    "identity server and stores a local record",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

# Include v1 API routes
app.include_router(v1_router, prefix="/v1")


@app.exception_handler(RegistrationError)
async def registration_error_handler(request: Request, exc: RegistrationError) -> JSONResponse:
    """Domain errors raised outside a route body (e.g. ConfigurationError in a dependency)."""
    logger.error("Request to %s failed: %s (%s)", request.url.path, exc.kind, exc)
    return JSONResponse(status_code=status_for(exc), content=error_body(exc))


@app.get("/health")
async def health_check(request: Request) -> dict[str, str]:
    """
    Health check endpoint with database validation.

    Returns 200 OK if the application (and database, for the Postgres
    backend) is healthy. Raises exception if the database connection fails.
    """
    pool = getattr(request.app.state, "pool", None)
    if pool is not None:
        with pool.connection() as conn:
            conn.execute("SELECT 1")

    return {"status": "healthy"}
