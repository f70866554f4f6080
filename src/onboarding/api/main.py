"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures exception handlers, routers and lifespan events.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from onboarding import __version__
from onboarding.adapters.notify.console import ConsoleNotificationDispatcher
from onboarding.adapters.repository.memory import (
    InMemoryAuditLog,
    InMemoryCounterRepository,
    InMemoryPrincipalRepository,
)
from onboarding.adapters.repository.postgres import (
    PostgresAuditLog,
    PostgresCounterRepository,
    PostgresPrincipalRepository,
    check_connection,
    run_migrations,
)
from onboarding.adapters.storage.cloudinary import CloudinaryFileUploader
from onboarding.api.dependencies import Services, build_services
from onboarding.api.errors import register_exception_handlers
from onboarding.api.routes import auth_router, consultants_router, users_router
from onboarding.config.settings import Settings, get_settings
from onboarding.domain.exceptions import InternalError

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {"name": "auth", "description": "Registration, login, profile, password reset and account standing"},
    {"name": "consultants", "description": "Consultant and organization onboarding and review"},
    {"name": "users", "description": "Account listing, lookup and maintenance (admin)"},
]


def _build_default_services(settings: Settings) -> tuple[Services, ConnectionPool | None]:
    dispatcher = ConsoleNotificationDispatcher()
    uploader = CloudinaryFileUploader(
        cloud_name=settings.cloudinary_cloud_name,
        api_key=settings.cloudinary_api_key,
        api_secret=settings.cloudinary_api_secret,
    )

    if settings.storage_backend == "memory":
        logger.info("Using in-memory storage")
        services = build_services(
            settings,
            repository=InMemoryPrincipalRepository(),
            counters=InMemoryCounterRepository(),
            audit_log=InMemoryAuditLog(),
            dispatcher=dispatcher,
            uploader=uploader,
        )
        return services, None

    logger.info("Connecting to database...")
    # Create connection pool with explicit sizing
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
    )
    logger.info("Running database migrations...")
    run_migrations(pool)
    services = build_services(
        settings,
        repository=PostgresPrincipalRepository(pool),
        counters=PostgresCounterRepository(pool),
        audit_log=PostgresAuditLog(pool),
        dispatcher=dispatcher,
        uploader=uploader,
    )
    return services, pool


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: configuration; defaults to the cached environment settings
        services: pre-wired domain services (tests); when omitted they are
            built at startup from ``settings.storage_backend``
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Manages application startup and shutdown:
        - Wires storage, notification and upload adapters on startup
        - Seeds the bootstrap administrator when configured
        - Drains the notification queue and closes the pool on shutdown
        """
        logger.info("Starting application...")
        pool = None
        if services is None:
            app.state.services, pool = _build_default_services(settings)
        app.state.pool = pool

        if settings.bootstrap_admin_email and settings.bootstrap_admin_password:
            app.state.services.registration.ensure_admin(
                settings.bootstrap_admin_email, settings.bootstrap_admin_password
            )

        logger.info("Application startup complete")

        yield

        # Shutdown
        logger.info("Shutting down application...")
        app.state.services.queue.shutdown()
        if pool is not None:
            pool.close()
            logger.info("Database connection pool closed")

    app = FastAPI(
        title="srcc-onboarding",
        description="Consultant and organization onboarding, verification and login",
        version=__version__,
        openapi_tags=tags_metadata,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pool = None
    if services is not None:
        app.state.services = services

    register_exception_handlers(app)
    app.include_router(auth_router)
    app.include_router(consultants_router)
    app.include_router(users_router)

    @app.get("/health")
    def health_check(request: Request) -> dict[str, str]:
        """
        Health check endpoint with storage validation.

        Returns 200 OK if application and database are healthy.
        """
        pool = request.app.state.pool
        if pool is not None and not check_connection(pool):
            raise InternalError("Database unavailable")
        return {"status": "healthy", "storage": settings.storage_backend}

    return app


app = create_app()


def main() -> None:
    """Run the API with uvicorn."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.api_host, port=settings.api_port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
