"""FastAPI application entry-point for the LASZ HR API."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from hr_api import __version__
from hr_api.config import APISettings, PlatformEnv, load_api_settings
from hr_api.dependencies import dispose_engine, init_change_feed, init_engine
from hr_api.middleware.logging import CorrelationIdFilter, RequestLoggingMiddleware
from hr_api.routers import auth, billing, company, health, internal, rota, shifts

logger = logging.getLogger(__name__)


def configure_logging(settings: APISettings) -> None:
    """Switch the root logger to single-line JSON when structured logging is on."""
    if not settings.structured_logging:
        return
    from hr_api.middleware.json_formatter import JSONFormatter

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter())
    handler.addFilter(CorrelationIdFilter())
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    logger.info("Structured JSON logging enabled")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup / shutdown lifecycle.

    On startup:
    - Configure logging.
    - Initialise the async database engine.
    - Create tables in dev or local SQLite mode (production uses Alembic).
    - Create the process-wide change feed.

    On shutdown:
    - Dispose the database engine connection pool.
    """
    settings: APISettings = load_api_settings()
    configure_logging(settings)

    if settings.platform_env in (PlatformEnv.STAGING, PlatformEnv.PRODUCTION) and settings.billing_enabled:
        if not settings.stripe_webhook_secret.get_secret_value():
            raise RuntimeError(
                f"API_STRIPE_WEBHOOK_SECRET is required when billing is enabled in "
                f"{settings.platform_env.value} mode. Refusing to start."
            )

    engine = init_engine(settings)
    is_local = settings.database_url.startswith("sqlite")
    logger.info(
        "Database engine initialised (%s, %s)",
        settings.database_url[:40] + "...",
        "local" if is_local else "postgres",
    )

    # Auto-create tables in dev or local SQLite mode (idempotent).
    if settings.platform_env == PlatformEnv.DEV or is_local:
        from hr_core.state.tables import Base

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ensured (%s)", "local SQLite" if is_local else "dev auto-migration")

    init_change_feed()
    logger.info("Change feed initialised")

    yield

    await dispose_engine()
    logger.info("Application shutdown complete")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Construct and configure the FastAPI application."""
    settings = load_api_settings()

    app = FastAPI(
        title="LASZ HR API",
        description="Company billing, admin sign-in and the weekly shift rota.",
        version=__version__,
        lifespan=lifespan,
    )

    # -- Middleware (outermost first) ----------------------------------------

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Correlation-ID", "Accept"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # -- Routers -------------------------------------------------------------

    app.include_router(health.router, prefix="/api/v1")
    app.include_router(auth.router, prefix="/api/v1")
    app.include_router(billing.router, prefix="/api/v1")
    app.include_router(internal.router, prefix="/api/v1")
    app.include_router(company.router, prefix="/api/v1")
    app.include_router(shifts.router, prefix="/api/v1")
    app.include_router(rota.router, prefix="/api/v1")

    app.include_router(health.readiness_router)

    # -- Exception handlers --------------------------------------------------

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        # Log the full error; return a safe message to the client.
        logger.warning("ValueError on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=400, content={"error": "Invalid request"})

    @app.exception_handler(PermissionError)
    async def permission_error_handler(request: Request, exc: PermissionError) -> JSONResponse:
        logger.warning("PermissionError on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=403, content={"error": "Permission denied"})

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Database error: %s", exc, exc_info=True)
        return JSONResponse(status_code=500, content={"error": "Internal database error"})

    return app


# Module-level application instance used by ``uvicorn hr_api.main:app``.
app = create_app()
