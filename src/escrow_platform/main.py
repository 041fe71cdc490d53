"""FastAPI application entry point for the Escrow Platform.

Lifecycle:
    1. Startup: Initialize logging, open the database, create tables (non-production).
    2. Running: Serve the REST API at /api/v1/* on a single Uvicorn process.
    3. Shutdown: Dispose of the database engine.

Run with:
    uv run uvicorn escrow_platform.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from escrow_platform.api.middleware import setup_middleware
from escrow_platform.api.routes import deals, disputes, health, users
from escrow_platform.config import Settings, get_settings
from escrow_platform.infrastructure.database.engine import Database
from escrow_platform.logging_config import get_logger, setup_logging_from_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    database: Database = app.state.database

    setup_logging_from_settings(settings)
    logger = get_logger(__name__)
    logger.info("app.starting", env=settings.app_env, sqlite=settings.is_sqlite)

    # Production schemas are managed out of band.
    await database.open(create_tables=settings.app_env != "production")
    if not settings.admin_api_token:
        logger.warning("app.admin_token_unset", detail="dispute resolution is disabled")

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    try:
        yield
    finally:
        await database.close()
        logger.info("app.stopped")


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Build the app. Tests pass their own settings and an in-memory database."""
    settings = settings or get_settings()
    database = database or Database.from_settings(settings)

    app = FastAPI(
        title="Escrow Platform",
        description=(
            "Two-party escrow deals: invite, fund, deliver, release, "
            "with administrator-settled disputes."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.settings = settings
    app.state.database = database

    setup_middleware(app, settings)
    for router in (
        health.router,
        users.router,
        deals.router,
        disputes.router,
        disputes.admin_router,
    ):
        app.include_router(router)

    return app


app = create_app()
