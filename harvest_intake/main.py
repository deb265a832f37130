"""
Harvest Intake - FastAPI Application

Main application entry point. Creates the FastAPI app, wires up routers and
the registration service, opens the database pool on startup.

Run with: uvicorn harvest_intake.main:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI

from . import __version__
from .config import Settings, configure_logging, get_settings
from .core.errors import setup_error_handlers
from .core.middleware import RequestLoggingMiddleware
from .db import close_db_pool, init_db_pool
from .routers import admin_router, health_router, registrar_router
from .services.registration import RegistrationService, build_registration_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    - Startup: open the database pool when a relational sink is configured
    - Shutdown: close it
    """
    settings: Settings = app.state.settings
    logger.info(f"🚀 Starting Harvest Intake v{__version__}")

    if settings.relational_enabled:
        await init_db_pool(settings)

    yield

    logger.info("🛑 Shutting down Harvest Intake...")
    await close_db_pool()
    logger.info("✅ Shutdown complete")


def create_app(
    settings: Settings | None = None,
    service: RegistrationService | None = None,
) -> FastAPI:
    """
    Application factory.

    Args:
        settings: Settings to use (default: get_settings())
        service: Pre-built registration service, mainly for tests; built from
            settings when omitted

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Harvest Intake",
        description="QR registration of flower harvest bunches.",
        version=__version__,
        docs_url="/docs",
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registration_service = service or build_registration_service(settings)

    app.add_middleware(RequestLoggingMiddleware)
    setup_error_handlers(app)

    app.include_router(registrar_router)
    app.include_router(admin_router)
    app.include_router(health_router)

    logger.info(
        f"Allow-list has {len(settings.authorized_ips)} addresses; "
        f"admin endpoints {'enabled' if settings.ADMIN_TOKEN else 'disabled'}"
    )
    return app


app = create_app()
