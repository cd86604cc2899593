"""FastAPI application for the push zone admin API.

This module creates and configures the FastAPI application with:
- Status query for the full push run
- Admin actions (push all files, reset, purge cache, settings)

Usage:
    uvicorn pushzone.server.app:app_factory --factory --host 127.0.0.1 --port 8000
"""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from pushzone.core.redaction import setup_logging
from pushzone.server.api.router import router as api_router
from pushzone.services import PushServices, build_services

# Configuration from environment variables with defaults
DB_PATH = Path(os.environ.get("PUSHZONE_DB_PATH", "pushzone.db"))
ROOT_PATH = Path(os.environ.get("PUSHZONE_ROOT", "."))
LOG_PATH = os.environ.get("PUSHZONE_LOG_PATH")
ADMIN_TOKEN = os.environ.get("PUSHZONE_ADMIN_TOKEN")

logger = logging.getLogger(__name__)


def create_app(
    services: PushServices,
    admin_token: str | None,
    enable_scheduler: bool = True,
) -> FastAPI:
    """Create FastAPI application around existing services.

    Args:
        services: Wired push zone services.
        admin_token: Bearer token required by admin routes.
        enable_scheduler: Start the task scheduler for the app's lifetime.

    Returns:
        Configured FastAPI application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        # Startup
        logger.info("=" * 60)
        logger.info("Push Zone Admin API Starting")
        logger.info("=" * 60)
        logger.info("  Root:      %s", services.root)
        db_path = services.database.path if services.database else "in-memory"
        logger.info("  Database:  %s", db_path)
        logger.info("  Scheduler: %s", "enabled" if enable_scheduler else "disabled")
        if not admin_token:
            logger.warning("  No admin token set, admin routes will reject every request")
        logger.info("=" * 60)

        if enable_scheduler:
            services.scheduler.start()

        yield

        # Shutdown
        if enable_scheduler:
            services.scheduler.stop()
        logger.info("Push Zone Admin API shutting down")

    application = FastAPI(
        title="Push Zone Admin API",
        description="Chunked background uploads to a CDN push zone",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.state.services = services
    application.state.admin_token = admin_token

    application.include_router(api_router)

    return application


def app_factory() -> FastAPI:
    """Factory function for uvicorn --factory mode."""
    setup_logging(log_path=Path(LOG_PATH) if LOG_PATH else None, root=ROOT_PATH.resolve())
    services = build_services(
        root=ROOT_PATH,
        db_path=DB_PATH,
        background=True,
    )
    return create_app(services, ADMIN_TOKEN)
