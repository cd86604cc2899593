"""Main API router that includes all sub-routers."""

from __future__ import annotations

from fastapi import APIRouter

from pushzone.server.api import health, push, settings

router = APIRouter()

# Include all API routers
router.include_router(health.router)
router.include_router(push.router)
router.include_router(settings.router)
