"""Health check endpoint — public, no auth required."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

from src.dependencies import AppSettings, EngineConfig

router = APIRouter(tags=["system"])
logger = logging.getLogger("periodtracker.health")


@router.get("/health")
async def health_check(settings: AppSettings, config: EngineConfig) -> dict:
    """Liveness probe. Returns 200 if the API process is up.

    Also reports which cycle engine config version is loaded.
    """
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "cycle_config_version": config.version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
