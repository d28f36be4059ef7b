"""Health check endpoint."""

import time
from typing import Any

from fastapi import APIRouter, Depends

from omnichat.api.dependencies import get_services
from omnichat.core.config.settings import settings
from omnichat.core.container import ServiceContainer

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(services: ServiceContainer = Depends(get_services)) -> dict[str, Any]:
    database_ok = await services.database.health_check()
    return {
        "status": "healthy" if database_ok else "degraded",
        "timestamp": time.time(),
        "version": settings.version,
        "environment": settings.environment,
        "services": {
            "database": "operational" if database_ok else "unreachable",
            "webhooks": "configured" if services.settings.has_webhook_secrets else "not configured",
        },
    }
