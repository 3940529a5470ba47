"""
Liveness and dependency status.
"""

from typing import Any

from fastapi import APIRouter

from src.api.dependencies import ServicesDep

router = APIRouter()

SERVICE_VERSION = "1.0.0"


@router.get("/health")
async def health_check(services: ServicesDep) -> dict[str, Any]:
    """
    Report store connectivity and which optional integrations are configured.

    Public; the service is ``degraded`` while Redis is unreachable.
    """
    store_up = await services.redis.ping()

    return {
        "status": "healthy" if store_up else "degraded",
        "services": {
            "redis": "connected" if store_up else "disconnected",
            "drafting": "configured" if services.config.anthropic_api_key else "not_configured",
            "email": type(services.email_sender).__name__,
        },
        "version": SERVICE_VERSION,
    }
