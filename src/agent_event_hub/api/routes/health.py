from typing import Dict

from fastapi import APIRouter

from ...models.schemas import HealthResponse
from ..deps import Hub

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(hub: Hub) -> HealthResponse:
    """
    Health check endpoint.

    Returns service status, janitor state and connection counts.
    """
    stats = hub.get_stats()
    return HealthResponse(
        status="healthy" if hub.janitor.is_running else "degraded",
        janitor_running=hub.janitor.is_running,
        active_subscriptions=stats.active_subscriptions,
        socket_connections=stats.socket_connections,
    )


@router.get("/", tags=["Info"])
async def root(hub: Hub) -> Dict[str, str]:
    """Root endpoint with service info."""
    return {
        "service": hub.config.service_name,
        "version": "0.1.0",
        "docs": "/docs",
    }
