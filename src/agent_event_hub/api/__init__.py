"""
HTTP, WebSocket and SSE routes for the event hub.
"""
from fastapi import APIRouter

from .routes import admin, events, health, sockets, subscriptions

router = APIRouter()
router.include_router(health.router)
router.include_router(events.router, prefix="/v1/events")
router.include_router(subscriptions.router, prefix="/v1")
router.include_router(sockets.router, prefix="/v1")
router.include_router(admin.router, prefix="/v1/admin")

__all__ = ["router"]
