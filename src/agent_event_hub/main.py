"""
Agent Event Hub - FastAPI application.

Exposes the hub over HTTP:
- REST endpoints for publishing, subscribing and polling
- WebSocket and Server-Sent Events endpoints for live push
- Operational reads (history, stats, health)
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import router
from .core.config import settings
from .services.hub import AgentEventHub

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(hub: Optional[AgentEventHub] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        hub: Hub instance to serve. A new one is built from settings when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        app.state.hub = hub or AgentEventHub(config=settings)
        await app.state.hub.start()
        logger.info(f"Agent Event Hub ready on port {settings.service_port}")

        yield

        await app.state.hub.shutdown()
        app.state.hub = None

    app = FastAPI(
        title="Agent Event Hub",
        description="Event subscription and delivery hub for AI agents",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS middleware for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    return app


app = create_app()


def run() -> None:
    """Console entry point."""
    import uvicorn
    uvicorn.run(
        "agent_event_hub.main:app",
        host="0.0.0.0",
        port=settings.service_port,
        log_level="debug" if settings.debug else "info",
    )


if __name__ == "__main__":
    run()
