"""
FastAPI dependency injection for the hub instance.

Usage in route handlers::

    @router.get("/things")
    async def list_things(hub: Hub) -> ...:
        ...

The hub is built by the application lifespan and stored on ``app.state``.
"""
from typing import Annotated

from fastapi import Depends, HTTPException, status
from starlette.requests import HTTPConnection

from ..services.hub import AgentEventHub


def get_hub(connection: HTTPConnection) -> AgentEventHub:
    """Return the application's hub, or 503 if it was not started."""
    hub = getattr(connection.app.state, "hub", None)
    if hub is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Event hub not initialized",
        )
    return hub


Hub = Annotated[AgentEventHub, Depends(get_hub)]
