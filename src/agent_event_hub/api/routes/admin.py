from typing import Any, Dict

from fastapi import APIRouter

from ...services.hub import HubStats
from ..deps import Hub

router = APIRouter(tags=["Admin"])


@router.get("/stats", response_model=HubStats)
async def get_stats(hub: Hub) -> HubStats:
    """Hub statistics."""
    return hub.get_stats()


@router.get("/connections")
async def list_connections(hub: Hub) -> Dict[str, Any]:
    """
    List all live socket connections.

    Note: This endpoint should be protected in production.
    """
    connections = hub.socket_transport.connections()
    return {
        "count": len(connections),
        "connections": [
            {"connectionId": conn_id, "agentId": agent_id}
            for conn_id, agent_id in connections
        ],
    }
