import logging
from typing import Optional

from fastapi import APIRouter, Query

from ...models.schemas import (
    EventsResponse,
    HistoryResponse,
    PublishBatchRequest,
    PublishBatchResponse,
    PublishRequest,
    PublishResponse,
)
from ..deps import Hub

router = APIRouter(tags=["Events"])
logger = logging.getLogger(__name__)


def _split(value: Optional[str]) -> Optional[list]:
    if value is None:
        return None
    return [v.strip() for v in value.split(",") if v.strip()]


@router.post("/publish", response_model=PublishResponse)
async def publish_event(request: PublishRequest, hub: Hub) -> PublishResponse:
    """
    Publish an event to every matching subscription.

    Delivery is best effort; failures fall back to the subscribers' polling
    queues and are never reported here.
    """
    event = await hub.publish_event(request.event)
    return PublishResponse(
        success=True,
        event_id=event.id,
        timestamp=event.timestamp,
        message=f"Event {event.type} published",
    )


@router.post("/publish/batch", response_model=PublishBatchResponse)
async def publish_batch(request: PublishBatchRequest, hub: Hub) -> PublishBatchResponse:
    """Publish several events at once."""
    events = await hub.publish_batch(request.events)
    return PublishBatchResponse(
        success=True,
        event_ids=[e.id for e in events],
        count=len(events),
    )


@router.get("", response_model=EventsResponse)
async def get_events(
    hub: Hub,
    agent_id: str = Query(..., alias="agentId", min_length=1, description="Polling agent"),
    since: Optional[int] = Query(None, description="Only events newer than this timestamp (ms)"),
    limit: Optional[int] = Query(None, ge=1, description="Maximum number of events"),
    event_types: Optional[str] = Query(
        None,
        alias="eventTypes",
        description="Comma-separated allow-list of event types",
    ),
) -> EventsResponse:
    """
    Poll an agent's queued events.

    Polling does not remove events; pass the largest timestamp seen as
    ``since`` to avoid duplicates.
    """
    events = hub.get_events(agent_id, since=since, limit=limit, event_types=_split(event_types))
    return EventsResponse(
        events=events,
        count=len(events),
        agent_id=agent_id,
        timestamp=hub.clock.now_ms(),
    )


@router.get("/history/{event_type}", response_model=HistoryResponse)
async def get_history(
    event_type: str,
    hub: Hub,
    limit: int = Query(50, ge=1, description="Maximum number of events"),
) -> HistoryResponse:
    """Recent events of one type, oldest first."""
    events = hub.get_history(event_type, limit)
    return HistoryResponse(event_type=event_type, events=events, count=len(events))
