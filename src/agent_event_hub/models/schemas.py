"""
Request/response models for the HTTP API.
"""
from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import BaseDTO
from .events import Event, EventDraft
from .subscriptions import SocketTarget, WebhookTarget


class PublishRequest(BaseDTO):
    """Request to publish an event."""
    event: EventDraft = Field(..., description="Event to publish")


class PublishResponse(BaseDTO):
    """Response after publishing an event."""
    success: bool = Field(..., description="Whether the hub accepted the event")
    event_id: str = Field(..., description="Hub-assigned event ID")
    timestamp: int = Field(..., description="Hub-assigned publish time (ms)")
    message: str = Field(default="", description="Status message")


class PublishBatchRequest(BaseDTO):
    """Request to publish several events."""
    events: List[EventDraft] = Field(..., min_length=1, description="Events to publish")


class PublishBatchResponse(BaseDTO):
    """Response after publishing a batch."""
    success: bool = Field(..., description="Whether the hub accepted the batch")
    event_ids: List[str] = Field(default_factory=list, description="Hub-assigned event IDs")
    count: int = Field(..., description="Number of events published")


class SubscribeRequest(BaseDTO):
    """Request to subscribe an agent to event types."""
    agent_id: str = Field(..., min_length=1, description="Subscribing agent")
    event_types: List[str] = Field(..., description="Event types to receive")
    filters: Dict[str, Any] = Field(default_factory=dict, description="Equality filters on event data")
    webhook: Optional[WebhookTarget] = Field(default=None, description="Webhook push configuration")
    socket: Optional[SocketTarget] = Field(default=None, description="Live connection to push over")


class SubscribeResponse(BaseDTO):
    """Response after subscribing."""
    success: bool = True
    subscription_id: str
    agent_id: str
    event_types: List[str]
    message: str = "Successfully subscribed to events"


class UnsubscribeResponse(BaseDTO):
    """Response after unsubscribing."""
    success: bool = True
    subscription_id: str
    message: str = "Successfully unsubscribed"


class EventsResponse(BaseDTO):
    """Events polled from an agent's queue."""
    success: bool = True
    events: List[Event]
    count: int
    agent_id: str
    timestamp: int = Field(..., description="Server time of the poll (ms)")


class HistoryResponse(BaseDTO):
    """Recent events of one type."""
    event_type: str
    events: List[Event]
    count: int


class HealthResponse(BaseDTO):
    """Health check response."""
    status: str = Field(..., description="Service status")
    janitor_running: bool = Field(..., description="Whether the janitor is sweeping")
    active_subscriptions: int = Field(..., description="Number of active subscriptions")
    socket_connections: int = Field(..., description="Number of live connections")
