"""Hub data models."""
from .events import AgentEventType, Event, EventDraft, EventMetadata, Priority
from .subscriptions import (
    DeliveryTarget,
    PollTarget,
    RetryPolicy,
    SocketTarget,
    Subscription,
    WebhookTarget,
)

__all__ = [
    "AgentEventType",
    "Event",
    "EventDraft",
    "EventMetadata",
    "Priority",
    "DeliveryTarget",
    "PollTarget",
    "RetryPolicy",
    "SocketTarget",
    "Subscription",
    "WebhookTarget",
]
