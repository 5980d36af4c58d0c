"""
Agent Event Hub - pub/sub distribution for AI agents.

Agents subscribe to typed events once and receive them by webhook, live
socket or polling, instead of each agent polling every data source.
"""
from .core.errors import (
    ConnectionUnavailableError,
    DeliveryError,
    HubError,
    InvalidArgumentError,
)
from .models.events import AgentEventType, Event, EventDraft, EventMetadata, Priority
from .models.subscriptions import (
    PollTarget,
    RetryPolicy,
    SocketTarget,
    Subscription,
    WebhookTarget,
)
from .services.hub import AgentEventHub, HubStats

__version__ = "0.1.0"

__all__ = [
    "AgentEventHub",
    "HubStats",
    "AgentEventType",
    "Event",
    "EventDraft",
    "EventMetadata",
    "Priority",
    "Subscription",
    "WebhookTarget",
    "SocketTarget",
    "PollTarget",
    "RetryPolicy",
    "HubError",
    "InvalidArgumentError",
    "DeliveryError",
    "ConnectionUnavailableError",
]
