"""
Event DTOs for the agent event hub.

An ``Event`` is immutable once published. Producers hand the hub an
``EventDraft``; the hub assigns ``id`` and ``timestamp``.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field

from .base import BaseDTO


class Priority(str, Enum):
    """Advisory priority. Does not reorder delivery."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class AgentEventType(str, Enum):
    """
    Well-known event types published by the platform.

    Subscriptions may use other type strings unless ``strict_event_types``
    is enabled.
    """
    # Voice generation events
    VOICE_GENERATION_STARTED = "voice.generation.started"
    VOICE_GENERATION_COMPLETED = "voice.generation.completed"
    VOICE_GENERATION_FAILED = "voice.generation.failed"

    # Mission events
    MISSION_CREATED = "mission.created"
    MISSION_ACCEPTED = "mission.accepted"
    MISSION_SUBMITTED = "mission.submitted"
    MISSION_COMPLETED = "mission.completed"
    MISSION_EXPIRED = "mission.expired"

    # Payment events
    PAYMENT_RECEIVED = "payment.received"
    PAYMENT_FAILED = "payment.failed"
    CREDITS_DEPOSITED = "credits.deposited"
    CREDITS_WITHDRAWN = "credits.withdrawn"

    # System events
    RATE_LIMIT_EXCEEDED = "system.rate_limit_exceeded"
    SECURITY_THREAT_DETECTED = "system.security_threat"
    SERVICE_DEGRADED = "system.service_degraded"
    SERVICE_RESTORED = "system.service_restored"

    # Agent events
    AGENT_REGISTERED = "agent.registered"
    AGENT_VERIFIED = "agent.verified"
    AGENT_BLOCKED = "agent.blocked"
    AGENT_REPUTATION_CHANGED = "agent.reputation_changed"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]


class EventMetadata(BaseDTO):
    """Optional delivery hints attached to an event."""
    model_config = ConfigDict(frozen=True)

    priority: Priority = Field(
        default=Priority.NORMAL,
        description="Advisory priority (does not reorder delivery)"
    )
    ttl: Optional[int] = Field(
        default=None,
        gt=0,
        description="Milliseconds a queued copy may live before the janitor drops it"
    )
    retryable: bool = Field(
        default=True,
        description="Whether webhook delivery may be retried"
    )
    tags: List[str] = Field(
        default_factory=list,
        description="Free-form labels (not used for filter matching)"
    )


class EventDraft(BaseDTO):
    """An event as submitted by a producer, before the hub stamps it."""
    type: str = Field(..., min_length=1, description="Event type (e.g., 'mission.completed')")
    source: str = Field(..., min_length=1, description="Originating subsystem")
    data: Dict[str, Any] = Field(default_factory=dict, description="Event payload")
    metadata: Optional[EventMetadata] = Field(default=None, description="Delivery hints")


class Event(EventDraft):
    """A published event. Immutable."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Hub-generated unique identifier")
    timestamp: int = Field(..., description="Publish time in milliseconds since the epoch")

    @property
    def ttl_ms(self) -> Optional[int]:
        return self.metadata.ttl if self.metadata else None

    @property
    def retryable(self) -> bool:
        return self.metadata.retryable if self.metadata else True

    def to_json(self) -> str:
        """Serialize with camelCase keys, as sent over webhooks and sockets."""
        return self.model_dump_json(by_alias=True)
