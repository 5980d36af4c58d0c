"""
Subscription DTOs.

A subscription's delivery target is a closed sum type discriminated on
``kind``: webhook push, live socket push, or poll-only.
"""
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

import httpx
from pydantic import Field, field_validator

from .base import BaseDTO


class RetryPolicy(BaseDTO):
    """Webhook retry policy. Attempt ``n`` waits ``backoff_ms * 2**(n-1)``."""
    max_retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    backoff_ms: int = Field(default=1000, ge=0, description="Base backoff in milliseconds")


class WebhookTarget(BaseDTO):
    """Deliver by HTTP POST to ``url``."""
    kind: Literal["webhook"] = "webhook"
    url: str = Field(..., description="Absolute http(s) endpoint receiving the JSON event")
    headers: Dict[str, str] = Field(default_factory=dict, description="Extra request headers")
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)

    @field_validator("url")
    @classmethod
    def _absolute_http_url(cls, value: str) -> str:
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as e:
            raise ValueError(f"invalid webhook url: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError("webhook url must be an absolute http or https url")
        return value


class SocketTarget(BaseDTO):
    """Deliver over a live connection registered with ``connect_socket``."""
    kind: Literal["socket"] = "socket"
    connection_id: str = Field(..., description="Connection id returned by connect_socket")


class PollTarget(BaseDTO):
    """No push transport; events wait in the agent's polling queue."""
    kind: Literal["poll"] = "poll"


DeliveryTarget = Annotated[
    Union[WebhookTarget, SocketTarget, PollTarget],
    Field(discriminator="kind"),
]


class Subscription(BaseDTO):
    """A standing registration of an agent's interest in event types."""
    id: str
    agent_id: str
    event_types: List[str] = Field(..., min_length=1)
    filters: Dict[str, Any] = Field(default_factory=dict)
    target: DeliveryTarget = Field(default_factory=PollTarget)
    created_at: int
    last_delivery: Optional[int] = None
    delivery_count: int = 0
    failure_count: int = 0
    is_active: bool = True

    @field_validator("event_types")
    @classmethod
    def _no_blank_types(cls, value: List[str]) -> List[str]:
        if any(not t for t in value):
            raise ValueError("event types must be non-empty strings")
        return value
