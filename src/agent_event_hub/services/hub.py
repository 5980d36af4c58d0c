"""
Agent event hub.

``AgentEventHub`` is the single owner of subscriptions, queues, history and
the socket handle table. Construct one explicitly, call ``start()`` to begin
the janitor and ``shutdown()`` to close every socket and stop it.

Usage:
    hub = AgentEventHub()
    await hub.start()

    sub_id = hub.subscribe("agent-1", ["mission.completed"], filters={"missionId": "m1"})
    await hub.publish("mission.completed", "missions", {"missionId": "m1", "reward": 25})
    events = hub.get_events("agent-1")

    await hub.shutdown()
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx
from pydantic import Field

from ..core.background_tasks import Janitor, SweepReport
from ..core.clock import Clock, SystemClock
from ..core.config import Settings, settings as default_settings
from ..core.errors import InvalidArgumentError
from ..models.base import BaseDTO
from ..models.events import Event, EventDraft, EventMetadata
from ..models.subscriptions import (
    DeliveryTarget,
    PollTarget,
    RetryPolicy,
    SocketTarget,
    Subscription,
    WebhookTarget,
)
from ..transports.socket import SocketHandle, SocketTransport
from ..transports.webhook import WebhookTransport
from .dispatcher import Dispatcher
from .queues import AgentQueues, EventHistory
from .registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class HubStats(BaseDTO):
    """Operational snapshot of the hub."""
    active_subscriptions: int = Field(..., description="Subscriptions currently registered")
    queued_events: int = Field(..., description="Events waiting in polling queues")
    socket_connections: int = Field(..., description="Registered live connections")
    known_event_types: List[str] = Field(default_factory=list, description="Types seen in history")


class AgentEventHub:
    """
    Pub/sub hub delivering typed events to agents by webhook, socket or polling.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or default_settings
        self.clock = clock or SystemClock()

        self.socket_transport = SocketTransport()
        self.webhook_transport = WebhookTransport(
            http_client=http_client,
            clock=self.clock,
            timeout_seconds=self.config.webhook_timeout_seconds,
        )
        self.registry = SubscriptionRegistry(
            clock=self.clock,
            socket_transport=self.socket_transport,
            strict_event_types=self.config.strict_event_types,
        )
        self.queues = AgentQueues(max_size=self.config.queue_max_size)
        self.history = EventHistory(max_size=self.config.history_max_size)
        self.dispatcher = Dispatcher(
            registry=self.registry,
            queues=self.queues,
            history=self.history,
            webhook_transport=self.webhook_transport,
            socket_transport=self.socket_transport,
            clock=self.clock,
        )
        self.janitor = Janitor(
            registry=self.registry,
            queues=self.queues,
            history=self.history,
            interval_seconds=self.config.cleanup_interval_seconds,
            default_ttl_ms=self.config.default_ttl_ms,
            retention_ms=self.config.subscription_retention_ms,
            clock=self.clock,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start the periodic janitor."""
        await self.janitor.start()
        logger.info(f"{self.config.service_name} started")

    async def shutdown(self) -> None:
        """Stop the janitor and close every socket and the webhook client."""
        logger.info(f"Shutting down {self.config.service_name}")
        await self.janitor.stop()
        await self.socket_transport.close()
        await self.webhook_transport.close()
        logger.info(f"{self.config.service_name} shutdown complete")

    async def __aenter__(self) -> "AgentEventHub":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()

    # =========================================================================
    # Producers
    # =========================================================================

    async def publish(
        self,
        event_type: str,
        source: str,
        data: Optional[Dict[str, Any]] = None,
        metadata: Optional[Union[EventMetadata, Dict[str, Any]]] = None,
    ) -> Event:
        """Publish an event to every matching subscriber. Never raises on delivery failure."""
        if isinstance(metadata, dict):
            metadata = EventMetadata.model_validate(metadata)
        draft = EventDraft(type=event_type, source=source, data=data or {}, metadata=metadata)
        return await self.dispatcher.publish(draft)

    async def publish_event(self, draft: EventDraft) -> Event:
        return await self.dispatcher.publish(draft)

    async def publish_batch(self, drafts: Iterable[EventDraft]) -> List[Event]:
        return await self.dispatcher.publish_batch(list(drafts))

    # =========================================================================
    # Consumers
    # =========================================================================

    def subscribe(
        self,
        agent_id: str,
        event_types: Iterable[str],
        filters: Optional[Dict[str, Any]] = None,
        webhook: Optional[WebhookTarget] = None,
        socket: Optional[SocketTarget] = None,
    ) -> str:
        """
        Subscribe an agent to event types.

        At most one of ``webhook`` and ``socket`` may be given; with neither
        the subscription is poll-only.

        Raises:
            InvalidArgumentError: On empty event types or both transports set
        """
        if webhook is not None and socket is not None:
            raise InvalidArgumentError("Specify at most one of webhook or socket")

        target: DeliveryTarget
        if webhook is not None:
            target = self._with_default_retry_policy(webhook)
        elif socket is not None:
            target = socket
        else:
            target = PollTarget()

        subscription_id = self.registry.subscribe(agent_id, event_types, filters, target)
        self.queues.ensure(agent_id)
        return subscription_id

    async def unsubscribe(self, subscription_id: str) -> bool:
        return await self.registry.unsubscribe(subscription_id)

    def get_events(
        self,
        agent_id: str,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        event_types: Optional[Iterable[str]] = None,
    ) -> List[Event]:
        """Poll queued events for an agent. Does not remove them."""
        return self.queues.get_events(agent_id, since=since, limit=limit, event_types=event_types)

    def get_subscription_status(self, subscription_id: str) -> Optional[Subscription]:
        return self.registry.get(subscription_id)

    def list_agent_subscriptions(self, agent_id: str) -> List[Subscription]:
        return self.registry.list_by_agent(agent_id)

    async def connect_socket(self, agent_id: str, handle: SocketHandle) -> str:
        """
        Register a live connection for an agent.

        The agent's queued events are flushed over the new connection in
        enqueue order and the queue is cleared. Socket subscriptions of the
        agent whose old connection is gone now point at this one.

        Returns:
            The new connection id
        """
        connection_id = self.socket_transport.register(agent_id, handle, self.clock.now_ms())
        self.registry.rebind_sockets(agent_id, connection_id, self.socket_transport.is_open)

        pending = self.queues.drain(agent_id)
        if pending:
            unsent = await self.socket_transport.flush(connection_id, pending)
            # Keep what could not be sent for the next poll or reconnect
            self.queues.requeue(agent_id, unsent)
            logger.info(
                f"Flushed {len(pending) - len(unsent)} queued event(s) to agent {agent_id}"
            )
        return connection_id

    def disconnect_socket(self, connection_id: str) -> bool:
        """Forget a connection whose client went away. Later events fall back to polling."""
        return self.socket_transport.disconnect(connection_id)

    # =========================================================================
    # Operational reads
    # =========================================================================

    def get_history(self, event_type: str, limit: int = 50) -> List[Event]:
        return self.history.get(event_type, limit)

    def get_stats(self) -> HubStats:
        return HubStats(
            active_subscriptions=len(self.registry.active()),
            queued_events=self.queues.total(),
            socket_connections=len(self.socket_transport),
            known_event_types=self.history.event_types(),
        )

    async def sweep(self) -> SweepReport:
        """Run one janitor sweep now."""
        return await self.janitor.sweep()

    def _with_default_retry_policy(self, webhook: WebhookTarget) -> WebhookTarget:
        if "retry_policy" in webhook.model_fields_set:
            return webhook
        return webhook.model_copy(update={
            "retry_policy": RetryPolicy(
                max_retries=self.config.webhook_max_retries,
                backoff_ms=self.config.webhook_backoff_ms,
            )
        })
