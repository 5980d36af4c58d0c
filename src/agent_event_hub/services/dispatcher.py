"""
Event dispatcher.

On publish: stamp the event, record it in history, snapshot the matching
active subscriptions and deliver to each one concurrently. Every delivery
is isolated; a failing transport falls back to the agent's polling queue
and never affects other subscribers or the publisher.
"""
import asyncio
import copy
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Type

from ..core.clock import Clock, SystemClock
from ..models.base import generate_id
from ..models.events import Event, EventDraft
from ..models.subscriptions import PollTarget, SocketTarget, Subscription, WebhookTarget
from ..transports.socket import SocketTransport
from ..transports.webhook import WebhookTransport
from .queues import AgentQueues, EventHistory
from .registry import SubscriptionRegistry

logger = logging.getLogger(__name__)

DeliveryFn = Callable[[Event, Subscription], Awaitable[None]]


def event_matches(event: Event, subscription: Subscription) -> bool:
    """
    Check whether an event is eligible for a subscription.

    The event type must be one of the subscription's types and every filter
    key must be present in ``event.data`` with an equal value.
    """
    if event.type not in subscription.event_types:
        return False

    for key, value in subscription.filters.items():
        if key not in event.data or event.data[key] != value:
            return False

    return True


class Dispatcher:
    """Matches published events to subscriptions and routes each delivery."""

    def __init__(
        self,
        registry: SubscriptionRegistry,
        queues: AgentQueues,
        history: EventHistory,
        webhook_transport: WebhookTransport,
        socket_transport: SocketTransport,
        clock: Optional[Clock] = None,
    ):
        self.registry = registry
        self.queues = queues
        self.history = history
        self.webhook_transport = webhook_transport
        self.socket_transport = socket_transport
        self._clock = clock or SystemClock()
        self._routes: Dict[Type, DeliveryFn] = {
            WebhookTarget: self._deliver_webhook,
            SocketTarget: self._deliver_socket,
            PollTarget: self._deliver_poll,
        }

    async def publish(self, draft: EventDraft) -> Event:
        """
        Publish an event to every matching active subscription.

        Never raises on delivery failure.

        Returns:
            The stamped event
        """
        now = self._clock.now_ms()
        event = Event(
            id=generate_id("evt", now),
            timestamp=now,
            type=draft.type,
            source=draft.source,
            data=copy.deepcopy(draft.data),
            metadata=draft.metadata,
        )

        self.history.record(event)

        # Snapshot: subscriptions created after this point do not see the event
        matching = [s for s in self.registry.active() if event_matches(event, s)]

        logger.info(f"Publishing event {event.type} ({event.id}) to {len(matching)} subscribers")

        if matching:
            results = await asyncio.gather(
                *(self._deliver(event, s) for s in matching),
                return_exceptions=True,
            )
            for subscription, result in zip(matching, results):
                if isinstance(result, BaseException):
                    logger.error(
                        f"Unexpected error delivering {event.id} to {subscription.id}: {result}"
                    )

        return event

    async def publish_batch(self, drafts: List[EventDraft]) -> List[Event]:
        """Publish several events; their fan-outs may interleave."""
        results = await asyncio.gather(
            *(self.publish(d) for d in drafts),
            return_exceptions=True,
        )
        events = []
        for result in results:
            if isinstance(result, BaseException):
                logger.error(f"Error publishing batch event: {result}")
            else:
                events.append(result)
        return events

    async def _deliver(self, event: Event, subscription: Subscription) -> None:
        # One call per (subscription, event): ids are fresh per publish and
        # the snapshot holds each subscription once.
        route = self._routes[type(subscription.target)]
        try:
            await route(event, subscription)
        except Exception as e:
            self.registry.mark_failed(subscription)
            logger.error(
                f"Failed to deliver event {event.id} to {subscription.agent_id} "
                f"via {subscription.target.kind}: {e}"
            )
            # Fall back to polling
            self.queues.enqueue(subscription.agent_id, event)
        else:
            self.registry.mark_delivered(subscription, self._clock.now_ms())

    async def _deliver_webhook(self, event: Event, subscription: Subscription) -> None:
        await self.webhook_transport.deliver(event, subscription.target)

    async def _deliver_socket(self, event: Event, subscription: Subscription) -> None:
        await self.socket_transport.deliver(event, subscription.target)

    async def _deliver_poll(self, event: Event, subscription: Subscription) -> None:
        self.queues.enqueue(subscription.agent_id, event)
