"""
Subscription registry.

Owns every subscription record. Transports only hold a connection id back
to the socket handle table; they never own subscriptions.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, TYPE_CHECKING

from ..core.clock import Clock, SystemClock
from ..core.errors import InvalidArgumentError
from ..models.base import generate_id
from ..models.events import AgentEventType
from ..models.subscriptions import DeliveryTarget, PollTarget, SocketTarget, Subscription

if TYPE_CHECKING:
    from ..transports.socket import SocketTransport

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """
    Create, look up and revoke subscriptions.

    Records live in an id-keyed store reached only through ``get``, ``put``
    and ``remove``; each call completes without yielding to the event loop.
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        socket_transport: Optional["SocketTransport"] = None,
        strict_event_types: bool = False,
    ):
        self._clock = clock or SystemClock()
        self._socket_transport = socket_transport
        self._strict_event_types = strict_event_types
        self._subscriptions: Dict[str, Subscription] = {}

    # =========================================================================
    # Store interface
    # =========================================================================

    def get(self, subscription_id: str) -> Optional[Subscription]:
        return self._subscriptions.get(subscription_id)

    def put(self, subscription: Subscription) -> None:
        self._subscriptions[subscription.id] = subscription

    def remove(self, subscription_id: str) -> Optional[Subscription]:
        return self._subscriptions.pop(subscription_id, None)

    def ids(self) -> List[str]:
        return list(self._subscriptions.keys())

    def __len__(self) -> int:
        return len(self._subscriptions)

    # =========================================================================
    # Operations
    # =========================================================================

    def subscribe(
        self,
        agent_id: str,
        event_types: Iterable[str],
        filters: Optional[Dict[str, Any]] = None,
        target: Optional[DeliveryTarget] = None,
    ) -> str:
        """
        Register a subscription and return its id.

        Raises:
            InvalidArgumentError: If ``agent_id`` or ``event_types`` is empty,
                or an event type is unknown while strict validation is on
        """
        if not agent_id:
            raise InvalidArgumentError("agent_id is required")

        # Deduplicate while keeping the caller's order
        types = list(dict.fromkeys(event_types or []))
        if not types:
            raise InvalidArgumentError("At least one event type is required")
        if any(not isinstance(t, str) or not t for t in types):
            raise InvalidArgumentError("Event types must be non-empty strings")

        if self._strict_event_types:
            known = set(AgentEventType.values())
            invalid = [t for t in types if t not in known]
            if invalid:
                raise InvalidArgumentError(f"Invalid event types: {', '.join(invalid)}")

        now = self._clock.now_ms()
        subscription = Subscription(
            id=generate_id("sub", now),
            agent_id=agent_id,
            event_types=types,
            filters=dict(filters or {}),
            target=target or PollTarget(),
            created_at=now,
        )
        self.put(subscription)

        logger.info(
            f"Agent {agent_id} subscribed to events: {', '.join(types)} "
            f"(sub_id: {subscription.id}, transport: {subscription.target.kind})"
        )
        return subscription.id

    async def unsubscribe(self, subscription_id: str) -> bool:
        """
        Deactivate and remove a subscription.

        Returns:
            False if the id is unknown, True otherwise
        """
        subscription = self.remove(subscription_id)
        if subscription is None:
            return False

        subscription.is_active = False

        if isinstance(subscription.target, SocketTarget):
            await self._release_connection(subscription.target.connection_id)

        logger.info(f"Unsubscribed: {subscription_id}")
        return True

    def list_by_agent(self, agent_id: str) -> List[Subscription]:
        return [
            s for s in self._subscriptions.values()
            if s.agent_id == agent_id and s.is_active
        ]

    def active(self) -> List[Subscription]:
        """Snapshot of all active subscriptions."""
        return [s for s in self._subscriptions.values() if s.is_active]

    # =========================================================================
    # Delivery bookkeeping
    # =========================================================================

    def mark_delivered(self, subscription: Subscription, now_ms: int) -> None:
        if not subscription.is_active:
            return
        subscription.delivery_count += 1
        subscription.last_delivery = now_ms

    def mark_failed(self, subscription: Subscription) -> None:
        if not subscription.is_active:
            return
        subscription.failure_count += 1

    # =========================================================================
    # Socket bindings
    # =========================================================================

    def rebind_sockets(
        self,
        agent_id: str,
        connection_id: str,
        is_open: Callable[[str], bool],
    ) -> int:
        """
        Point the agent's socket subscriptions whose connection is gone at a
        new connection. Returns the number of subscriptions rebound.
        """
        rebound = 0
        for subscription in self.list_by_agent(agent_id):
            target = subscription.target
            if isinstance(target, SocketTarget) and not is_open(target.connection_id):
                subscription.target = SocketTarget(connection_id=connection_id)
                rebound += 1
        if rebound:
            logger.info(f"Rebound {rebound} subscription(s) of agent {agent_id} to {connection_id}")
        return rebound

    def references_connection(self, connection_id: str) -> bool:
        return any(
            isinstance(s.target, SocketTarget) and s.target.connection_id == connection_id
            for s in self.active()
        )

    async def _release_connection(self, connection_id: str) -> None:
        if self._socket_transport is None:
            return
        if self.references_connection(connection_id):
            # Still used by another subscription
            return
        await self._socket_transport.release(connection_id)
