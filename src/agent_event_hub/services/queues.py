"""
Bounded in-memory storage for events.

- ``AgentQueues``: per-agent polling queues (the fallback transport).
- ``EventHistory``: per-type ring buffers of recently published events.

Both drop the oldest entry when full so publishers never stall.
"""
import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional

from ..models.events import Event

logger = logging.getLogger(__name__)


def _is_expired(event: Event, now_ms: int, default_ttl_ms: int) -> bool:
    ttl = event.ttl_ms or default_ttl_ms
    return now_ms - event.timestamp >= ttl


class AgentQueues:
    """Per-agent FIFO queues with drop-oldest backpressure."""

    def __init__(self, max_size: int = 1000):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._queues: Dict[str, Deque[Event]] = {}

    def ensure(self, agent_id: str) -> None:
        """Create an empty queue for the agent if it has none."""
        if agent_id not in self._queues:
            self._queues[agent_id] = deque(maxlen=self.max_size)

    def enqueue(self, agent_id: str, event: Event) -> None:
        """Append an event, evicting the oldest entry when the queue is full."""
        self.ensure(agent_id)
        queue = self._queues[agent_id]
        if len(queue) == self.max_size:
            logger.debug(f"Queue for agent {agent_id} full, dropping oldest event {queue[0].id}")
        queue.append(event)

    def get_events(
        self,
        agent_id: str,
        since: Optional[int] = None,
        limit: Optional[int] = None,
        event_types: Optional[Iterable[str]] = None,
    ) -> List[Event]:
        """
        Read queued events for an agent without removing them.

        Args:
            agent_id: Agent whose queue is read
            since: Only events with a timestamp strictly greater than this
            limit: Keep only the most recent ``limit`` events after filtering
            event_types: Allow-list of event types

        Returns:
            Events in ascending timestamp order
        """
        events = list(self._queues.get(agent_id, ()))

        if since is not None:
            events = [e for e in events if e.timestamp > since]

        if event_types is not None:
            allowed = set(event_types)
            events = [e for e in events if e.type in allowed]

        events.sort(key=lambda e: e.timestamp)

        if limit is not None and limit > 0:
            events = events[-limit:]

        return events

    def drain(self, agent_id: str) -> List[Event]:
        """Remove and return every queued event for the agent, in enqueue order."""
        queue = self._queues.get(agent_id)
        if not queue:
            return []
        events = list(queue)
        queue.clear()
        return events

    def requeue(self, agent_id: str, events: List[Event]) -> None:
        """Put undelivered events back in front of anything queued since."""
        if not events:
            return
        self.ensure(agent_id)
        queue = self._queues[agent_id]
        pending = list(queue)
        queue.clear()
        for event in events + pending:
            queue.append(event)

    def expire(self, agent_id: str, now_ms: int, default_ttl_ms: int) -> int:
        """Drop queued events past their TTL. Returns the number removed."""
        queue = self._queues.get(agent_id)
        if not queue:
            return 0
        kept = [e for e in queue if not _is_expired(e, now_ms, default_ttl_ms)]
        removed = len(queue) - len(kept)
        if removed:
            queue.clear()
            queue.extend(kept)
        return removed

    def discard(self, agent_id: str) -> bool:
        """Forget an agent's queue if it is empty. Returns True when removed."""
        queue = self._queues.get(agent_id)
        if queue is None or queue:
            return False
        del self._queues[agent_id]
        return True

    def agent_ids(self) -> List[str]:
        return list(self._queues.keys())

    def size(self, agent_id: str) -> int:
        return len(self._queues.get(agent_id, ()))

    def total(self) -> int:
        return sum(len(q) for q in self._queues.values())


class EventHistory:
    """Per-type ring buffers of the most recently published events."""

    def __init__(self, max_size: int = 100):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self._history: Dict[str, Deque[Event]] = {}

    def record(self, event: Event) -> None:
        if event.type not in self._history:
            self._history[event.type] = deque(maxlen=self.max_size)
        self._history[event.type].append(event)

    def get(self, event_type: str, limit: int = 50) -> List[Event]:
        """Return the most recent ``limit`` events of a type, oldest first."""
        history = list(self._history.get(event_type, ()))
        if limit <= 0:
            return []
        return history[-limit:]

    def expire(self, event_type: str, now_ms: int, ttl_ms: int) -> int:
        """
        Drop history entries older than ``ttl_ms``. Returns the number removed.

        A type left with no entries is forgotten.
        """
        history = self._history.get(event_type)
        if history is None:
            return 0
        kept = [e for e in history if now_ms - e.timestamp < ttl_ms]
        removed = len(history) - len(kept)
        if not kept:
            del self._history[event_type]
        elif removed:
            history.clear()
            history.extend(kept)
        return removed

    def event_types(self) -> List[str]:
        return list(self._history.keys())
