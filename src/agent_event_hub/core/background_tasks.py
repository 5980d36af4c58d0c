"""
Background janitor for periodic expiry.

Each sweep walks the hub's state one record at a time, yielding to the
event loop between records so publishers and pollers are never held up
for a whole sweep.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from .clock import Clock, SystemClock

if TYPE_CHECKING:
    from ..services.queues import AgentQueues, EventHistory
    from ..services.registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """What a single sweep removed."""
    expired_events: int = 0
    evicted_subscriptions: int = 0
    expired_history: int = 0
    released_queues: int = 0


class Janitor:
    """Runs the expiry sweep on a fixed interval."""

    def __init__(
        self,
        registry: "SubscriptionRegistry",
        queues: "AgentQueues",
        history: "EventHistory",
        interval_seconds: float = 300.0,
        default_ttl_ms: int = 24 * 60 * 60 * 1000,
        retention_ms: int = 24 * 60 * 60 * 1000,
        clock: Optional[Clock] = None,
    ):
        self.registry = registry
        self.queues = queues
        self.history = history
        self.interval_seconds = interval_seconds
        self.default_ttl_ms = default_ttl_ms
        self.retention_ms = retention_ms
        self._clock = clock or SystemClock()
        self._cleanup_task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the periodic sweep."""
        if self._running:
            logger.warning("Janitor is already running")
            return

        self._running = True
        self._cleanup_task = asyncio.create_task(self._cleanup_loop())
        logger.info("Janitor started")

    async def stop(self) -> None:
        """Cancel the periodic sweep."""
        if not self._running:
            return

        self._running = False

        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        logger.info("Janitor stopped")

    async def _cleanup_loop(self) -> None:
        logger.info(
            f"Starting janitor (interval: {self.interval_seconds}s, "
            f"default TTL: {self.default_ttl_ms}ms)"
        )

        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await self.sweep()

            except asyncio.CancelledError:
                logger.info("Janitor task cancelled")
                break
            except Exception as e:
                logger.error(f"Error in janitor sweep: {e}", exc_info=True)
                # Continue running despite errors

    async def sweep(self) -> SweepReport:
        """Run one full expiry pass over queues, subscriptions and history."""
        report = SweepReport()

        for agent_id in self.queues.agent_ids():
            report.expired_events += self.queues.expire(
                agent_id, self._clock.now_ms(), self.default_ttl_ms
            )
            await asyncio.sleep(0)

        for subscription_id in self.registry.ids():
            subscription = self.registry.get(subscription_id)
            if subscription is not None and self._is_stale(subscription):
                if not subscription.is_active:
                    self.registry.remove(subscription_id)
                else:
                    await self.registry.unsubscribe(subscription_id)
                report.evicted_subscriptions += 1
            await asyncio.sleep(0)

        # Queues of agents with nothing pending and no active subscription
        for agent_id in self.queues.agent_ids():
            if not self.registry.list_by_agent(agent_id) and self.queues.discard(agent_id):
                report.released_queues += 1
            await asyncio.sleep(0)

        for event_type in self.history.event_types():
            report.expired_history += self.history.expire(
                event_type, self._clock.now_ms(), self.default_ttl_ms
            )
            await asyncio.sleep(0)

        if any((
            report.expired_events,
            report.evicted_subscriptions,
            report.expired_history,
            report.released_queues,
        )):
            logger.info(
                f"Event hub cleanup completed: {report.expired_events} queued event(s), "
                f"{report.evicted_subscriptions} subscription(s), "
                f"{report.expired_history} history entr(ies), "
                f"{report.released_queues} idle queue(s) removed"
            )
        else:
            logger.debug("Event hub cleanup completed, nothing to remove")

        return report

    def _is_stale(self, subscription) -> bool:
        if not subscription.is_active:
            return True
        last = subscription.last_delivery
        return last is not None and self._clock.now_ms() - last > self.retention_ms
