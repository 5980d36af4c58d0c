"""
Webhook transport: HTTP POST with exponential backoff.

Each delivery runs through an explicit state machine::

    PENDING -> ATTEMPTING(n) -> SUCCEEDED
                             -> RETRYING(n + 1, wait_until) -> ATTEMPTING(n + 1)
                             -> FAILED

Waits go through the injected clock, so tests can drive retries without
sleeping.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

import httpx

from ..core.clock import Clock, SystemClock
from ..core.errors import DeliveryError
from ..models.events import Event
from ..models.subscriptions import WebhookTarget
from .base import DeliveryTransport

logger = logging.getLogger(__name__)


class DeliveryState(str, Enum):
    PENDING = "pending"
    ATTEMPTING = "attempting"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class WebhookDelivery:
    """Progress of one event's delivery to one webhook."""
    event_id: str
    url: str
    max_attempts: int
    backoff_ms: int
    state: DeliveryState = DeliveryState.PENDING
    attempt: int = 0
    wait_until: Optional[int] = None
    errors: List[str] = field(default_factory=list)

    def begin_attempt(self) -> None:
        if self.state not in (DeliveryState.PENDING, DeliveryState.RETRYING):
            raise RuntimeError(f"Cannot start an attempt from state {self.state.value}")
        self.state = DeliveryState.ATTEMPTING
        self.attempt += 1
        self.wait_until = None

    def succeed(self) -> None:
        self.state = DeliveryState.SUCCEEDED

    def fail_attempt(self, error: str, now_ms: int) -> Optional[int]:
        """
        Record a failed attempt.

        Returns:
            Milliseconds to wait before the next attempt, or None when no
            attempts remain and the delivery is FAILED
        """
        self.errors.append(error)
        if self.attempt >= self.max_attempts:
            self.state = DeliveryState.FAILED
            return None

        wait_ms = self.backoff_ms * (2 ** (self.attempt - 1))
        self.state = DeliveryState.RETRYING
        self.wait_until = now_ms + wait_ms
        return wait_ms


class WebhookTransport(DeliveryTransport):
    """
    POSTs events to subscriber webhooks.

    Retries non-2xx responses and network errors up to the subscription's
    ``max_retries``. Each attempt has its own timeout, separate from the
    backoff between attempts.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Optional[Clock] = None,
        timeout_seconds: float = 10.0,
    ):
        self._http_client = http_client
        self._owns_client = http_client is None
        self._clock = clock or SystemClock()
        self._timeout = httpx.Timeout(timeout_seconds)

    async def deliver(self, event: Event, target: WebhookTarget) -> WebhookDelivery:
        """
        Deliver an event to a webhook.

        Returns:
            The finished delivery record

        Raises:
            DeliveryError: After the final attempt fails
        """
        client = self._ensure_http_client()

        retries = target.retry_policy.max_retries if event.retryable else 0
        delivery = WebhookDelivery(
            event_id=event.id,
            url=target.url,
            max_attempts=1 + retries,
            backoff_ms=target.retry_policy.backoff_ms,
        )
        headers = self._build_headers(event, target)
        body = event.to_json()

        while True:
            delivery.begin_attempt()
            try:
                response = await client.post(
                    target.url,
                    content=body,
                    headers=headers,
                    timeout=self._timeout,
                )
                if response.is_success:
                    delivery.succeed()
                    logger.debug(
                        f"Delivered event {event.id} to {target.url} "
                        f"(attempt {delivery.attempt})"
                    )
                    return delivery
                error = f"HTTP {response.status_code}: {response.reason_phrase}"
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                error = f"{type(e).__name__}: {e}"

            wait_ms = delivery.fail_attempt(error, self._clock.now_ms())
            if wait_ms is None:
                logger.warning(
                    f"Webhook delivery of event {event.id} to {target.url} failed "
                    f"after {delivery.attempt} attempt(s): {error}"
                )
                raise DeliveryError(
                    f"Webhook {target.url} failed after {delivery.attempt} attempt(s): {error}"
                )

            logger.debug(
                f"Webhook attempt {delivery.attempt} for event {event.id} failed ({error}), "
                f"retrying in {wait_ms}ms"
            )
            await self._clock.sleep(wait_ms / 1000)

    async def close(self) -> None:
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    def _ensure_http_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    @staticmethod
    def _build_headers(event: Event, target: WebhookTarget) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Event-ID": event.id,
            "X-Event-Type": event.type,
            "X-Event-Source": event.source,
        }
        headers.update(target.headers)
        return headers
