"""
Pytest configuration for Agent Event Hub tests.
"""
import asyncio
import os
from typing import List, Optional

import httpx
import pytest

# Set test environment variables
os.environ["EVENT_HUB_DEBUG"] = "true"

from agent_event_hub.core.config import Settings
from agent_event_hub.services.hub import AgentEventHub


class FakeClock:
    """Manually driven clock. ``sleep`` advances time instead of waiting."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self.now = start_ms
        self.sleeps: List[float] = []

    def now_ms(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += int(seconds * 1000)
        await asyncio.sleep(0)


class FakeSocket:
    """In-memory socket handle recording sent messages."""

    def __init__(self, open_: bool = True, fail_after: Optional[int] = None):
        self.sent: List[str] = []
        self.open = open_
        self.closed = False
        self._fail_after = fail_after

    @property
    def is_open(self) -> bool:
        return self.open and not self.closed

    async def send(self, message: str) -> None:
        if self._fail_after is not None and len(self.sent) >= self._fail_after:
            self.open = False
            raise ConnectionError("peer went away")
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def hub_settings() -> Settings:
    return Settings(
        queue_max_size=5,
        history_max_size=10,
        cleanup_interval_seconds=60,
        default_ttl_ms=60_000,
        subscription_retention_ms=120_000,
        webhook_max_retries=2,
        webhook_backoff_ms=100,
    )


@pytest.fixture
def webhook_requests() -> List[httpx.Request]:
    return []


@pytest.fixture
def webhook_status() -> dict:
    """Mutable map of URL -> status code served by the mock webhook endpoint."""
    return {}


@pytest.fixture
def http_client(webhook_requests, webhook_status):
    def handler(request: httpx.Request) -> httpx.Response:
        webhook_requests.append(request)
        status = webhook_status.get(str(request.url), 200)
        if status == 0:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(status)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
async def hub(hub_settings, clock, http_client):
    """A hub wired to the fake clock and mock webhook endpoint (janitor not started)."""
    hub = AgentEventHub(config=hub_settings, clock=clock, http_client=http_client)
    yield hub
    await hub.shutdown()
    await http_client.aclose()
