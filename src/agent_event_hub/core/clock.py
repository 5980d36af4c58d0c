"""
Clock abstraction used for timestamps, backoff waits and expiry.

Production code uses ``SystemClock``. Tests inject a fake clock so retry and
TTL behaviour can be checked without real sleeps.
"""
import asyncio
import time
from typing import Protocol


class Clock(Protocol):
    """Source of time for the hub."""

    def now_ms(self) -> int:
        """Current time in milliseconds since the epoch."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task for ``seconds``."""
        ...


class SystemClock:
    """Wall-clock time backed by ``time.time`` and ``asyncio.sleep``."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
