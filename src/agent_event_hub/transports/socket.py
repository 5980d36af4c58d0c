"""
Socket transport: push events over live connections.

Connections are registered as handles implementing ``SocketHandle``. Two
handles ship with the hub: ``WebSocketHandle`` for Starlette WebSockets and
``StreamHandle`` for Server-Sent Events streams.
"""
import asyncio
import logging
from typing import Dict, List, Optional, Protocol, Tuple

from starlette.websockets import WebSocket, WebSocketState

from ..core.errors import ConnectionUnavailableError
from ..models.base import generate_id
from ..models.events import Event
from ..models.subscriptions import SocketTarget
from .base import DeliveryTransport

logger = logging.getLogger(__name__)


class SocketHandle(Protocol):
    """A live connection to one agent."""

    @property
    def is_open(self) -> bool:
        ...

    async def send(self, message: str) -> None:
        ...

    async def close(self) -> None:
        ...


class WebSocketHandle:
    """Wraps an accepted Starlette WebSocket."""

    def __init__(self, websocket: WebSocket):
        self._websocket = websocket
        self._closed = False

    @property
    def is_open(self) -> bool:
        return (
            not self._closed
            and self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    async def send(self, message: str) -> None:
        await self._websocket.send_text(message)

    async def close(self) -> None:
        if self.is_open:
            self._closed = True
            await self._websocket.close()
        self._closed = True


class StreamHandle:
    """
    Buffers messages for an SSE response to drain.

    Never blocks the sender: when the buffer is full the oldest message is
    dropped.
    """

    def __init__(self, max_size: int = 1000):
        self.queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=max_size)
        self._closed = False

    @property
    def is_open(self) -> bool:
        return not self._closed

    async def send(self, message: str) -> None:
        if self._closed:
            raise ConnectionError("Stream closed")
        self._put(message)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wake the reader
        self._put(None)

    async def get(self) -> Optional[str]:
        """Next message, or None once the stream is closed."""
        return await self.queue.get()

    def _put(self, item: Optional[str]) -> None:
        if self.queue.full():
            try:
                self.queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
        self.queue.put_nowait(item)


class SocketTransport(DeliveryTransport):
    """
    Holds the table of live connections and pushes events over them.

    The table maps connection id to (agent id, handle). Subscriptions refer to
    connections by id only.
    """

    def __init__(self):
        self._connections: Dict[str, Tuple[str, SocketHandle]] = {}

    def register(self, agent_id: str, handle: SocketHandle, now_ms: int) -> str:
        """Add a handle to the table and return its connection id."""
        connection_id = generate_id("conn", now_ms)
        self._connections[connection_id] = (agent_id, handle)
        logger.info(f"Socket connected for agent {agent_id}: {connection_id}")
        return connection_id

    def get_handle(self, connection_id: str) -> Optional[SocketHandle]:
        entry = self._connections.get(connection_id)
        return entry[1] if entry else None

    def is_open(self, connection_id: str) -> bool:
        handle = self.get_handle(connection_id)
        return handle is not None and handle.is_open

    async def deliver(self, event: Event, target: SocketTarget) -> None:
        """
        Push an event over the target connection.

        Raises:
            ConnectionUnavailableError: If the connection is unknown, closed,
                or the send fails
        """
        await self.send(target.connection_id, event)

    async def send(self, connection_id: str, event: Event) -> None:
        handle = self.get_handle(connection_id)
        if handle is None or not handle.is_open:
            raise ConnectionUnavailableError(f"Socket {connection_id} not available")
        try:
            await handle.send(event.to_json())
        except Exception as e:
            raise ConnectionUnavailableError(f"Socket {connection_id} send failed: {e}") from e

    async def flush(self, connection_id: str, events: List[Event]) -> List[Event]:
        """
        Send events in order over a connection.

        Returns:
            The events that could not be sent (empty on success)
        """
        for index, event in enumerate(events):
            try:
                await self.send(connection_id, event)
            except ConnectionUnavailableError as e:
                logger.warning(f"Flush to {connection_id} interrupted: {e}")
                return events[index:]
        return []

    def disconnect(self, connection_id: str) -> bool:
        """Forget a connection whose client has gone away."""
        entry = self._connections.pop(connection_id, None)
        if entry is None:
            return False
        logger.info(f"Socket disconnected for agent {entry[0]}: {connection_id}")
        return True

    async def release(self, connection_id: str) -> None:
        """Close a connection and remove it from the table."""
        entry = self._connections.pop(connection_id, None)
        if entry is None:
            return
        try:
            await entry[1].close()
        except Exception as e:
            logger.warning(f"Error closing connection {connection_id}: {e}")
        logger.info(f"Released socket {connection_id} of agent {entry[0]}")

    async def close(self) -> None:
        """Close every connection."""
        for connection_id in list(self._connections.keys()):
            await self.release(connection_id)

    def connections(self) -> List[Tuple[str, str]]:
        """(connection id, agent id) pairs for every registered connection."""
        return [(conn_id, agent_id) for conn_id, (agent_id, _) in self._connections.items()]

    def __len__(self) -> int:
        return len(self._connections)
