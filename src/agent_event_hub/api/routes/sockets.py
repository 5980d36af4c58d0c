import asyncio
import json
import logging
from typing import AsyncGenerator, Dict

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect
from sse_starlette.sse import EventSourceResponse

from ...transports.socket import StreamHandle, WebSocketHandle
from ..deps import Hub

router = APIRouter(tags=["Sockets"])
logger = logging.getLogger(__name__)


@router.websocket("/agents/{agent_id}/ws")
async def agent_websocket(websocket: WebSocket, agent_id: str, hub: Hub) -> None:
    """
    Live push over a WebSocket.

    Queued events for the agent are flushed first, then a
    ``{"type": "connected", "connectionId": ...}`` frame is sent. Use the
    connection id as ``socket.connectionId`` when subscribing. Events arrive
    as JSON text frames. Text frames sent by the client are answered with
    ``pong``.
    """
    await websocket.accept()
    connection_id = await hub.connect_socket(agent_id, WebSocketHandle(websocket))

    try:
        await websocket.send_text(json.dumps({
            "type": "connected",
            "connectionId": connection_id,
            "agentId": agent_id,
        }))
        while True:
            await websocket.receive_text()
            await websocket.send_text(json.dumps({"type": "pong"}))
    except WebSocketDisconnect:
        logger.info(f"WebSocket {connection_id} of agent {agent_id} disconnected")
    finally:
        hub.disconnect_socket(connection_id)


@router.get("/agents/{agent_id}/stream")
async def agent_stream(request: Request, agent_id: str, hub: Hub) -> EventSourceResponse:
    """
    Live push over Server-Sent Events.

    Emits ``connected`` (with the connection id), ``message`` for each event,
    ``heartbeat`` while idle and ``disconnected`` on close.
    """

    async def event_generator() -> AsyncGenerator[Dict[str, str], None]:
        handle = StreamHandle(max_size=hub.config.stream_max_queue_size)
        connection_id = await hub.connect_socket(agent_id, handle)

        try:
            yield {
                "event": "connected",
                "data": json.dumps({"connectionId": connection_id, "agentId": agent_id}),
            }

            heartbeat_interval = hub.config.stream_heartbeat_interval

            while handle.is_open:
                if await request.is_disconnected():
                    logger.info(f"Client {connection_id} disconnected")
                    break

                try:
                    message = await asyncio.wait_for(handle.get(), timeout=heartbeat_interval)
                except asyncio.TimeoutError:
                    # Keep the connection alive
                    yield {
                        "event": "heartbeat",
                        "data": json.dumps({"connectionId": connection_id}),
                    }
                    continue

                if message is None:
                    break
                yield {"event": "message", "data": message}

        finally:
            logger.info(f"Cleaning up stream {connection_id}")
            hub.disconnect_socket(connection_id)
            await handle.close()

        yield {
            "event": "disconnected",
            "data": json.dumps({"connectionId": connection_id}),
        }

    return EventSourceResponse(event_generator())
