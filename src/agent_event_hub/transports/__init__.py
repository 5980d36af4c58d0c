"""
Delivery transports.

Each push transport delivers one event to one subscription target and
raises ``DeliveryError`` on failure so the dispatcher can fall back to the
agent's polling queue.
"""
from .base import DeliveryTransport
from .socket import SocketHandle, SocketTransport, StreamHandle, WebSocketHandle
from .webhook import DeliveryState, WebhookDelivery, WebhookTransport

__all__ = [
    "DeliveryTransport",
    "SocketHandle",
    "SocketTransport",
    "StreamHandle",
    "WebSocketHandle",
    "DeliveryState",
    "WebhookDelivery",
    "WebhookTransport",
]
