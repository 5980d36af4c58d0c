"""
Exception types raised by the event hub.

Unknown subscription ids are reported as ``None`` / ``False`` rather than
raised. Delivery errors never reach publishers; the dispatcher catches them
and falls back to the agent's polling queue.
"""


class HubError(Exception):
    """Base exception for event hub errors."""
    pass


class InvalidArgumentError(HubError, ValueError):
    """Raised when a request is rejected before any state is mutated."""
    pass


class DeliveryError(HubError):
    """Raised when a transport could not deliver an event."""
    pass


class ConnectionUnavailableError(DeliveryError):
    """Raised when a socket connection is missing or no longer open."""
    pass
