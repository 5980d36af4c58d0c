"""
Base interface for push transports.

All transports implement this interface so the dispatcher can route an
event to whichever target variant a subscription carries.
"""
from abc import ABC, abstractmethod
from typing import Any

from ..models.events import Event


class DeliveryTransport(ABC):
    """
    Abstract base class for delivery transports.
    """

    @abstractmethod
    async def deliver(self, event: Event, target: Any) -> Any:
        """
        Deliver a single event to a subscription target.

        Args:
            event: The published event
            target: The subscription's delivery target

        Raises:
            DeliveryError: If the event could not be delivered
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Release any resources held by the transport.
        """
        pass

    @property
    def name(self) -> str:
        """Return the transport name for logging."""
        return self.__class__.__name__
