import logging
from typing import List

from fastapi import APIRouter, HTTPException, status

from ...core.errors import InvalidArgumentError
from ...models.schemas import SubscribeRequest, SubscribeResponse, UnsubscribeResponse
from ...models.subscriptions import Subscription
from ..deps import Hub

router = APIRouter(tags=["Subscriptions"])
logger = logging.getLogger(__name__)


@router.post("/subscriptions", response_model=SubscribeResponse)
async def subscribe(request: SubscribeRequest, hub: Hub) -> SubscribeResponse:
    """
    Subscribe an agent to event types.

    Give ``webhook`` for HTTP push, ``socket`` (a connection id from the
    WebSocket or stream endpoint) for live push, or neither to poll.
    """
    try:
        subscription_id = hub.subscribe(
            agent_id=request.agent_id,
            event_types=request.event_types,
            filters=request.filters,
            webhook=request.webhook,
            socket=request.socket,
        )
    except InvalidArgumentError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    subscription = hub.get_subscription_status(subscription_id)
    return SubscribeResponse(
        subscription_id=subscription_id,
        agent_id=request.agent_id,
        event_types=subscription.event_types,
    )


@router.get("/subscriptions/{subscription_id}", response_model=Subscription)
async def get_subscription(subscription_id: str, hub: Hub) -> Subscription:
    """Delivery status of a subscription."""
    subscription = hub.get_subscription_status(subscription_id)
    if subscription is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    return subscription


@router.delete("/subscriptions/{subscription_id}", response_model=UnsubscribeResponse)
async def unsubscribe(subscription_id: str, hub: Hub) -> UnsubscribeResponse:
    """Revoke a subscription."""
    if not await hub.unsubscribe(subscription_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription not found")
    return UnsubscribeResponse(subscription_id=subscription_id)


@router.get("/agents/{agent_id}/subscriptions", response_model=List[Subscription])
async def list_agent_subscriptions(agent_id: str, hub: Hub) -> List[Subscription]:
    """Active subscriptions of an agent."""
    return hub.list_agent_subscriptions(agent_id)
