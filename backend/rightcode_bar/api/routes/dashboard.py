from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from ...dependencies import get_bridge_service
from ...models.payloads import RefreshAccepted, UsageRefreshRequest
from ...models.usage import Granularity
from ...services.bridge import BridgeService, DashboardFeed
from ...services.quota import DAY_RANGES, HOUR_RANGES

router = APIRouter(prefix='/dashboard', tags=['dashboard'])


def _feed(bridge: BridgeService) -> DashboardFeed:
    sink = bridge.dashboard_sink
    if not isinstance(sink, DashboardFeed):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Dashboard is not hosted here')
    return sink


@router.get('/messages')
async def dashboard_messages(bridge: BridgeService = Depends(get_bridge_service)) -> dict[str, Any]:
    feed = _feed(bridge)
    return {message_type: message.model_dump(mode='json') for message_type, message in feed.messages.items()}


@router.post('/subscriptions/refresh', response_model=RefreshAccepted, status_code=status.HTTP_202_ACCEPTED)
async def refresh_subscriptions(bridge: BridgeService = Depends(get_bridge_service)) -> RefreshAccepted:
    return RefreshAccepted(started=bridge.trigger_subscriptions())


@router.post('/usage-stats/refresh', response_model=RefreshAccepted, status_code=status.HTTP_202_ACCEPTED)
async def refresh_usage_stats(
    payload: Annotated[UsageRefreshRequest, Body(description='Usage window to fetch')] = UsageRefreshRequest(),
    bridge: BridgeService = Depends(get_bridge_service),
) -> RefreshAccepted:
    if bool(payload.start_date) != bool(payload.end_date):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail='start_date and end_date must be given together',
        )
    allowed = DAY_RANGES if payload.granularity is Granularity.DAY else HOUR_RANGES
    if not payload.start_date and payload.range not in allowed:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f'range must be one of {", ".join(allowed)} for {payload.granularity.value} granularity',
        )
    return RefreshAccepted(started=bridge.trigger_usage_stats(payload))
