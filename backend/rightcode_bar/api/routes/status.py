from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ...dependencies import get_bridge_service
from ...models.payloads import RefreshAccepted, StatusSummary
from ...services.bridge import BridgeService, StatusBoard

router = APIRouter(prefix='/status', tags=['status'])


@router.get('', response_model=StatusSummary)
async def current_status(bridge: BridgeService = Depends(get_bridge_service)) -> StatusSummary:
    sink = bridge.status_sink
    if not isinstance(sink, StatusBoard):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Status surface is not hosted here')
    return sink.summary


@router.post('/refresh', response_model=RefreshAccepted, status_code=status.HTTP_202_ACCEPTED)
async def refresh_status(bridge: BridgeService = Depends(get_bridge_service)) -> RefreshAccepted:
    return RefreshAccepted(started=bridge.trigger_subscriptions())
