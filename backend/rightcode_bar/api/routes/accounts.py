from __future__ import annotations

from fastapi import APIRouter, Body, Depends, HTTPException, status

from ...dependencies import get_bridge_service
from ...errors import LoginError, LoginErrorKind
from ...models.account import AccountSummary, ActiveAccountRequest, LoginRequest
from ...services.bridge import BridgeService
from ...services.login import login_with_password

router = APIRouter(prefix='/accounts', tags=['accounts'])

_LOGIN_STATUS = {
    LoginErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    LoginErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    LoginErrorKind.REQUEST_FAILED: status.HTTP_502_BAD_GATEWAY,
    LoginErrorKind.INVALID_RESPONSE: status.HTTP_502_BAD_GATEWAY,
}


def _summaries(bridge: BridgeService) -> list[AccountSummary]:
    _, auth = bridge.resolve()
    return [AccountSummary(alias=alias, active=alias == auth.account_alias) for alias in bridge.account_aliases()]


@router.get('', response_model=list[AccountSummary])
async def list_accounts(bridge: BridgeService = Depends(get_bridge_service)) -> list[AccountSummary]:
    return _summaries(bridge)


@router.post('/active', response_model=list[AccountSummary])
async def set_active_account(
    payload: ActiveAccountRequest = Body(..., description='Account to activate'),
    bridge: BridgeService = Depends(get_bridge_service),
) -> list[AccountSummary]:
    try:
        bridge.switch_account(payload.alias)
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f'Unknown account {payload.alias}',
        ) from exc
    return _summaries(bridge)


@router.delete('/{alias}', response_model=list[AccountSummary])
async def delete_account(alias: str, bridge: BridgeService = Depends(get_bridge_service)) -> list[AccountSummary]:
    try:
        bridge.delete_account(alias)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f'Unknown account {alias}') from exc
    return _summaries(bridge)


@router.post('/login', response_model=AccountSummary)
async def login(
    payload: LoginRequest = Body(..., description='RightCode credentials'),
    bridge: BridgeService = Depends(get_bridge_service),
) -> AccountSummary:
    try:
        credential = await login_with_password(bridge, payload.username, payload.password, payload.alias)
    except LoginError as exc:
        raise HTTPException(status_code=_LOGIN_STATUS[exc.kind], detail=str(exc)) from exc
    return AccountSummary(alias=credential.alias, active=True)
