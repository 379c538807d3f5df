from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .subscription import Subscription
from .usage import Granularity, UsageDistributionItem, UsageStats


class StatusState(str, Enum):
    LOADING = 'loading'
    OK = 'ok'
    NO_SUBSCRIPTION = 'no_subscription'
    NOT_CONFIGURED = 'not_configured'
    ERROR = 'error'


class TooltipRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    remaining: str
    total: str
    used: str
    expires: str
    last_reset: str
    reset_today: str
    selected: bool = False


class StatusSummary(BaseModel):
    """Compact status text plus the tooltip model shown on hover."""

    model_config = ConfigDict(frozen=True)

    state: StatusState
    text: str
    title: str = 'RightCode subscriptions'
    account_label: Optional[str] = None
    rows: tuple[TooltipRow, ...] = ()
    hints: tuple[str, ...] = ()
    error: Optional[str] = None
    refreshed_at: Optional[datetime] = None


class AccountMessage(BaseModel):
    type: Literal['account'] = 'account'
    label: str
    alias: Optional[str] = None
    accounts: List[str] = Field(default_factory=list)


class AccountChangedMessage(BaseModel):
    type: Literal['accountChanged'] = 'accountChanged'
    label: str
    alias: Optional[str] = None


class SubscriptionsMessage(BaseModel):
    type: Literal['subscriptions'] = 'subscriptions'
    ok: bool
    subscriptions: List[Subscription] = Field(default_factory=list)
    error: Optional[str] = None
    refreshed_at: Optional[datetime] = None


class UsageStatsMessage(BaseModel):
    type: Literal['usageStats'] = 'usageStats'
    ok: bool
    stats: Optional[UsageStats] = None
    distribution: List[UsageDistributionItem] = Field(default_factory=list)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    granularity: Optional[Granularity] = None
    error: Optional[str] = None
    refreshed_at: Optional[datetime] = None


DashboardMessage = AccountMessage | AccountChangedMessage | SubscriptionsMessage | UsageStatsMessage


class RefreshAccepted(BaseModel):
    started: bool


class UsageRefreshRequest(BaseModel):
    granularity: Granularity = Granularity.HOUR
    range: str = Field(default='today', description='today | yesterday | 2d | 7d | 30d')
    start_date: Optional[str] = None
    end_date: Optional[str] = None
