"""Pure projections from fetch results to the status-summary and dashboard payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..models.account import AccountCredential, ResolvedAuth
from ..models.payloads import (
    AccountChangedMessage,
    AccountMessage,
    StatusState,
    StatusSummary,
    SubscriptionsMessage,
    TooltipRow,
    UsageStatsMessage,
)
from ..models.subscription import Subscription
from ..models.usage import UsageDateRange, UsageStats
from .quota import build_distribution, pick_display, sort_by_used

STATUS_TEXT_LOADING = 'Loading...'
STATUS_TEXT_ERROR = 'Failed to fetch subscriptions, update your token'
STATUS_TEXT_NO_SUBSCRIPTION = 'No active subscription'
STATUS_TEXT_NOT_CONFIGURED = 'RightCode: not configured'

NOT_CONFIGURED_HINTS = (
    'Recommended: log in or add a token through the account commands (stored securely).',
    'Alternatively set RIGHTCODE_ACCOUNTS in the environment (stored in plain text).',
)


def format_quota(value: float) -> str:
    return f'{value:.2f}'


def escape_cell(value: str) -> str:
    return value.replace('|', '\\|').replace('\n', ' ')


def format_date_ymd(value: Optional[str]) -> str:
    if not value:
        return '-'
    date_part = value.split('T')[0]
    parts = date_part.split('-')
    if len(parts) != 3 or not all(parts):
        return escape_cell(date_part or value)
    year, month, day = parts
    return f'{year}/{month}/{day}'


def format_date_md(value: Optional[str]) -> str:
    if not value:
        return '-'
    date_part = value.split('T')[0]
    parts = date_part.split('-')
    if len(parts) != 3 or not all(parts):
        return escape_cell(date_part or value)
    _, month, day = parts
    return f'{month}/{day}'


def format_yes_no(value: Optional[bool]) -> str:
    if value is None:
        return '-'
    return 'yes' if value else 'no'


def status_text(account_label: str, subscription: Subscription) -> str:
    return f'{account_label} · {subscription.name} remaining {format_quota(subscription.remaining_quota)}'


def project_status_success(
    auth: ResolvedAuth,
    subscriptions: Sequence[Subscription],
    refreshed_at: datetime,
) -> StatusSummary:
    selected = pick_display(subscriptions)
    if selected is None:
        return project_status_no_subscription(auth, refreshed_at)

    rows = tuple(
        TooltipRow(
            name=escape_cell(subscription.name),
            remaining=format_quota(subscription.remaining_quota),
            total=format_quota(subscription.total_quota),
            used=format_quota(subscription.used_quota),
            expires=format_date_ymd(subscription.expired_at),
            last_reset=format_date_md(subscription.last_reset_at),
            reset_today=format_yes_no(subscription.reset_today),
            selected=subscription is selected,
        )
        for subscription in sort_by_used(subscriptions)
    )
    return StatusSummary(
        state=StatusState.OK,
        text=status_text(auth.account_label, selected),
        account_label=auth.account_label,
        rows=rows,
        refreshed_at=refreshed_at,
    )


def project_status_no_subscription(auth: ResolvedAuth, refreshed_at: datetime) -> StatusSummary:
    return StatusSummary(
        state=StatusState.NO_SUBSCRIPTION,
        text=STATUS_TEXT_NO_SUBSCRIPTION,
        account_label=auth.account_label,
        refreshed_at=refreshed_at,
    )


def project_status_not_configured() -> StatusSummary:
    return StatusSummary(
        state=StatusState.NOT_CONFIGURED,
        text=STATUS_TEXT_NOT_CONFIGURED,
        hints=NOT_CONFIGURED_HINTS,
    )


def project_status_error(message: str, account_label: Optional[str] = None) -> StatusSummary:
    return StatusSummary(
        state=StatusState.ERROR,
        text=STATUS_TEXT_ERROR,
        account_label=account_label,
        error=escape_cell(message),
    )


def project_status_loading(account_label: Optional[str] = None) -> StatusSummary:
    return StatusSummary(state=StatusState.LOADING, text=STATUS_TEXT_LOADING, account_label=account_label)


def project_subscriptions_success(
    subscriptions: Sequence[Subscription],
    refreshed_at: datetime,
) -> SubscriptionsMessage:
    return SubscriptionsMessage(ok=True, subscriptions=list(subscriptions), refreshed_at=refreshed_at)


def project_subscriptions_error(message: str) -> SubscriptionsMessage:
    return SubscriptionsMessage(ok=False, error=message)


def project_usage_success(
    stats: UsageStats,
    date_range: UsageDateRange,
    refreshed_at: datetime,
) -> UsageStatsMessage:
    return UsageStatsMessage(
        ok=True,
        stats=stats,
        distribution=build_distribution(stats),
        start_date=date_range.start_date,
        end_date=date_range.end_date,
        granularity=date_range.granularity,
        refreshed_at=refreshed_at,
    )


def project_usage_error(message: str) -> UsageStatsMessage:
    return UsageStatsMessage(ok=False, error=message)


def project_account(auth: ResolvedAuth, accounts: Sequence[AccountCredential]) -> AccountMessage:
    return AccountMessage(
        label=auth.account_label,
        alias=auth.account_alias,
        accounts=[account.alias for account in accounts],
    )


def project_account_changed(auth: ResolvedAuth) -> AccountChangedMessage:
    return AccountChangedMessage(label=auth.account_label, alias=auth.account_alias)
