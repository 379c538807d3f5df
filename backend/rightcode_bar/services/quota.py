from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from ..models.subscription import Subscription
from ..models.usage import Granularity, UsageDateRange, UsageDistributionItem, UsageStats

MODEL_COLORS = (
    'var(--rc-purple-500)',
    'var(--rc-orange-500)',
    'var(--rc-green-500)',
    'var(--rc-orange-400)',
    'var(--rc-purple-600)',
)

DAY_RANGES = ('today', '7d', '30d')
HOUR_RANGES = ('today', 'yesterday', '2d')


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    text = raw.strip()
    if text.endswith('Z') or text.endswith('z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_expired(subscription: Subscription, now: datetime) -> bool:
    expires = parse_timestamp(subscription.expired_at)
    if expires is None:
        return False
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return expires < now


def filter_expired(
    subscriptions: Iterable[Subscription],
    now: datetime,
    include_expired: bool,
) -> list[Subscription]:
    if include_expired:
        return list(subscriptions)
    return [subscription for subscription in subscriptions if not is_expired(subscription, now)]


def sort_by_used(subscriptions: Iterable[Subscription]) -> list[Subscription]:
    # sorted() is stable, so equal usage keeps API order.
    return sorted(subscriptions, key=lambda subscription: subscription.used_quota)


def pick_display(subscriptions: Sequence[Subscription]) -> Optional[Subscription]:
    ordered = sort_by_used(subscriptions)
    return ordered[0] if ordered else None


def model_ratio(tokens: int, total_tokens: int) -> float:
    if total_tokens <= 0:
        return 0.0
    return tokens / total_tokens * 100


def build_distribution(stats: UsageStats) -> list[UsageDistributionItem]:
    """Per-model share of tokens, largest first, colored by position."""
    if stats.details_by_model:
        rows = [
            (detail.model, detail.requests, detail.total_tokens, detail.total_cost)
            for detail in stats.details_by_model
        ]
    else:
        rows = [(model, 0, tokens, 0.0) for model, tokens in stats.tokens_by_model.items()]

    ordered = sorted(rows, key=lambda row: row[2], reverse=True)
    return [
        UsageDistributionItem(
            model=model,
            requests=requests,
            total_tokens=tokens,
            total_cost=cost,
            ratio=model_ratio(tokens, stats.total_tokens),
            color=MODEL_COLORS[index % len(MODEL_COLORS)],
        )
        for index, (model, requests, tokens, cost) in enumerate(ordered)
    ]


def to_api_datetime(value: datetime) -> str:
    return value.strftime('%Y-%m-%dT%H:%M:%S')


def _start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _end_of_day(value: datetime) -> datetime:
    return value.replace(hour=23, minute=59, second=0, microsecond=0)


def usage_date_range(range_name: str, granularity: Granularity, now: Optional[datetime] = None) -> UsageDateRange:
    """Dashboard date window for a named range; unknown names fall back to today."""
    now = now or datetime.now()
    granularity = Granularity(granularity)
    start = _start_of_day(now)
    end = _end_of_day(now)
    if granularity is Granularity.DAY:
        if range_name == '7d':
            start = _start_of_day(now - timedelta(days=6))
        elif range_name == '30d':
            start = _start_of_day(now - timedelta(days=29))
    elif range_name == 'yesterday':
        start = _start_of_day(now - timedelta(days=1))
        end = _end_of_day(now - timedelta(days=1))
    elif range_name == '2d':
        start = _start_of_day(now - timedelta(days=2))
        end = _end_of_day(now - timedelta(days=2))
    return UsageDateRange(
        start_date=to_api_datetime(start),
        end_date=to_api_datetime(end),
        granularity=granularity,
    )
