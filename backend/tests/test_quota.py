from datetime import datetime, timezone

import pytest

from rightcode_bar.models.subscription import Subscription
from rightcode_bar.models.usage import Granularity, ModelUsage, UsageStats
from rightcode_bar.services.quota import (
    MODEL_COLORS,
    build_distribution,
    filter_expired,
    pick_display,
    usage_date_range,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _sub(sub_id: int, total: float, remaining: float, expired_at=None) -> Subscription:
    return Subscription(
        id=sub_id,
        name=f'sub-{sub_id}',
        total_quota=total,
        remaining_quota=remaining,
        expired_at=expired_at,
    )


def test_used_quota_scenario_and_not_expired():
    subscription = _sub(1, 100, 37.5, expired_at=None)

    assert subscription.used_quota == 62.5
    assert filter_expired([subscription], NOW, include_expired=False) == [subscription]


@pytest.mark.parametrize('remaining', [100 + 5e-9, 100 + 1e-12, 150])
def test_used_quota_is_never_negative(remaining):
    used = _sub(1, 100, remaining).used_quota

    assert used == 0.0
    assert used >= 0


def test_filter_expired_keeps_unparsable_and_future_expiry():
    past = _sub(1, 10, 5, expired_at='2026-10-17T00:00:00Z')
    future = _sub(2, 10, 5, expired_at='2026-10-19T00:00:00+08:00')
    junk = _sub(3, 10, 5, expired_at='soon')
    naive = _sub(4, 10, 5, expired_at='2026-10-18T11:59:00')

    assert filter_expired([past, future, junk, naive], NOW, include_expired=False) == [future, junk]
    assert filter_expired([past, future], NOW, include_expired=True) == [past, future]


def test_pick_display_prefers_least_used_with_stable_ties():
    first = _sub(1, 100, 90)
    second = _sub(2, 100, 90)
    heavy = _sub(3, 100, 10)

    assert pick_display([heavy, first, second]) is first
    assert pick_display([]) is None


def test_distribution_ratios_from_tokens_by_model():
    stats = UsageStats(total_tokens=1000, tokens_by_model={'claude': 200, 'gpt': 800})

    items = build_distribution(stats)

    assert [item.model for item in items] == ['gpt', 'claude']
    assert [item.ratio for item in items] == pytest.approx([80.0, 20.0])
    assert sum(item.ratio for item in items) == pytest.approx(100.0)


def test_distribution_sorted_desc_with_cycling_palette():
    details = tuple(
        ModelUsage(model=f'm{index}', requests=1, total_tokens=tokens, total_cost=0.01)
        for index, tokens in enumerate([10, 60, 20, 5, 1, 4])
    )
    stats = UsageStats(total_tokens=100, details_by_model=details)

    items = build_distribution(stats)

    assert [item.total_tokens for item in items] == [60, 20, 10, 5, 4, 1]
    assert [item.color for item in items] == [*MODEL_COLORS, MODEL_COLORS[0]]


def test_distribution_ratio_is_zero_when_total_is_zero():
    stats = UsageStats(total_tokens=0, tokens_by_model={'gpt': 10})

    assert build_distribution(stats)[0].ratio == 0.0


def test_usage_date_ranges():
    now = datetime(2026, 10, 18, 15, 30)

    today = usage_date_range('today', Granularity.HOUR, now)
    yesterday = usage_date_range('yesterday', Granularity.HOUR, now)
    month = usage_date_range('30d', Granularity.DAY, now)

    assert (today.start_date, today.end_date) == ('2026-10-18T00:00:00', '2026-10-18T23:59:00')
    assert (yesterday.start_date, yesterday.end_date) == ('2026-10-17T00:00:00', '2026-10-17T23:59:00')
    assert month.start_date == '2026-09-19T00:00:00'
    assert month.granularity is Granularity.DAY
