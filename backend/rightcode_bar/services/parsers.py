"""Validating decoders for the subscription, usage-stats and login responses.

Each decoder checks the response field by field. A body that is not a JSON
object fails the whole decode with ``ParseError``; individual array entries
missing a required field are dropped and the rest of the batch survives.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any, Optional

from pydantic import ValidationError

from ..clients.http import BODY_PREVIEW_CHARS
from ..errors import ParseError, ParseErrorKind
from ..models.account import LoginResult
from ..models.subscription import Subscription, SubscriptionListResult
from ..models.usage import ModelUsage, TrendPoint, UsageStats

logger = logging.getLogger(__name__)


def decode_json(text: str, source: str = 'response') -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning('Failed to parse JSON from %s: %s', source, text[:BODY_PREVIEW_CHARS])
        raise ParseError(ParseErrorKind.INVALID_JSON) from exc


def parse_finite_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def parse_int(value: Any) -> Optional[int]:
    number = parse_finite_number(value)
    return int(number) if number is not None else None


def parse_string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def parse_bool(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _non_negative(value: Any) -> float:
    number = parse_finite_number(value)
    return max(number, 0.0) if number is not None else 0.0


def parse_subscription(raw: Any) -> Optional[Subscription]:
    if not isinstance(raw, dict):
        return None
    sub_id = parse_int(raw.get('id'))
    name = parse_string(raw.get('name'))
    total_quota = parse_finite_number(raw.get('total_quota'))
    remaining_quota = parse_finite_number(raw.get('remaining_quota'))
    if sub_id is None or name is None or total_quota is None or remaining_quota is None:
        return None

    return Subscription(
        id=sub_id,
        name=name,
        total_quota=total_quota,
        remaining_quota=remaining_quota,
        user_id=parse_int(raw.get('user_id')),
        item_id=parse_int(raw.get('item_id')),
        tier_id=parse_int(raw.get('tier_id')),
        duration_hours=parse_finite_number(raw.get('duration_hours')),
        expired_at=parse_string(raw.get('expired_at')),
        last_reset_at=parse_string(raw.get('last_reset_at')),
        last_reset_present='last_reset_at' in raw,
        created_at=parse_string(raw.get('created_at')),
        updated_at=parse_string(raw.get('updated_at')),
        reset_today=parse_bool(raw.get('reset_today')),
    )


def parse_subscription_list(raw: Any) -> SubscriptionListResult:
    if not isinstance(raw, dict):
        raise ParseError(ParseErrorKind.NOT_AN_OBJECT)

    total = parse_int(raw.get('total')) or 0
    entries = raw.get('subscriptions')
    subscriptions: list[Subscription] = []
    if isinstance(entries, list):
        for entry in entries:
            subscription = parse_subscription(entry)
            if subscription is None:
                logger.debug('Dropping malformed subscription entry: %r', entry)
                continue
            subscriptions.append(subscription)
    return SubscriptionListResult(total=total, subscriptions=tuple(subscriptions))


def parse_model_usage(raw: Any) -> Optional[ModelUsage]:
    if not isinstance(raw, dict):
        return None
    model = parse_string(raw.get('model'))
    requests = parse_int(raw.get('requests'))
    total_tokens = parse_int(raw.get('total_tokens'))
    total_cost = parse_finite_number(raw.get('total_cost'))
    if model is None or requests is None or total_tokens is None or total_cost is None:
        return None
    try:
        return ModelUsage(model=model, requests=requests, total_tokens=total_tokens, total_cost=total_cost)
    except ValidationError:
        return None


def parse_trend_point(raw: Any) -> Optional[TrendPoint]:
    if not isinstance(raw, dict):
        return None
    timestamp = parse_string(raw.get('timestamp')) or parse_string(raw.get('date'))
    requests = parse_int(raw.get('requests'))
    total_tokens = parse_int(raw.get('total_tokens'))
    total_cost = parse_finite_number(raw.get('total_cost'))
    if timestamp is None or requests is None or total_tokens is None or total_cost is None:
        return None
    try:
        return TrendPoint(timestamp=timestamp, requests=requests, total_tokens=total_tokens, total_cost=total_cost)
    except ValidationError:
        return None


def parse_usage_stats(raw: Any) -> UsageStats:
    if not isinstance(raw, dict):
        raise ParseError(ParseErrorKind.NOT_AN_OBJECT)

    tokens_by_model: dict[str, int] = {}
    raw_tokens = raw.get('tokens_by_model')
    if isinstance(raw_tokens, dict):
        for model, value in raw_tokens.items():
            tokens = parse_int(value)
            if isinstance(model, str) and tokens is not None and tokens >= 0:
                tokens_by_model[model] = tokens

    details = raw.get('details_by_model')
    trend = raw.get('trend')
    return UsageStats(
        total_requests=int(_non_negative(raw.get('total_requests'))),
        total_tokens=int(_non_negative(raw.get('total_tokens'))),
        total_cost=_non_negative(raw.get('total_cost')),
        tokens_by_model=tokens_by_model,
        details_by_model=tuple(
            item for item in map(parse_model_usage, details if isinstance(details, list) else []) if item
        ),
        trend=tuple(item for item in map(parse_trend_point, trend if isinstance(trend, list) else []) if item),
    )


def parse_login_result(raw: Any) -> LoginResult:
    if not isinstance(raw, dict):
        raise ParseError(ParseErrorKind.NOT_AN_OBJECT)
    token = parse_string(raw.get('user_token'))
    if not token or not token.strip():
        raise ParseError(ParseErrorKind.MISSING_FIELD, field='user_token')
    return LoginResult(
        user_token=token.strip(),
        username=parse_string(raw.get('username')),
        email=parse_string(raw.get('email')),
    )
