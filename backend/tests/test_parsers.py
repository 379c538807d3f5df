import pytest

from rightcode_bar.errors import ParseError, ParseErrorKind
from rightcode_bar.services.parsers import (
    decode_json,
    parse_finite_number,
    parse_login_result,
    parse_subscription_list,
    parse_usage_stats,
)


def test_subscription_list_drops_entries_missing_required_fields():
    result = parse_subscription_list(
        {
            'total': '3',
            'subscriptions': [
                {'id': 1, 'name': 'Pro', 'total_quota': 100, 'remaining_quota': '37.5', 'reset_today': True},
                {'id': 2, 'name': 'No quota'},
                {'name': 'No id', 'total_quota': 1, 'remaining_quota': 1},
                'garbage',
                {'id': 3, 'name': 'Lite', 'total_quota': 'NaN', 'remaining_quota': 1},
            ],
        }
    )

    assert result.total == 3
    assert [sub.name for sub in result.subscriptions] == ['Pro']
    assert result.subscriptions[0].remaining_quota == 37.5
    assert result.subscriptions[0].reset_today is True


def test_total_defaults_to_zero_and_missing_array_is_empty():
    result = parse_subscription_list({'total': float('inf')})

    assert result.total == 0
    assert result.subscriptions == ()


def test_optional_fields_pass_through_and_null_reset_is_distinguished():
    result = parse_subscription_list(
        {
            'subscriptions': [
                {
                    'id': 1,
                    'name': 'Explicit null',
                    'total_quota': 10,
                    'remaining_quota': 5,
                    'expired_at': '2026-12-01T00:00:00Z',
                    'last_reset_at': None,
                    'reset_today': 'yes',
                },
                {'id': 2, 'name': 'Absent', 'total_quota': 10, 'remaining_quota': 5},
            ]
        }
    )

    explicit, absent = result.subscriptions
    assert explicit.expired_at == '2026-12-01T00:00:00Z'
    assert explicit.last_reset_at is None and explicit.last_reset_present
    assert absent.last_reset_at is None and not absent.last_reset_present
    assert explicit.reset_today is None


@pytest.mark.parametrize('raw', [[], 'text', None, 42])
def test_non_object_body_is_rejected(raw):
    with pytest.raises(ParseError) as excinfo:
        parse_subscription_list(raw)

    assert excinfo.value.kind is ParseErrorKind.NOT_AN_OBJECT


def test_decode_json_raises_parse_error():
    with pytest.raises(ParseError) as excinfo:
        decode_json('not json', 'test')

    assert excinfo.value.kind is ParseErrorKind.INVALID_JSON


def test_usage_stats_drops_malformed_entries_and_defaults_totals():
    stats = parse_usage_stats(
        {
            'total_requests': 12,
            'total_tokens': None,
            'total_cost': 'abc',
            'tokens_by_model': {'gpt': 800, 'claude': '200', 'bad': 'x'},
            'details_by_model': [
                {'model': 'gpt', 'requests': 10, 'total_tokens': 800, 'total_cost': 1.25},
                {'model': 'claude', 'requests': 2},
                {'model': 'negative', 'requests': -1, 'total_tokens': 1, 'total_cost': 0},
            ],
            'trend': [
                {'timestamp': '2026-10-18T10:00:00', 'requests': 1, 'total_tokens': 5, 'total_cost': 0.1},
                {'timestamp': '2026-10-18T11:00:00'},
            ],
        }
    )

    assert stats.total_requests == 12
    assert stats.total_tokens == 0
    assert stats.total_cost == 0.0
    assert stats.tokens_by_model == {'gpt': 800, 'claude': 200}
    assert [detail.model for detail in stats.details_by_model] == ['gpt']
    assert len(stats.trend) == 1


def test_usage_stats_requires_object():
    with pytest.raises(ParseError):
        parse_usage_stats(['not', 'an', 'object'])


def test_login_result_requires_user_token():
    assert parse_login_result({'user_token': ' tok ', 'email': 'a@b.c'}).user_token == 'tok'

    with pytest.raises(ParseError) as excinfo:
        parse_login_result({'username': 'alice'})

    assert excinfo.value.kind is ParseErrorKind.MISSING_FIELD
    assert excinfo.value.field == 'user_token'


def test_parse_finite_number_rejects_booleans_and_blanks():
    assert parse_finite_number(True) is None
    assert parse_finite_number('  ') is None
    assert parse_finite_number('1e3') == 1000.0
