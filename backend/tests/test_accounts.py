import logging

from rightcode_bar.models.account import NOT_CONFIGURED_LABEL, AccountCredential
from rightcode_bar.services.accounts import (
    AccountResolver,
    normalize_secret,
    parse_accounts,
    remove_account,
    upsert_account,
)


def test_duplicate_alias_keeps_first_occurrence():
    accounts = parse_accounts([{'alias': 'A', 'secret': 'x'}, {'alias': 'A', 'secret': 'y'}])

    assert accounts == [AccountCredential(alias='A', secret='x')]


def test_list_and_mapping_shapes_normalise_to_same_order():
    from_list = parse_accounts(
        [
            {'alias': 'work', 'secret': 'w-token'},
            {'alias': 'home', 'token': 'h-token'},
            {'alias': 'work', 'secret': 'other'},
        ]
    )
    from_mapping = parse_accounts({'work': 'w-token', 'home': 'h-token'})

    assert [a.alias for a in from_list] == ['work', 'home']
    assert from_list == from_mapping


def test_entries_with_empty_secret_or_alias_are_rejected():
    accounts = parse_accounts(
        [
            {'alias': 'blank', 'secret': '   '},
            {'alias': 'quoted-empty', 'secret': 'Bearer ""'},
            {'alias': '', 'secret': 'token'},
            {'alias': 'ok', 'secret': 'token'},
            'not-a-record',
        ]
    )

    assert [a.alias for a in accounts] == ['ok']


def test_normalize_secret_strips_prefixes_and_quotes():
    assert normalize_secret('Authorization: Bearer abc123') == 'abc123'
    assert normalize_secret('  bearer   "abc123"  ') == 'abc123'
    assert normalize_secret("Cookie: 'cf_clearance=1'") == 'cf_clearance=1'
    assert normalize_secret('"mismatched\'') == '"mismatched\''
    assert normalize_secret(None) == ''


def test_active_alias_is_used_when_present():
    resolver = AccountResolver()
    raw = [{'alias': 'work', 'secret': 'w'}, {'alias': 'home', 'secret': 'h'}]

    auth = resolver.resolve_auth(raw, 'home')

    assert auth.secret == 'h'
    assert auth.account_label == 'home'
    assert auth.account_alias == 'home'


def test_unknown_active_alias_falls_back_to_first_and_warns_once(caplog):
    resolver = AccountResolver()
    raw = [{'alias': 'work', 'secret': 'w'}, {'alias': 'home', 'secret': 'h'}]

    with caplog.at_level(logging.WARNING, logger='rightcode_bar.services.accounts'):
        first = resolver.resolve_accounts(raw, 'missing')
        second = resolver.resolve_accounts(raw, 'missing')

    assert first == second
    assert first[1] == 'work'
    warnings = [record for record in caplog.records if 'not found' in record.getMessage()]
    assert len(warnings) == 1


def test_empty_account_list_resolves_to_not_configured_sentinel():
    auth = AccountResolver().resolve_auth([], 'anything')

    assert auth.secret == ''
    assert auth.account_label == NOT_CONFIGURED_LABEL
    assert auth.account_alias is None
    assert not auth.configured


def test_upsert_replaces_in_place_and_remove_drops_entry():
    accounts = parse_accounts({'a': '1', 'b': '2', 'c': '3'})

    updated = upsert_account(accounts, AccountCredential(alias='b', secret='new'))
    appended = upsert_account(updated, AccountCredential(alias='d', secret='4'))

    assert [(a.alias, a.secret) for a in updated] == [('a', '1'), ('b', 'new'), ('c', '3')]
    assert [a.alias for a in appended] == ['a', 'b', 'c', 'd']
    assert [a.alias for a in remove_account(appended, 'a')] == ['b', 'c', 'd']
