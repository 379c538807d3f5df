import json

import pytest

from rightcode_bar.config import ConfigurationStore, Settings
from rightcode_bar.services.migration import migrate_legacy_credential, next_free_alias


def _store(**overrides) -> ConfigurationStore:
    return ConfigurationStore(Settings(**overrides))


def test_legacy_token_becomes_default_account_and_is_activated():
    store = _store(RIGHTCODE_TOKEN='Bearer legacy-token')

    result = migrate_legacy_credential(store)

    assert result.migrated_alias == 'default'
    assert result.activated
    assert store.settings.accounts == [{'alias': 'default', 'secret': 'legacy-token'}]
    assert store.settings.active_account == 'default'
    assert store.settings.token == ''


def test_alias_suffix_skips_existing_names_and_keeps_active_account():
    store = _store(
        RIGHTCODE_TOKEN='legacy',
        RIGHTCODE_ACCOUNTS=[
            {'alias': 'default', 'secret': 'a'},
            {'alias': 'default-2', 'secret': 'b'},
        ],
        RIGHTCODE_ACTIVE_ACCOUNT='default',
    )

    result = migrate_legacy_credential(store)

    assert result.migrated_alias == 'default-3'
    assert not result.activated
    assert store.settings.active_account == 'default'
    assert [entry['alias'] for entry in store.settings.accounts] == ['default', 'default-2', 'default-3']


def test_token_matching_existing_secret_is_only_cleared():
    store = _store(RIGHTCODE_TOKEN='"same"', RIGHTCODE_ACCOUNTS={'mine': 'same'})

    result = migrate_legacy_credential(store)

    assert result.migrated_alias is None
    assert result.legacy_cleared
    assert store.settings.accounts == {'mine': 'same'}
    assert store.settings.token == ''


def test_migration_is_idempotent():
    first = _store(RIGHTCODE_TOKEN='legacy', RIGHTCODE_ACCOUNTS={'work': 'w'})
    second = _store(RIGHTCODE_TOKEN='legacy', RIGHTCODE_ACCOUNTS={'work': 'w'})

    migrate_legacy_credential(first)
    migrate_legacy_credential(second)
    snapshot = first.settings.model_dump()
    rerun = migrate_legacy_credential(first)

    assert first.settings.model_dump() == second.settings.model_dump() == snapshot
    assert rerun.migrated_alias is None
    assert not rerun.legacy_cleared


def test_failure_to_clear_legacy_field_is_not_fatal():
    class FlakyStore(ConfigurationStore):
        def update(self, **changes):
            if changes.get('token') == '':
                raise OSError('read-only settings')
            return super().update(**changes)

    store = FlakyStore(Settings(RIGHTCODE_TOKEN='legacy'))

    result = migrate_legacy_credential(store)

    assert result.migrated_alias == 'default'
    assert not result.legacy_cleared
    assert store.settings.active_account == 'default'


def test_next_free_alias():
    assert next_free_alias(set()) == 'default'
    assert next_free_alias({'default', 'default-3'}) == 'default-2'


def test_failed_config_write_keeps_snapshot_and_skips_listeners(tmp_path):
    store = _store(
        RIGHTCODE_ACCOUNTS={'a': 'x', 'b': 'y'},
        RIGHTCODE_ACTIVE_ACCOUNT='a',
        RIGHTCODE_CONFIG_PATH=str(tmp_path),
    )
    notified = []
    store.subscribe(lambda settings, changed: notified.append(changed))

    with pytest.raises(OSError):
        store.update(active_account='b')

    assert store.settings.active_account == 'a'
    assert notified == []


def test_config_write_persists_mutable_fields(tmp_path):
    path = tmp_path / 'rightcode.json'
    store = _store(RIGHTCODE_ACCOUNTS={'a': 'x'}, RIGHTCODE_CONFIG_PATH=str(path))

    store.update(active_account='a')

    assert json.loads(path.read_text(encoding='utf-8'))['active_account'] == 'a'
    assert ConfigurationStore(Settings(RIGHTCODE_CONFIG_PATH=str(path))).settings.active_account == 'a'


def test_unwritable_config_during_migration_is_logged_not_raised(tmp_path, caplog):
    store = _store(RIGHTCODE_TOKEN='legacy', RIGHTCODE_CONFIG_PATH=str(tmp_path))

    result = migrate_legacy_credential(store)

    assert result.migrated_alias is None
    assert not result.legacy_cleared
    assert store.settings.token == 'legacy'
    assert store.settings.accounts == []
    assert any('Failed to save migrated account' in record.getMessage() for record in caplog.records)
