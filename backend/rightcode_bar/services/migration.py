from __future__ import annotations

import logging
from dataclasses import dataclass

from ..config import ConfigurationStore
from ..models.account import AccountCredential
from .accounts import normalize_secret, parse_accounts, serialize_accounts, upsert_account

logger = logging.getLogger(__name__)

DEFAULT_ALIAS = 'default'


@dataclass(frozen=True)
class MigrationResult:
    migrated_alias: str | None
    activated: bool
    legacy_cleared: bool


def next_free_alias(existing: set[str], base: str = DEFAULT_ALIAS) -> str:
    if base not in existing:
        return base
    suffix = 2
    while f'{base}-{suffix}' in existing:
        suffix += 1
    return f'{base}-{suffix}'


def migrate_legacy_credential(store: ConfigurationStore) -> MigrationResult:
    """Fold the legacy single ``token`` field into the multi-account list."""
    settings = store.settings
    legacy_secret = normalize_secret(settings.token)
    if not legacy_secret and not settings.token:
        return MigrationResult(migrated_alias=None, activated=False, legacy_cleared=False)

    accounts = parse_accounts(settings.accounts)
    migrated_alias: str | None = None
    activated = False
    if legacy_secret and not any(account.secret == legacy_secret for account in accounts):
        migrated_alias = next_free_alias({account.alias for account in accounts})
        accounts = upsert_account(accounts, AccountCredential(alias=migrated_alias, secret=legacy_secret))
        changes: dict = {'accounts': serialize_accounts(accounts)}
        if not settings.active_account.strip():
            changes['active_account'] = migrated_alias
            activated = True
        try:
            store.update(**changes)
        except OSError:
            logger.exception('Failed to save migrated account %r; keeping legacy token', migrated_alias)
            return MigrationResult(migrated_alias=None, activated=False, legacy_cleared=False)
        logger.info('Migrated legacy token into account %r', migrated_alias)

    legacy_cleared = True
    try:
        store.update(token='')
    except OSError:
        legacy_cleared = False
        logger.exception('Failed to clear legacy token setting; continuing')
    return MigrationResult(migrated_alias=migrated_alias, activated=activated, legacy_cleared=legacy_cleared)
