"""Account configuration model: parsing, deduplication and active-account resolution."""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Sequence

from ..models.account import NOT_CONFIGURED_LABEL, AccountCredential, ResolvedAuth

logger = logging.getLogger(__name__)

_SECRET_PREFIXES = (
    re.compile(r'^authorization\s*:\s*', re.IGNORECASE),
    re.compile(r'^bearer\s+', re.IGNORECASE),
    re.compile(r'^cookie\s*:\s*', re.IGNORECASE),
)


def normalize_secret(value: Any) -> str:
    """Strip header prefixes and surrounding quotes that users paste along with a token."""
    if not isinstance(value, str):
        return ''
    normalized = value.strip()
    for prefix in _SECRET_PREFIXES:
        normalized = prefix.sub('', normalized).strip()
    if len(normalized) >= 2 and normalized[0] == normalized[-1] and normalized[0] in ('"', "'"):
        normalized = normalized[1:-1].strip()
    return normalized


def _iter_raw_entries(raw_accounts: Any) -> Iterable[tuple[Any, Any]]:
    if isinstance(raw_accounts, dict):
        yield from raw_accounts.items()
        return
    if not isinstance(raw_accounts, (list, tuple)):
        return
    for entry in raw_accounts:
        if isinstance(entry, AccountCredential):
            yield entry.alias, entry.secret
        elif isinstance(entry, dict):
            secret = entry.get('secret')
            if secret is None:
                secret = entry.get('token')
            yield entry.get('alias'), secret


def parse_accounts(raw_accounts: Any) -> list[AccountCredential]:
    """Normalize either configuration shape into an ordered, alias-unique list."""
    accounts: list[AccountCredential] = []
    seen: set[str] = set()
    for raw_alias, raw_secret in _iter_raw_entries(raw_accounts):
        alias = raw_alias.strip() if isinstance(raw_alias, str) else ''
        secret = normalize_secret(raw_secret)
        if not alias or not secret:
            logger.debug('Skipping account entry with empty alias or secret (alias=%r)', alias)
            continue
        if alias in seen:
            logger.debug('Dropping duplicate account alias %r', alias)
            continue
        seen.add(alias)
        accounts.append(AccountCredential(alias=alias, secret=secret))
    return accounts


def serialize_accounts(accounts: Sequence[AccountCredential]) -> list[dict[str, str]]:
    return [{'alias': account.alias, 'secret': account.secret} for account in accounts]


def upsert_account(accounts: Sequence[AccountCredential], credential: AccountCredential) -> list[AccountCredential]:
    """Replace the entry sharing ``credential.alias`` in place, or append it."""
    updated: list[AccountCredential] = []
    replaced = False
    for account in accounts:
        if account.alias == credential.alias:
            updated.append(credential)
            replaced = True
        else:
            updated.append(account)
    if not replaced:
        updated.append(credential)
    return updated


def remove_account(accounts: Sequence[AccountCredential], alias: str) -> list[AccountCredential]:
    return [account for account in accounts if account.alias != alias]


class AccountResolver:
    """Resolves the active account, warning once when the configured alias is unknown."""

    def __init__(self) -> None:
        self._warned_missing_alias = False

    def resolve_accounts(self, raw_accounts: Any, active_alias: str) -> tuple[list[AccountCredential], str]:
        accounts = parse_accounts(raw_accounts)
        if not accounts:
            return accounts, ''
        wanted = (active_alias or '').strip()
        if any(account.alias == wanted for account in accounts):
            return accounts, wanted
        if wanted and not self._warned_missing_alias:
            logger.warning(
                'Active account %r not found; falling back to %r', wanted, accounts[0].alias
            )
            self._warned_missing_alias = True
        return accounts, accounts[0].alias

    def resolve(self, raw_accounts: Any, active_alias: str) -> tuple[list[AccountCredential], ResolvedAuth]:
        accounts, resolved_alias = self.resolve_accounts(raw_accounts, active_alias)
        if not accounts:
            return accounts, ResolvedAuth(secret='', account_label=NOT_CONFIGURED_LABEL, account_alias=None)
        account = next(account for account in accounts if account.alias == resolved_alias)
        return accounts, ResolvedAuth(secret=account.secret, account_label=account.alias, account_alias=account.alias)

    def resolve_auth(self, raw_accounts: Any, active_alias: str) -> ResolvedAuth:
        return self.resolve(raw_accounts, active_alias)[1]
