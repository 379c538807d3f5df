"""Refresh pipeline: resolve the account, fetch, compute and fan out to both consumers."""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, Sequence

from ..clients.rightcode import RightCodeClient
from ..config import ConfigurationStore, Settings
from ..errors import AuthMissingError, BridgeError
from ..models.account import AccountCredential, ResolvedAuth
from ..models.payloads import (
    AccountChangedMessage,
    DashboardMessage,
    StatusSummary,
    UsageRefreshRequest,
)
from ..models.usage import UsageDateRange
from .accounts import AccountResolver, parse_accounts, remove_account, serialize_accounts, upsert_account
from .migration import MigrationResult, migrate_legacy_credential
from .projection import (
    project_account,
    project_account_changed,
    project_status_error,
    project_status_loading,
    project_status_not_configured,
    project_status_success,
    project_subscriptions_error,
    project_subscriptions_success,
    project_usage_error,
    project_usage_success,
)
from .quota import filter_expired, usage_date_range
from .scheduler import RefreshScheduler, Track

logger = logging.getLogger(__name__)

ACCOUNT_KEYS = frozenset({'accounts', 'active_account'})
REFRESH_KEYS = frozenset({'accounts', 'active_account', 'request_timeout_ms', 'show_expired_subscriptions'})


class StatusSink(Protocol):
    def show_status(self, summary: StatusSummary) -> None: ...

    def account_changed(self, message: AccountChangedMessage) -> None: ...


class DashboardSink(Protocol):
    def post_message(self, message: DashboardMessage) -> None: ...


class StatusBoard:
    """Keeps the latest status summary for the status surface."""

    def __init__(self) -> None:
        self.summary: StatusSummary = project_status_loading()

    def show_status(self, summary: StatusSummary) -> None:
        self.summary = summary

    def account_changed(self, message: AccountChangedMessage) -> None:
        self.summary = project_status_loading(message.label)


class DashboardFeed:
    """Keeps the latest dashboard message of each type, in delivery order."""

    def __init__(self) -> None:
        self.messages: OrderedDict[str, DashboardMessage] = OrderedDict()

    def post_message(self, message: DashboardMessage) -> None:
        self.messages.pop(message.type, None)
        self.messages[message.type] = message

    def latest(self, message_type: str) -> Optional[DashboardMessage]:
        return self.messages.get(message_type)


class BridgeService:
    """Drives the fetch pipeline for both presentation surfaces."""

    def __init__(
        self,
        client: RightCodeClient,
        store: ConfigurationStore,
        status_sink: Optional[StatusSink] = None,
        dashboard_sink: Optional[DashboardSink] = None,
    ) -> None:
        self._client = client
        self._store = store
        self.status_sink: StatusSink = status_sink or StatusBoard()
        self.dashboard_sink: DashboardSink = dashboard_sink or DashboardFeed()
        self._resolver = AccountResolver()
        self._usage_request = UsageRefreshRequest()
        self._migration: MigrationResult | None = None
        self._started = False
        self.scheduler = RefreshScheduler(self.refresh_subscriptions, self.refresh_usage_stats)
        store.subscribe(self._on_configuration_changed)

    @property
    def settings(self) -> Settings:
        return self._store.settings

    @property
    def client(self) -> RightCodeClient:
        return self._client

    def resolve(self, settings: Settings | None = None) -> tuple[list[AccountCredential], ResolvedAuth]:
        settings = settings or self._store.settings
        return self._resolver.resolve(settings.accounts, settings.active_account)

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def start(self) -> None:
        if self._started:
            return
        if self._migration is None:
            self._migration = migrate_legacy_credential(self._store)
        self._started = True
        self._publish_account()
        if self.settings.enable_scheduler:
            self.scheduler.arm(self.settings.refresh_interval_seconds)
        else:
            logger.debug('Scheduler disabled; skipping periodic refresh')
        self.scheduler.trigger_all()

    async def shutdown(self) -> None:
        self._started = False
        await self.scheduler.shutdown()

    # ── Pipeline ─────────────────────────────────────────────────────────

    async def refresh_subscriptions(self) -> None:
        settings = self._store.settings
        _, auth = self.resolve(settings)
        if not auth.configured:
            self.status_sink.show_status(project_status_not_configured())
            self.dashboard_sink.post_message(project_subscriptions_error(str(AuthMissingError())))
            return

        error: Optional[str] = None
        try:
            result = await self._client.fetch_subscriptions(auth, settings.request_timeout_ms)
        except BridgeError as exc:
            error = str(exc)
        except Exception as exc:
            logger.exception('Unexpected failure fetching subscriptions')
            error = str(exc) or type(exc).__name__

        if self._superseded(auth):
            return
        if error is not None:
            self._fail_subscriptions(auth, error)
            return
        refreshed_at = datetime.now(timezone.utc)
        visible = filter_expired(result.subscriptions, refreshed_at, settings.show_expired_subscriptions)
        logger.debug(
            'Fetched %s subscriptions for %s (%s visible)',
            len(result.subscriptions),
            auth.account_label,
            len(visible),
        )
        self.status_sink.show_status(project_status_success(auth, visible, refreshed_at))
        self.dashboard_sink.post_message(project_subscriptions_success(visible, datetime.now(timezone.utc)))

    async def refresh_usage_stats(self, request: UsageRefreshRequest | None = None) -> None:
        settings = self._store.settings
        request = request or self._usage_request
        _, auth = self.resolve(settings)
        if not auth.configured:
            self.dashboard_sink.post_message(project_usage_error(str(AuthMissingError())))
            return

        date_range = self._date_range(request)
        error: Optional[str] = None
        try:
            stats = await self._client.fetch_usage_stats(
                auth,
                date_range.start_date,
                date_range.end_date,
                date_range.granularity,
                settings.request_timeout_ms,
            )
        except BridgeError as exc:
            logger.error('Usage stats refresh failed for %s: %s', auth.account_label, exc)
            error = str(exc)
        except Exception as exc:
            logger.exception('Unexpected failure fetching usage stats')
            error = str(exc) or type(exc).__name__

        if self._superseded(auth):
            return
        if error is not None:
            self.dashboard_sink.post_message(project_usage_error(error))
            return
        self.dashboard_sink.post_message(project_usage_success(stats, date_range, datetime.now(timezone.utc)))

    def _superseded(self, auth: ResolvedAuth) -> bool:
        """True when the active account changed while ``auth`` was being fetched."""
        _, current = self.resolve()
        if current.account_alias == auth.account_alias and current.secret == auth.secret:
            return False
        logger.debug('Discarding result for %s; active account is now %s', auth.account_label, current.account_label)
        return True

    def _fail_subscriptions(self, auth: ResolvedAuth, message: str) -> None:
        logger.error('Subscription refresh failed for %s: %s', auth.account_label, message)
        self.status_sink.show_status(project_status_error(message, auth.account_label))
        self.dashboard_sink.post_message(project_subscriptions_error(message))

    @staticmethod
    def _date_range(request: UsageRefreshRequest) -> UsageDateRange:
        if request.start_date and request.end_date:
            return UsageDateRange(
                start_date=request.start_date,
                end_date=request.end_date,
                granularity=request.granularity,
            )
        return usage_date_range(request.range, request.granularity)

    # ── Triggers ─────────────────────────────────────────────────────────

    def trigger_subscriptions(self, rerun_if_busy: bool = False) -> bool:
        return self.scheduler.trigger(Track.SUBSCRIPTIONS, rerun_if_busy=rerun_if_busy)

    def trigger_usage_stats(self, request: UsageRefreshRequest | None = None, rerun_if_busy: bool = False) -> bool:
        if request is not None:
            self._usage_request = request
        pinned = self._usage_request
        return self.scheduler.trigger(
            Track.USAGE_STATS, lambda: self.refresh_usage_stats(pinned), rerun_if_busy=rerun_if_busy
        )

    async def refresh_now(self) -> dict[Track, bool]:
        """Run both tracks to completion; a track already fetching is skipped."""
        return {
            Track.SUBSCRIPTIONS: await self.scheduler.run(Track.SUBSCRIPTIONS),
            Track.USAGE_STATS: await self.scheduler.run(Track.USAGE_STATS),
        }

    # ── Accounts ─────────────────────────────────────────────────────────

    def save_account(self, credential: AccountCredential, activate: bool = True) -> None:
        accounts = upsert_account(parse_accounts(self.settings.accounts), credential)
        changes: dict[str, Any] = {'accounts': serialize_accounts(accounts)}
        if activate:
            changes['active_account'] = credential.alias
        self._store.update(**changes)

    def switch_account(self, alias: str) -> None:
        accounts = parse_accounts(self.settings.accounts)
        if not any(account.alias == alias for account in accounts):
            raise KeyError(alias)
        self._store.update(active_account=alias)

    def delete_account(self, alias: str) -> None:
        accounts = parse_accounts(self.settings.accounts)
        if not any(account.alias == alias for account in accounts):
            raise KeyError(alias)
        remaining = remove_account(accounts, alias)
        changes: dict[str, Any] = {'accounts': serialize_accounts(remaining)}
        if self.settings.active_account == alias:
            changes['active_account'] = remaining[0].alias if remaining else ''
        self._store.update(**changes)

    def account_aliases(self) -> Sequence[str]:
        accounts, _ = self.resolve()
        return [account.alias for account in accounts]

    def _publish_account(self) -> None:
        accounts, auth = self.resolve()
        self.dashboard_sink.post_message(project_account(auth, accounts))

    def _on_configuration_changed(self, settings: Settings, changed: frozenset) -> None:
        if not self._started:
            return
        if changed & ACCOUNT_KEYS:
            accounts, auth = self.resolve(settings)
            message = project_account_changed(auth)
            self.status_sink.account_changed(message)
            self.dashboard_sink.post_message(message)
            self.dashboard_sink.post_message(project_account(auth, accounts))
        if 'refresh_interval_seconds' in changed and settings.enable_scheduler:
            self.scheduler.arm(settings.refresh_interval_seconds)
        if changed & REFRESH_KEYS:
            self.trigger_subscriptions(rerun_if_busy=True)
            self.trigger_usage_stats(rerun_if_busy=True)
