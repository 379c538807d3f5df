from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List, Union

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

RawAccounts = Union[List[Dict[str, Any]], Dict[str, Any]]

# Fields a running bridge may rewrite (migration, account switch, login).
MUTABLE_FIELDS = (
    'accounts',
    'active_account',
    'token',
    'refresh_interval_seconds',
    'request_timeout_ms',
    'show_expired_subscriptions',
)


class Settings(BaseSettings):
    """Bridge configuration loaded from environment."""

    accounts: RawAccounts = Field(default_factory=list, alias='RIGHTCODE_ACCOUNTS')
    active_account: str = Field(default='', alias='RIGHTCODE_ACTIVE_ACCOUNT')
    token: str = Field(default='', alias='RIGHTCODE_TOKEN')
    refresh_interval_seconds: int = Field(default=300, alias='RIGHTCODE_REFRESH_INTERVAL_SECONDS')
    request_timeout_ms: int = Field(default=15000, alias='RIGHTCODE_REQUEST_TIMEOUT_MS')
    show_expired_subscriptions: bool = Field(default=False, alias='RIGHTCODE_SHOW_EXPIRED_SUBSCRIPTIONS')
    base_url: str = Field(default='https://right.codes', alias='RIGHTCODE_BASE_URL')
    config_path: str | None = Field(default=None, alias='RIGHTCODE_CONFIG_PATH')
    enable_scheduler: bool = Field(default=True, alias='ENABLE_SCHEDULER')
    log_level: str = Field(default='INFO', alias='LOG_LEVEL')
    cors_allow_origins: List[str] = Field(
        default_factory=lambda: ['http://localhost:5173', 'http://127.0.0.1:5173'],
        alias='CORS_ALLOW_ORIGINS',
    )

    model_config = SettingsConfigDict(
        env_file=('.env',), env_file_encoding='utf-8', extra='ignore', populate_by_name=True
    )


ConfigListener = Callable[[Settings, frozenset], Any]


class ConfigurationStore:
    """Holds the current settings snapshot and publishes changes to listeners."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._listeners: list[ConfigListener] = []
        self._path = Path(settings.config_path) if settings.config_path else None
        if self._path and self._path.exists():
            self._settings = self._load_overrides(self._path)

    @property
    def settings(self) -> Settings:
        return self._settings

    def subscribe(self, listener: ConfigListener) -> None:
        self._listeners.append(listener)

    def update(self, **changes: Any) -> frozenset:
        unknown = set(changes) - set(MUTABLE_FIELDS)
        if unknown:
            raise ValueError(f'Unsupported configuration keys: {sorted(unknown)}')
        changed = frozenset(
            key for key, value in changes.items() if getattr(self._settings, key) != value
        )
        if not changed:
            return changed
        updated = self._settings.model_copy(update={key: changes[key] for key in changed})
        # A failed write leaves the current snapshot in place.
        if self._path:
            self._persist(self._path, updated)
        self._settings = updated
        logger.debug('Configuration updated: %s', sorted(changed))
        for listener in list(self._listeners):
            listener(self._settings, changed)
        return changed

    def _load_overrides(self, path: Path) -> Settings:
        try:
            payload = json.loads(path.read_text(encoding='utf-8'))
        except (OSError, json.JSONDecodeError):
            logger.warning('Ignoring unreadable configuration file %s', path)
            return self._settings
        if not isinstance(payload, dict):
            logger.warning('Configuration file %s does not contain an object; ignoring', path)
            return self._settings
        overrides = {key: payload[key] for key in MUTABLE_FIELDS if key in payload}
        return self._settings.model_copy(update=overrides)

    def _persist(self, path: Path, settings: Settings) -> None:
        if path.parent and not path.parent.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
        payload = {key: getattr(settings, key) for key in MUTABLE_FIELDS}
        path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding='utf-8')


@lru_cache
def get_settings() -> Settings:
    return Settings()
