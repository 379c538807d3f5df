from __future__ import annotations

import asyncio
from typing import Dict, Optional

import httpx

from ..config import Settings
from ..errors import (
    AuthMissingError,
    LoginError,
    LoginErrorKind,
    ParseError,
    RequestError,
    RequestErrorKind,
    login_error_for_status,
)
from ..models.account import LoginResult, ResolvedAuth
from ..models.subscription import SubscriptionListResult
from ..models.usage import Granularity, UsageStats
from ..services.parsers import decode_json, parse_login_result, parse_subscription_list, parse_usage_stats
from .http import http_fetch

DEFAULT_USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:146.0) Gecko/20100101 Firefox/146.0'


class RightCodeClient:
    """Thin wrapper around the RightCode billing API."""

    SUBSCRIPTIONS_PATH = '/subscriptions/list'
    USAGE_STATS_PATH = '/api/usage/stats'
    LOGIN_PATH = '/auth/login'

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._base_url = settings.base_url.rstrip('/')
        self._transport = transport
        self._headers = {
            'Accept': '*/*',
            'Content-Type': 'application/json',
            'User-Agent': DEFAULT_USER_AGENT,
            'Referer': f'{self._base_url}/dashboard',
        }

    def _auth_headers(self, auth: ResolvedAuth) -> Dict[str, str]:
        if not auth.configured:
            raise AuthMissingError()
        return {**self._headers, 'Authorization': f'Bearer {auth.secret}'}

    async def fetch_subscriptions(
        self,
        auth: ResolvedAuth,
        timeout_ms: int,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> SubscriptionListResult:
        url = self._base_url + self.SUBSCRIPTIONS_PATH
        body = await http_fetch(
            url,
            headers=self._auth_headers(auth),
            timeout_ms=timeout_ms,
            cancel_event=cancel_event,
            transport=self._transport,
        )
        return parse_subscription_list(decode_json(body, url))

    async def fetch_usage_stats(
        self,
        auth: ResolvedAuth,
        start_date: str,
        end_date: str,
        granularity: Granularity,
        timeout_ms: int,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> UsageStats:
        url = self._base_url + self.USAGE_STATS_PATH
        params = {
            'start_date': start_date,
            'end_date': end_date,
            'granularity': Granularity(granularity).value,
        }
        body = await http_fetch(
            url,
            headers=self._auth_headers(auth),
            params=params,
            timeout_ms=timeout_ms,
            cancel_event=cancel_event,
            transport=self._transport,
        )
        return parse_usage_stats(decode_json(body, url))

    async def login(self, username: str, password: str, timeout_ms: int) -> LoginResult:
        """Exchange username/password for a user token, mapping failures to ``LoginError``."""
        url = self._base_url + self.LOGIN_PATH
        try:
            body = await http_fetch(
                url,
                method='POST',
                headers=self._headers,
                json_body={'username': username, 'password': password},
                timeout_ms=timeout_ms,
                transport=self._transport,
            )
        except RequestError as exc:
            if exc.kind is RequestErrorKind.HTTP_STATUS and exc.status is not None:
                raise login_error_for_status(exc.status) from exc
            raise LoginError(LoginErrorKind.REQUEST_FAILED) from exc
        try:
            return parse_login_result(decode_json(body, url))
        except ParseError as exc:
            raise LoginError(LoginErrorKind.INVALID_RESPONSE) from exc
