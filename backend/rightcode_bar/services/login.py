"""Interactive login and add-token flows.

A flow is a fixed sequence of prompt steps. The prompt callable returns the
entered value, or ``None`` when the user dismisses it, which aborts the whole
flow without touching configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional, Sequence

from ..models.account import AccountCredential
from .accounts import normalize_secret
from .bridge import BridgeService
from .migration import next_free_alias

logger = logging.getLogger(__name__)

Validator = Callable[[str], Optional[str]]


def _required(label: str) -> Validator:
    def validate(value: str) -> Optional[str]:
        return None if value.strip() else f'{label} must not be empty'

    return validate


def _token_required(value: str) -> Optional[str]:
    return None if normalize_secret(value) else 'Token must not be empty'


@dataclass(frozen=True)
class PromptStep:
    key: str
    title: str
    prompt: str
    password: bool = False
    default: str = ''
    validate: Optional[Validator] = None


Prompter = Callable[[PromptStep], Awaitable[Optional[str]]]

LOGIN_STEPS = (
    PromptStep('username', 'RightCode login', 'Username or email', validate=_required('Username')),
    PromptStep('password', 'RightCode login', 'Password', password=True, validate=_required('Password')),
    PromptStep('alias', 'RightCode account', 'Name for this account'),
)

ADD_TOKEN_STEPS = (
    PromptStep('alias', 'RightCode account', 'Name for this account'),
    PromptStep(
        'token',
        'RightCode token',
        'Paste your token (a "Bearer " prefix is fine)',
        password=True,
        validate=_token_required,
    ),
)


async def collect(steps: Sequence[PromptStep], prompt: Prompter) -> Optional[dict[str, str]]:
    values: dict[str, str] = {}
    for step in steps:
        value = await prompt(step)
        if value is None:
            logger.info('%s cancelled at %r', step.title, step.key)
            return None
        if step.validate is not None:
            problem = step.validate(value)
            if problem:
                logger.info('%s rejected %r: %s', step.title, step.key, problem)
                return None
        values[step.key] = (value if step.password else value.strip()) or step.default
    return values


async def login_with_password(
    bridge: BridgeService,
    username: str,
    password: str,
    alias: Optional[str] = None,
) -> AccountCredential:
    """Log in, store the returned token under ``alias`` and make it active."""
    result = await bridge.client.login(username, password, bridge.settings.request_timeout_ms)
    chosen = (alias or '').strip() or result.username or username.strip()
    credential = AccountCredential(alias=chosen, secret=result.user_token)
    bridge.save_account(credential, activate=True)
    logger.info('Logged in as %s; saved account %r', result.username or username, chosen)
    return credential


async def run_login_flow(bridge: BridgeService, prompt: Prompter) -> Optional[AccountCredential]:
    values = await collect(LOGIN_STEPS, prompt)
    if values is None:
        return None
    return await login_with_password(bridge, values['username'], values['password'], values.get('alias'))


async def run_add_token_flow(bridge: BridgeService, prompt: Prompter) -> Optional[AccountCredential]:
    alias_step = replace(ADD_TOKEN_STEPS[0], default=next_free_alias(set(bridge.account_aliases())))
    values = await collect((alias_step, *ADD_TOKEN_STEPS[1:]), prompt)
    if values is None:
        return None
    credential = AccountCredential(alias=values['alias'], secret=normalize_secret(values['token']))
    bridge.save_account(credential, activate=True)
    return credential
