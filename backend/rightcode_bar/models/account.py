from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

NOT_CONFIGURED_LABEL = 'Not configured'


class AccountCredential(BaseModel):
    model_config = ConfigDict(frozen=True)

    alias: str = Field(min_length=1)
    secret: str = Field(min_length=1, repr=False)


class ResolvedAuth(BaseModel):
    """The credential that is active for one pipeline run."""

    model_config = ConfigDict(frozen=True)

    secret: str = Field(default='', repr=False)
    account_label: str = NOT_CONFIGURED_LABEL
    account_alias: Optional[str] = None

    @property
    def configured(self) -> bool:
        return bool(self.secret)


class AccountSummary(BaseModel):
    alias: str
    active: bool = False


class ActiveAccountRequest(BaseModel):
    alias: str = Field(min_length=1, description='Alias of the account to activate')


class LoginRequest(BaseModel):
    alias: Optional[str] = Field(default=None, description='Alias to store the credential under')
    username: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)


class LoginResult(BaseModel):
    user_token: str = Field(repr=False)
    username: Optional[str] = None
    email: Optional[str] = None
