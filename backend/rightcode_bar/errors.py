"""Error taxonomy shared by the client, parsers and the refresh pipeline."""

from __future__ import annotations

from enum import Enum


class BridgeError(Exception):
    """Base class for every failure the pipeline knows how to project."""


class RequestErrorKind(str, Enum):
    HTTP_STATUS = 'http_status'
    TIMEOUT = 'timeout'
    NETWORK_FAILURE = 'network_failure'


class RequestError(BridgeError):
    """Raised when an outbound request fails, times out or returns non-2xx."""

    def __init__(self, kind: RequestErrorKind, status: int | None = None, detail: str = '') -> None:
        self.kind = kind
        self.status = status
        self.detail = detail
        if kind is RequestErrorKind.HTTP_STATUS:
            message = f'Request failed: HTTP {status}'
        elif kind is RequestErrorKind.TIMEOUT:
            message = 'Request failed: timed out'
        else:
            message = f'Request failed: {detail or "network error"}'
        super().__init__(message)


class ParseErrorKind(str, Enum):
    NOT_AN_OBJECT = 'not_an_object'
    MISSING_FIELD = 'missing_field'
    INVALID_JSON = 'invalid_json'


class ParseError(BridgeError):
    """Raised when a response body cannot be decoded into its expected shape."""

    def __init__(self, kind: ParseErrorKind, field: str | None = None) -> None:
        self.kind = kind
        self.field = field
        if kind is ParseErrorKind.NOT_AN_OBJECT:
            message = 'Unexpected response: not an object'
        elif kind is ParseErrorKind.INVALID_JSON:
            message = 'Request failed: invalid JSON response'
        else:
            message = f'Unexpected response: missing field {field}'
        super().__init__(message)


class AuthMissingError(BridgeError):
    """Raised when no credential could be resolved from configuration."""

    def __init__(self) -> None:
        super().__init__('No RightCode credential configured')


class LoginErrorKind(str, Enum):
    INVALID_CREDENTIALS = 'invalid_credentials'
    FORBIDDEN = 'forbidden'
    REQUEST_FAILED = 'request_failed'
    INVALID_RESPONSE = 'invalid_response'


_LOGIN_MESSAGES = {
    LoginErrorKind.INVALID_CREDENTIALS: 'Invalid username or password',
    LoginErrorKind.FORBIDDEN: 'Login forbidden for this account',
    LoginErrorKind.REQUEST_FAILED: 'Login request failed',
    LoginErrorKind.INVALID_RESPONSE: 'Login response did not contain a token',
}


class LoginError(BridgeError):
    def __init__(self, kind: LoginErrorKind, status: int | None = None) -> None:
        self.kind = kind
        self.status = status
        message = _LOGIN_MESSAGES[kind]
        if status is not None:
            message = f'{message} (HTTP {status})'
        super().__init__(message)


def login_error_for_status(status: int) -> LoginError:
    if status in (400, 401, 422):
        return LoginError(LoginErrorKind.INVALID_CREDENTIALS, status)
    if status == 403:
        return LoginError(LoginErrorKind.FORBIDDEN, status)
    return LoginError(LoginErrorKind.REQUEST_FAILED, status)
