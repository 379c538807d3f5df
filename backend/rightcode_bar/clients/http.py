from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Dict, Optional

import httpx

from ..errors import RequestError, RequestErrorKind

logger = logging.getLogger(__name__)

BODY_PREVIEW_CHARS = 200


async def http_fetch(
    url: str,
    *,
    method: str = 'GET',
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, Any]] = None,
    json_body: Any = None,
    timeout_ms: int,
    cancel_event: Optional[asyncio.Event] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Issue one request and return the raw body text.

    The request is aborted once ``timeout_ms`` elapses or ``cancel_event`` is set;
    both surface as ``RequestError(TIMEOUT)``. Non-2xx responses raise
    ``RequestError(HTTP_STATUS)`` after the start of the body has been logged.
    """
    timeout = max(timeout_ms, 1) / 1000
    async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
        request_task = asyncio.ensure_future(
            client.request(method, url, headers=headers, params=params, json=json_body)
        )
        cancel_task = asyncio.ensure_future(cancel_event.wait()) if cancel_event is not None else None
        try:
            waiting = {request_task} if cancel_task is None else {request_task, cancel_task}
            done, _ = await asyncio.wait(waiting, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
            if request_task not in done:
                reason = 'cancelled' if cancel_task is not None and cancel_task in done else 'timed out'
                logger.warning('%s %s %s after %sms', method, url, reason, timeout_ms)
                raise RequestError(RequestErrorKind.TIMEOUT)
            response = request_task.result()
        except httpx.TimeoutException as exc:
            logger.warning('%s %s timed out: %s', method, url, exc)
            raise RequestError(RequestErrorKind.TIMEOUT) from exc
        except httpx.HTTPError as exc:
            logger.warning('%s %s failed: %s', method, url, exc)
            raise RequestError(RequestErrorKind.NETWORK_FAILURE, detail=str(exc) or type(exc).__name__) from exc
        finally:
            for task in (request_task, cancel_task):
                if task is not None and not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError, httpx.HTTPError):
                        await task

    body = response.text
    if not response.is_success:
        logger.warning(
            'HTTP %s %s from %s: %s',
            response.status_code,
            response.reason_phrase,
            url,
            body[:BODY_PREVIEW_CHARS],
        )
        raise RequestError(RequestErrorKind.HTTP_STATUS, status=response.status_code)
    return body
