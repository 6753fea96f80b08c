"""
Cancellable network calls for provider adapters

Every provider call runs under two stop conditions: an internal deadline and
an optional CancellationToken shared by all sources of one search. Whichever
fires first aborts the call, and both surface as the same RequestTimeoutError.
A caller therefore cannot tell "cancelled by me" from "source too slow"; the
orchestrator reports both as a timeout string in the provider summary.

Components:
- CancellationToken: cooperative cancellation flag backed by asyncio.Event
- run_with_timeout: deadline + token wrapper for any awaitable
- fetch_with_timeout: one HTTP GET over an aiohttp session
- ProviderHttpClient: owns the aiohttp session shared by all adapters
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Optional, TypeVar

import aiohttp

from ..exceptions import RequestTimeoutError, SearchCancelledError
from ..utils.logger import get_logger


DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "lyricsearch/0.1 (+https://github.com/lyricsearch/lyricsearch)"

T = TypeVar("T")

logger = get_logger(__name__)


class CancellationToken:
    """
    Cooperative cancellation flag

    One token may be handed to every in-flight call of a search; calling
    cancel() stops all of them together.
    """

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.is_cancelled:
            raise SearchCancelledError("Search was cancelled")


@dataclass
class FetchResponse:
    """Fully-read HTTP response"""
    status: int
    url: str
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        return json.loads(self.text)


def _timeout_error(timeout: float, description: Optional[str]) -> RequestTimeoutError:
    details = {'timeout_ms': int(timeout * 1000)}
    if description:
        details['target'] = description
    return RequestTimeoutError(f"Request timeout after {int(timeout * 1000)}ms", details=details)


async def run_with_timeout(
    awaitable: Awaitable[T],
    timeout: float = DEFAULT_TIMEOUT,
    cancellation_token: Optional[CancellationToken] = None,
    description: Optional[str] = None,
) -> T:
    """
    Await a call bounded by a deadline and an optional cancellation token

    Args:
        awaitable: Coroutine or future performing the call
        timeout: Deadline in seconds
        cancellation_token: External cancellation composed into the same stop condition
        description: Target shown in error details (usually the URL)

    Returns:
        The awaitable's result

    Raises:
        RequestTimeoutError: Deadline elapsed or the token was cancelled
        Exception: Any error raised by the call itself propagates unchanged
    """
    if cancellation_token is not None and cancellation_token.is_cancelled:
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise _timeout_error(timeout, description)

    task = asyncio.ensure_future(awaitable)
    waiters = {task}
    cancel_waiter = None
    if cancellation_token is not None:
        cancel_waiter = asyncio.ensure_future(cancellation_token.wait())
        waiters.add(cancel_waiter)

    try:
        done, _ = await asyncio.wait(waiters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        if cancel_waiter is not None:
            cancel_waiter.cancel()

    if task in done:
        return task.result()

    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    logger.debug(f"Aborted call after {timeout}s: {description or 'provider call'}")
    raise _timeout_error(timeout, description)


async def fetch_with_timeout(
    session: aiohttp.ClientSession,
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
    cancellation_token: Optional[CancellationToken] = None,
) -> FetchResponse:
    """
    Perform one GET request and read the body within the deadline

    Query parameters with None or empty values are dropped.

    Raises:
        RequestTimeoutError: Deadline elapsed or the token was cancelled
        aiohttp.ClientError: Transport failures propagate unchanged
    """
    clean_params = None
    if params:
        clean_params = {k: str(v) for k, v in params.items() if v is not None and v != ''}

    async def _request() -> FetchResponse:
        async with session.get(url, params=clean_params, headers=headers) as response:
            body = await response.text()
            return FetchResponse(status=response.status, url=str(response.url), text=body)

    return await run_with_timeout(_request(), timeout, cancellation_token, description=url)


class ProviderHttpClient:
    """
    HTTP client shared by the network-backed adapters

    The aiohttp session is created lazily on first use so the client can be
    constructed outside a running event loop.
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={'User-Agent': self.user_agent})
            self._owns_session = True
        return self._session

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> FetchResponse:
        return await fetch_with_timeout(
            self._get_session(),
            url,
            params=params,
            headers=headers,
            timeout=timeout or self.timeout,
            cancellation_token=cancellation_token,
        )

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
