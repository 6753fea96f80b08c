"""Test cancellable provider calls"""

import asyncio

import pytest

from lyricsearch.exceptions import RequestTimeoutError, SearchCancelledError
from lyricsearch.providers.fetch import (
    CancellationToken,
    FetchResponse,
    ProviderHttpClient,
    fetch_with_timeout,
    run_with_timeout,
)


class FakeSessionResponse:
    def __init__(self, status, url, body):
        self.status = status
        self.url = url
        self.body = body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def text(self):
        return self.body


class FakeSession:
    """Minimal stand-in for aiohttp.ClientSession"""

    def __init__(self, status=200, body='{"ok": true}'):
        self.status = status
        self.body = body
        self.calls = []
        self.closed = False

    def get(self, url, params=None, headers=None):
        self.calls.append({'url': url, 'params': params, 'headers': headers})
        return FakeSessionResponse(self.status, url, self.body)

    async def close(self):
        self.closed = True


class TestCancellationToken:
    """Test the cooperative cancellation flag"""

    @pytest.mark.asyncio
    async def test_cancel(self):
        """Test cancel flips the flag and releases waiters"""
        token = CancellationToken()
        assert not token.is_cancelled
        token.raise_if_cancelled()

        token.cancel()
        assert token.is_cancelled
        await asyncio.wait_for(token.wait(), timeout=1)
        with pytest.raises(SearchCancelledError):
            token.raise_if_cancelled()


class TestRunWithTimeout:
    """Test deadline and token handling"""

    @pytest.mark.asyncio
    async def test_returns_result(self):
        """Test a fast call resolves normally"""
        async def answer():
            return 42

        assert await run_with_timeout(answer(), timeout=1) == 42

    @pytest.mark.asyncio
    async def test_deadline(self):
        """Test a slow call raises a timeout error"""
        with pytest.raises(RequestTimeoutError) as exc_info:
            await run_with_timeout(asyncio.sleep(5), timeout=0.05)
        assert str(exc_info.value) == "Request timeout after 50ms"
        assert exc_info.value.details['timeout_ms'] == 50

    @pytest.mark.asyncio
    async def test_token_cancellation_raises_timeout(self):
        """Test cancelling the token looks the same as a timeout"""
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.02, token.cancel)

        loop = asyncio.get_running_loop()
        start = loop.time()
        with pytest.raises(RequestTimeoutError):
            await run_with_timeout(asyncio.sleep(5), timeout=5, cancellation_token=token)
        assert loop.time() - start < 1

    @pytest.mark.asyncio
    async def test_already_cancelled_token(self):
        """Test a pre-cancelled token aborts before the call starts"""
        started = []

        async def call():
            started.append(True)

        token = CancellationToken()
        token.cancel()
        with pytest.raises(RequestTimeoutError):
            await run_with_timeout(call(), timeout=1, cancellation_token=token)
        assert started == []

    @pytest.mark.asyncio
    async def test_call_errors_propagate(self):
        """Test errors raised by the call are not converted"""
        async def boom():
            raise ValueError("bad payload")

        with pytest.raises(ValueError):
            await run_with_timeout(boom(), timeout=1, cancellation_token=CancellationToken())


class TestHttp:
    """Test the HTTP helpers over a fake session"""

    @pytest.mark.asyncio
    async def test_fetch_drops_empty_params(self):
        """Test None and empty params are not sent"""
        session = FakeSession()
        response = await fetch_with_timeout(
            session, 'https://lrclib.net/api/get',
            params={'track_name': 'Hello', 'album_name': '', 'duration': None, 'limit': 5},
        )

        assert session.calls[0]['params'] == {'track_name': 'Hello', 'limit': '5'}
        assert response.ok
        assert response.json() == {'ok': True}

    @pytest.mark.asyncio
    async def test_client_uses_given_session(self):
        """Test an injected session is used and not closed by the client"""
        session = FakeSession(status=404, body='')
        client = ProviderHttpClient(session=session)

        response = await client.get('https://api.lyrics.ovh/v1/a/b')
        await client.close()

        assert response.status == 404
        assert not response.ok
        assert not session.closed

    def test_fetch_response_ok_range(self):
        """Test only 2xx statuses are ok"""
        assert FetchResponse(status=204, url='u', text='').ok
        assert not FetchResponse(status=302, url='u', text='').ok
        assert not FetchResponse(status=500, url='u', text='').ok
