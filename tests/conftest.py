"""Test configuration and fixtures"""

import asyncio
import json
import tempfile
from dataclasses import dataclass
from pathlib import Path

import pytest

from lyricsearch.config.credentials import MemoryCredentialStore
from lyricsearch.providers.base import ProviderAdapter
from lyricsearch.providers.fetch import FetchResponse
from lyricsearch.providers.models import (
    LyricContent,
    LyricReference,
    ProviderDefinition,
    ProviderSearchResponse,
    SearchCandidate,
)


@dataclass(frozen=True)
class FakeReference(LyricReference):
    provider = 'fake'

    key: str


def make_candidate(provider: str, title: str, artist: str, key: str = None) -> SearchCandidate:
    """Build a candidate the way an adapter would"""
    native = key or f"{title}:{artist}"
    return SearchCandidate(
        id=f"{provider}:{native}",
        provider=provider,
        title=title,
        artist=artist,
        payload=FakeReference(key=native),
    )


class FakeAdapter(ProviderAdapter):
    """
    In-memory adapter with configurable latency and failures

    Records every search call and whether a running search was cancelled.
    """

    reference_type = FakeReference

    def __init__(self, provider_id='fake', display_name=None, results=None, errors=None,
                 delay=0.0, fail=None, requires_key=False, lyrics='la la la', **kwargs):
        self.definition = ProviderDefinition(
            id=provider_id,
            display_name=display_name or provider_id.capitalize(),
            requires_key=requires_key,
        )
        super().__init__(**kwargs)
        self.results = list(results or [])
        self.errors = list(errors or [])
        self.delay = delay
        self.fail = fail
        self.lyrics = lyrics
        self.calls = []
        self.lyric_calls = []
        self.cancelled = False
        self.closed = False

    async def _search(self, query, limit, cancellation_token):
        self.calls.append((query, limit))
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        if self.fail is not None:
            raise self.fail
        return ProviderSearchResponse(results=list(self.results), errors=list(self.errors))

    async def get_lyrics(self, reference, cancellation_token=None):
        ref = self.coerce_reference(reference)
        self.lyric_calls.append(ref)
        if self.fail is not None:
            raise self.fail
        return LyricContent(provider=self.id, title=ref.key, artist='Someone', content=self.lyrics)

    async def aclose(self):
        self.closed = True


class ExplodingAdapter(FakeAdapter):
    """Adapter that breaks the never-raise contract of search()"""

    async def search(self, query, limit=10, cancellation_token=None):
        self.calls.append((query, limit))
        raise RuntimeError("adapter exploded")


class FakeHttpClient:
    """Stands in for ProviderHttpClient, answering from a url -> response map"""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.requests = []
        self.closed = False

    async def get(self, url, params=None, headers=None, timeout=None, cancellation_token=None):
        self.requests.append({'url': url, 'params': params, 'headers': headers})
        response = self.responses.get(url)
        if isinstance(response, Exception):
            raise response
        if response is None:
            return FetchResponse(status=404, url=url, text='')
        return response

    async def close(self):
        self.closed = True


def json_response(data, status=200, url='https://example.test') -> FetchResponse:
    return FetchResponse(status=status, url=url, text=json.dumps(data))


class FakeClock:
    """Manually advanced clock in seconds"""

    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def credentials():
    return MemoryCredentialStore()


@pytest.fixture
def fake_http():
    return FakeHttpClient()
