"""
Genius adapter

Uses the lyricsgenius client, which is synchronous. Each call runs in a
worker thread bounded by the same deadline and cancellation token as the
HTTP adapters; an aborted call is abandoned and its thread result discarded.
"""

import asyncio
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import lyricsgenius

from ..exceptions import LyricsNotFoundError
from .base import ProviderAdapter
from .fetch import DEFAULT_TIMEOUT, CancellationToken, run_with_timeout
from .models import LyricContent, LyricReference, ProviderDefinition, ProviderSearchResponse, SearchCandidate


MAX_PER_PAGE = 20

# Page chrome lyricsgenius leaves around the lyric text
_HEADER_PATTERN = re.compile(r'^[^\n]*?Lyrics(?=\[|\n)')
_FOOTER_PATTERN = re.compile(r'\d*Embed\s*$')


@dataclass(frozen=True)
class GeniusReference(LyricReference):
    provider = 'genius'

    song_id: int
    title: str = ''
    artist: str = ''
    url: str = ''


def strip_page_chrome(lyrics: str) -> str:
    """Remove the contributor header and trailing 'Embed' marker from scraped lyrics"""
    text = _HEADER_PATTERN.sub('', lyrics.strip(), count=1)
    text = _FOOTER_PATTERN.sub('', text)
    return text.strip()


class GeniusAdapter(ProviderAdapter):
    definition = ProviderDefinition(
        id='genius',
        display_name='Genius',
        requires_key=True,
        supported_features=('search', 'lyrics'),
        description='Large crowd-sourced lyrics catalog. Free API client access token required.',
        homepage='https://genius.com/api-clients',
    )
    reference_type = GeniusReference

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, **kwargs):
        super().__init__(**kwargs)
        self.timeout = timeout
        self._client: Optional[Tuple[str, lyricsgenius.Genius]] = None

    def _get_client(self, api_key: str) -> lyricsgenius.Genius:
        """Build the lyricsgenius client once per access token"""
        if self._client is None or self._client[0] != api_key:
            client = lyricsgenius.Genius(
                access_token=api_key,
                timeout=int(self.timeout),
                retries=0,
                remove_section_headers=False,
                skip_non_songs=True,
                verbose=False,
            )
            self._client = (api_key, client)
            self.logger.debug("Genius API client initialized")
        return self._client[1]

    async def _call(self, func: Callable[..., Any], *args,
                    cancellation_token: Optional[CancellationToken] = None, **kwargs) -> Any:
        async with self.throttler:
            return await run_with_timeout(
                asyncio.to_thread(func, *args, **kwargs),
                self.timeout,
                cancellation_token,
                description=f"genius:{func.__name__}",
            )

    def _normalize_hit(self, song: Dict[str, Any]) -> SearchCandidate:
        title = song.get('title') or 'Untitled'
        artist = (song.get('primary_artist') or {}).get('name') or song.get('artist_names') or 'Unknown Artist'
        song_id = song.get('id')

        return SearchCandidate(
            id=f"genius:{song_id if song_id is not None else f'{artist}:{title}'}",
            provider='genius',
            title=title,
            artist=artist,
            snippet=song.get('release_date_for_display') or '',
            payload=GeniusReference(song_id=song_id, title=title, artist=artist, url=song.get('url') or ''),
            metadata={
                'url': song.get('url'),
                'full_title': song.get('full_title'),
                'pageviews': (song.get('stats') or {}).get('pageviews'),
            },
        )

    async def _search(self, query: str, limit: int,
                      cancellation_token: Optional[CancellationToken]) -> ProviderSearchResponse:
        api_key = await self.require_api_key()
        client = self._get_client(api_key)

        response = await self._call(
            client.search_songs,
            query,
            per_page=min(limit, MAX_PER_PAGE),
            cancellation_token=cancellation_token,
        )
        hits = (response or {}).get('hits') or []
        songs = [hit.get('result') for hit in hits if hit.get('type', 'song') == 'song' and hit.get('result')]
        return ProviderSearchResponse(results=[self._normalize_hit(song) for song in songs[:limit]])

    async def get_lyrics(self, reference: LyricReference,
                         cancellation_token: Optional[CancellationToken] = None) -> LyricContent:
        ref = self.coerce_reference(reference)
        api_key = await self.require_api_key()
        client = self._get_client(api_key)

        lyrics = await self._call(client.lyrics, song_id=ref.song_id, cancellation_token=cancellation_token)
        content = strip_page_chrome(lyrics or '')
        if not content:
            raise LyricsNotFoundError("Genius returned no lyric content.", details={'provider': self.id})

        return LyricContent(
            provider=self.id,
            title=ref.title or 'Untitled',
            artist=ref.artist or 'Unknown Artist',
            content=content,
            source_url=ref.url or None,
            metadata={'song_id': ref.song_id},
        )
