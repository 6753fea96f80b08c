"""
Lyrics.ovh adapter

Free public lyrics API backed by the Deezer catalog.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote, quote_plus

from ..exceptions import LyricsNotFoundError, ProviderResponseError
from .base import ProviderAdapter
from .fetch import CancellationToken
from .models import LyricContent, LyricReference, ProviderDefinition, ProviderSearchResponse, SearchCandidate


BASE_URL = "https://api.lyrics.ovh"


@dataclass(frozen=True)
class LyricsOvhReference(LyricReference):
    provider = 'lyricsOvh'

    artist: str
    title: str


class LyricsOvhAdapter(ProviderAdapter):
    definition = ProviderDefinition(
        id='lyricsOvh',
        display_name='Lyrics.ovh',
        requires_key=False,
        supported_features=('suggestions', 'search', 'lyrics'),
        description='Free public lyrics API powered by Deezer catalog.',
        homepage='https://lyricsovh.docs.apiary.io/',
    )
    reference_type = LyricsOvhReference

    def _normalize_track(self, item: Dict[str, Any]) -> SearchCandidate:
        artist_info = item.get('artist') or {}
        album_info = item.get('album') or {}
        artist = artist_info.get('name') or 'Unknown Artist'
        title = item.get('title') or 'Untitled'
        album = album_info.get('title') or ''
        native_id = item.get('id')

        return SearchCandidate(
            id=f"lyricsOvh:{native_id if native_id is not None else f'{artist}:{title}'}",
            provider='lyricsOvh',
            title=title,
            artist=artist,
            album=album or None,
            snippet=album,
            payload=LyricsOvhReference(artist=artist, title=title),
            metadata={
                'artist_id': artist_info.get('id'),
                'album_id': album_info.get('id'),
                'deezer_link': item.get('link'),
            },
        )

    async def _search(self, query: str, limit: int,
                      cancellation_token: Optional[CancellationToken]) -> ProviderSearchResponse:
        url = f"{BASE_URL}/suggest/{quote(query, safe='')}"
        response = await self._get(url, cancellation_token=cancellation_token)
        if not response.ok:
            return ProviderSearchResponse(errors=[f"lyrics.ovh suggest failed with status {response.status}"])

        data = response.json() or {}
        items = data.get('data') if isinstance(data, dict) else None
        if not isinstance(items, list):
            items = []
        return ProviderSearchResponse(results=[self._normalize_track(item) for item in items[:limit]])

    async def get_lyrics(self, reference: LyricReference,
                         cancellation_token: Optional[CancellationToken] = None) -> LyricContent:
        ref = self.coerce_reference(reference)
        url = f"{BASE_URL}/v1/{quote(ref.artist, safe='')}/{quote(ref.title, safe='')}"
        response = await self._get(url, cancellation_token=cancellation_token)

        if response.status == 404:
            raise LyricsNotFoundError("lyrics.ovh could not find lyrics for this song.", details={'provider': self.id})
        if not response.ok:
            raise ProviderResponseError(
                f"lyrics.ovh lyrics request failed: {response.status} {response.text}",
                status=response.status,
                details={'provider': self.id},
            )

        data = response.json() or {}
        lyrics = (data.get('lyrics') or '').strip()
        if not lyrics:
            raise LyricsNotFoundError("lyrics.ovh returned empty lyrics", details={'provider': self.id})

        return LyricContent(
            provider=self.id,
            title=ref.title,
            artist=ref.artist,
            content=lyrics,
            source_url=f"https://www.google.com/search?q={quote_plus(f'{ref.title} {ref.artist} lyrics')}",
            credits=data.get('credits'),
        )
