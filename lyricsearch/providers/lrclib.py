"""
LRCLIB adapter

Free synced lyrics database, no API key required.
Search: GET /api/search?q=...
Lyrics: GET /api/get?track_name=&artist_name=[&album_name=][&duration=]
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from ..exceptions import LyricsNotFoundError, ProviderResponseError
from .base import ProviderAdapter
from .fetch import CancellationToken
from .models import LyricContent, LyricReference, ProviderDefinition, ProviderSearchResponse, SearchCandidate


BASE_URL = "https://lrclib.net/api"


@dataclass(frozen=True)
class LrclibReference(LyricReference):
    provider = 'lrclib'

    artist: str
    title: str
    album: str = ''
    duration: Optional[int] = None
    lrc_id: Optional[int] = None


def _format_duration(seconds: Optional[float]) -> str:
    if not seconds:
        return ''
    seconds = int(seconds)
    return f"{seconds // 60}:{seconds % 60:02d}"


class LrclibAdapter(ProviderAdapter):
    definition = ProviderDefinition(
        id='lrclib',
        display_name='LRCLIB',
        requires_key=False,
        supported_features=('suggestions', 'search', 'lyrics', 'synced_lyrics'),
        description='Free synced lyrics database with nearly 3 million lyrics. No API key required.',
        homepage='https://lrclib.net',
    )
    reference_type = LrclibReference

    def _normalize_track(self, item: Dict[str, Any]) -> SearchCandidate:
        artist = item.get('artistName') or 'Unknown Artist'
        title = item.get('trackName') or 'Untitled'
        album = item.get('albumName') or ''
        duration = item.get('duration')
        formatted = _format_duration(duration)

        if album:
            snippet = f"{album} • {formatted}" if formatted else album
        else:
            snippet = formatted

        native_id = item.get('id')
        return SearchCandidate(
            id=f"lrclib:{native_id if native_id is not None else f'{artist}:{title}'}",
            provider='lrclib',
            title=title,
            artist=artist,
            album=album or None,
            snippet=snippet,
            payload=LrclibReference(
                artist=artist,
                title=title,
                album=album,
                duration=int(duration) if duration else None,
                lrc_id=native_id,
            ),
            metadata={
                'instrumental': bool(item.get('instrumental', False)),
                'duration': duration,
            },
        )

    async def _search(self, query: str, limit: int,
                      cancellation_token: Optional[CancellationToken]) -> ProviderSearchResponse:
        response = await self._get(f"{BASE_URL}/search", params={'q': query}, cancellation_token=cancellation_token)
        if not response.ok:
            return ProviderSearchResponse(errors=[f"LRCLIB search failed ({response.status})"])

        data = response.json()
        items = data[:limit] if isinstance(data, list) else []
        return ProviderSearchResponse(results=[self._normalize_track(item) for item in items])

    async def get_lyrics(self, reference: LyricReference,
                         cancellation_token: Optional[CancellationToken] = None) -> LyricContent:
        """
        Fetch lyrics for a track, preferring synced (LRC) text over plain text

        Raises:
            LyricsNotFoundError: LRCLIB has no entry or the entry has no lyric text
            ProviderResponseError: LRCLIB answered with another non-success status
        """
        ref = self.coerce_reference(reference)
        params = {
            'track_name': ref.title,
            'artist_name': ref.artist,
            'album_name': ref.album,
            'duration': ref.duration,
        }
        response = await self._get(f"{BASE_URL}/get", params=params, cancellation_token=cancellation_token)

        if response.status == 404:
            raise LyricsNotFoundError("LRCLIB could not find lyrics for this song.", details={'provider': self.id})
        if not response.ok:
            raise ProviderResponseError(
                f"LRCLIB lyrics request failed: {response.status} {response.text}",
                status=response.status,
                details={'provider': self.id},
            )

        data = response.json() or {}
        synced = (data.get('syncedLyrics') or '').strip()
        plain = (data.get('plainLyrics') or '').strip()
        if not synced and not plain:
            raise LyricsNotFoundError("LRCLIB returned no lyric content.", details={'provider': self.id})

        query_string = urlencode({'track_name': ref.title, 'artist_name': ref.artist})
        return LyricContent(
            provider=self.id,
            title=data.get('trackName') or ref.title,
            artist=data.get('artistName') or ref.artist,
            content=synced or plain,
            source_url=f"https://lrclib.net/search?{query_string}",
            credits='Instrumental' if data.get('instrumental') else None,
            metadata={
                'has_synced_lyrics': bool(synced),
                'duration': data.get('duration'),
                'instrumental': bool(data.get('instrumental', False)),
            },
        )
