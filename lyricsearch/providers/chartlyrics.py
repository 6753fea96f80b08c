"""
ChartLyrics adapter

Free SOAP/XML lyrics API. The search endpoint takes separate artist and song
fields, so a free-text query is split at its word midpoint: the first half
becomes the song and the second half the artist.
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..exceptions import LyricsNotFoundError, ProviderResponseError
from .base import ProviderAdapter
from .fetch import CancellationToken
from .models import LyricContent, LyricReference, ProviderDefinition, ProviderSearchResponse, SearchCandidate


BASE_URL = "http://api.chartlyrics.com/apiv1.asmx"


@dataclass(frozen=True)
class ChartLyricsReference(LyricReference):
    provider = 'chartlyrics'

    artist: str
    title: str
    lyric_id: str
    checksum: str


def split_query(query: str) -> Tuple[str, str]:
    """
    Split a free-text query into (song, artist) at the word midpoint

    Single-word queries are treated as a song with no artist.
    """
    parts = query.split()
    if len(parts) < 2:
        return query, ''
    midpoint = len(parts) // 2
    return ' '.join(parts[:midpoint]), ' '.join(parts[midpoint:])


def _local_name(tag: str) -> str:
    return tag.rsplit('}', 1)[-1]


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _local_name(child.tag) == name:
            text = (child.text or '').strip()
            return text or None
    return None


def parse_search_results(xml_text: str) -> List[Dict[str, Optional[str]]]:
    """
    Extract complete SearchLyricResult records from a SearchLyric response

    Records missing an id, checksum, song or artist are skipped (the service
    pads its result list with empty entries).
    """
    root = ET.fromstring(xml_text)
    results = []
    for element in root.iter():
        if _local_name(element.tag) != 'SearchLyricResult':
            continue

        record = {
            'lyric_id': _child_text(element, 'LyricId'),
            'checksum': _child_text(element, 'LyricChecksum'),
            'song': _child_text(element, 'Song'),
            'artist': _child_text(element, 'Artist'),
            'song_url': _child_text(element, 'SongUrl'),
        }
        if record['lyric_id'] and record['checksum'] and record['song'] and record['artist']:
            results.append(record)

    return results


def parse_lyric(xml_text: str) -> Dict[str, Optional[str]]:
    root = ET.fromstring(xml_text)
    return {
        'lyric': _child_text(root, 'Lyric'),
        'song': _child_text(root, 'LyricSong'),
        'artist': _child_text(root, 'LyricArtist'),
        'url': _child_text(root, 'LyricUrl'),
    }


class ChartLyricsAdapter(ProviderAdapter):
    definition = ProviderDefinition(
        id='chartlyrics',
        display_name='ChartLyrics',
        requires_key=False,
        supported_features=('suggestions', 'search', 'lyrics'),
        description='Free lyrics API with good coverage of popular songs. No API key required.',
        homepage='http://www.chartlyrics.com',
    )
    reference_type = ChartLyricsReference

    def _normalize_track(self, item: Dict[str, Optional[str]]) -> SearchCandidate:
        artist = item['artist'] or 'Unknown Artist'
        title = item['song'] or 'Untitled'
        return SearchCandidate(
            id=f"chartlyrics:{item['lyric_id']}",
            provider='chartlyrics',
            title=title,
            artist=artist,
            payload=ChartLyricsReference(
                artist=artist,
                title=title,
                lyric_id=item['lyric_id'],
                checksum=item['checksum'],
            ),
            metadata={'song_url': item.get('song_url')},
        )

    async def _search(self, query: str, limit: int,
                      cancellation_token: Optional[CancellationToken]) -> ProviderSearchResponse:
        song, artist = split_query(query)
        response = await self._get(
            f"{BASE_URL}/SearchLyric",
            params={'artist': artist, 'song': song},
            cancellation_token=cancellation_token,
        )
        if not response.ok:
            return ProviderSearchResponse(errors=[f"ChartLyrics search failed ({response.status})"])

        items = parse_search_results(response.text)
        return ProviderSearchResponse(results=[self._normalize_track(item) for item in items[:limit]])

    async def get_lyrics(self, reference: LyricReference,
                         cancellation_token: Optional[CancellationToken] = None) -> LyricContent:
        ref = self.coerce_reference(reference)
        response = await self._get(
            f"{BASE_URL}/GetLyric",
            params={'lyricId': ref.lyric_id, 'lyricCheckSum': ref.checksum},
            cancellation_token=cancellation_token,
        )
        if not response.ok:
            raise ProviderResponseError(
                f"ChartLyrics lyrics request failed: {response.status} {response.text}",
                status=response.status,
                details={'provider': self.id},
            )

        parsed = parse_lyric(response.text)
        if not parsed['lyric']:
            raise LyricsNotFoundError("ChartLyrics returned no lyric content.", details={'provider': self.id})

        return LyricContent(
            provider=self.id,
            title=parsed['song'] or ref.title,
            artist=parsed['artist'] or ref.artist,
            content=parsed['lyric'],
            source_url=parsed['url'] or "http://www.chartlyrics.com",
        )
