"""
Vagalume adapter

Brazil-based catalog with international coverage. Search works without a
key but full lyric text needs one, so keyless searches return results
together with an explanatory error entry.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..exceptions import LyricsNotFoundError, ProviderResponseError
from .base import ProviderAdapter
from .fetch import CancellationToken
from .models import LyricContent, LyricReference, ProviderDefinition, ProviderSearchResponse, SearchCandidate


BASE_URL = "https://api.vagalume.com.br"
SITE_URL = "https://www.vagalume.com.br"
MAX_SEARCH_LIMIT = 20


@dataclass(frozen=True)
class VagalumeReference(LyricReference):
    provider = 'vagalume'

    artist: str
    title: str
    mus_id: Optional[str] = None


class VagalumeAdapter(ProviderAdapter):
    definition = ProviderDefinition(
        id='vagalume',
        display_name='Vagalume',
        requires_key=True,
        supported_features=('suggestions', 'search', 'lyrics'),
        description='Brazil-based catalog with international coverage; free API key available.',
        homepage='https://auth.vagalume.com.br/applications',
    )
    reference_type = VagalumeReference

    def _normalize_doc(self, doc: Dict[str, Any]) -> SearchCandidate:
        artist = doc.get('band') or 'Unknown Artist'
        title = doc.get('title') or 'Untitled'
        native_id = doc.get('id')
        path = doc.get('url')

        return SearchCandidate(
            id=f"vagalume:{native_id if native_id is not None else f'{artist}:{title}'}",
            provider='vagalume',
            title=title,
            artist=artist,
            payload=VagalumeReference(artist=artist, title=title, mus_id=native_id),
            metadata={
                'url': f"{SITE_URL}{path}" if path else None,
                'lang_id': doc.get('langID'),
            },
        )

    async def _search(self, query: str, limit: int,
                      cancellation_token: Optional[CancellationToken]) -> ProviderSearchResponse:
        key = await self.get_api_key()
        response = await self._get(
            f"{BASE_URL}/search.excerpt",
            params={'q': query, 'limit': min(limit, MAX_SEARCH_LIMIT), 'apikey': key},
            cancellation_token=cancellation_token,
        )
        if not response.ok:
            return ProviderSearchResponse(errors=[f"Vagalume search failed ({response.status})"])

        data = response.json() or {}
        docs = (data.get('response') or {}).get('docs')
        if not isinstance(docs, list):
            docs = []

        errors = [] if key else ["Vagalume lyrics require an API key to fetch full text."]
        return ProviderSearchResponse(
            results=[self._normalize_doc(doc) for doc in docs[:limit]],
            errors=errors,
        )

    async def get_lyrics(self, reference: LyricReference,
                         cancellation_token: Optional[CancellationToken] = None) -> LyricContent:
        """
        Fetch lyrics by song id, or by artist and title when the id is unknown

        Raises:
            MissingCredentialError: No Vagalume key stored
            LyricsNotFoundError: Vagalume reports the song as not found or has no text
        """
        ref = self.coerce_reference(reference)
        key = await self.require_api_key()

        if ref.mus_id:
            params = {'musid': ref.mus_id, 'apikey': key}
        else:
            params = {'art': ref.artist, 'mus': ref.title, 'apikey': key}

        response = await self._get(f"{BASE_URL}/search.php", params=params, cancellation_token=cancellation_token)
        if not response.ok:
            raise ProviderResponseError(
                f"Vagalume lyrics request failed: {response.status} {response.text}",
                status=response.status,
                details={'provider': self.id},
            )

        data = response.json() or {}
        if data.get('type') == 'notfound':
            raise LyricsNotFoundError("Vagalume could not find lyrics for this song.", details={'provider': self.id})

        songs = data.get('mus') if isinstance(data.get('mus'), list) else []
        entry = next((song for song in songs if song.get('text')), None)
        if entry is None:
            raise LyricsNotFoundError("Vagalume returned no lyric text.", details={'provider': self.id})

        artist_name = (data.get('art') or {}).get('name')
        first = songs[0]
        translations = [str(t.get('lang')) for t in first.get('translate') or [] if t.get('lang') is not None]

        return LyricContent(
            provider=self.id,
            title=entry.get('name') or artist_name or 'Unknown Title',
            artist=artist_name or 'Unknown Artist',
            content=entry['text'],
            source_url=f"{SITE_URL}{first['url']}" if first.get('url') else None,
            credits=', '.join(translations) or None,
        )
