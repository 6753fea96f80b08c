"""
Hymnary.org adapter

Historic hymn database. Both search and text retrieval require a free API
key. The JSON shape of the search endpoint has varied over time, so records
are picked from several known envelope keys and field names are resolved
through fallbacks.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..exceptions import LyricsNotFoundError, MissingCredentialError, ProviderResponseError
from .base import ProviderAdapter
from .fetch import CancellationToken
from .models import LyricContent, LyricReference, ProviderDefinition, ProviderSearchResponse, SearchCandidate


BASE_URL = "https://hymnary.org"
MAX_SEARCH_SIZE = 20
SNIPPET_LENGTH = 140

RECORD_ENVELOPES = ('search', 'result', 'results', 'data')


@dataclass(frozen=True)
class HymnaryReference(LyricReference):
    provider = 'hymnary'

    hymn_id: str
    title: str = ''
    author: str = ''


def _first(record: Dict[str, Any], *names: str) -> Any:
    for name in names:
        value = record.get(name)
        if value:
            return value
    return None


def pick_records(payload: Any) -> List[Dict[str, Any]]:
    """Locate the record list in a Hymnary search response"""
    if not isinstance(payload, dict):
        return []
    if isinstance(payload.get('records'), list):
        return payload['records']
    for envelope in RECORD_ENVELOPES:
        inner = payload.get(envelope)
        if isinstance(inner, dict) and isinstance(inner.get('records'), list):
            return inner['records']
    return []


def _join_verses(verses: List[Any]) -> str:
    blocks = ['\n'.join(verse) if isinstance(verse, list) else str(verse) for verse in verses]
    return '\n\n'.join(blocks)


def pick_text(payload: Any) -> Optional[str]:
    """Locate the hymn text in a Hymnary text response"""
    if not isinstance(payload, dict):
        return None
    hymn = payload.get('hymn') if isinstance(payload.get('hymn'), dict) else {}

    for source in (payload, hymn):
        if isinstance(source.get('text'), str):
            return source['text']
    for source in (payload, hymn):
        if isinstance(source.get('verses'), list):
            return _join_verses(source['verses'])
    return None


class HymnaryAdapter(ProviderAdapter):
    definition = ProviderDefinition(
        id='hymnary',
        display_name='Hymnary.org',
        requires_key=True,
        supported_features=('suggestions', 'search', 'lyrics'),
        description='Historic hymn database with public-domain texts. Free API key required.',
        homepage='https://hymnary.org/help/api',
    )
    reference_type = HymnaryReference

    headers = {'Accept': 'application/json'}

    def _normalize_record(self, record: Dict[str, Any]) -> SearchCandidate:
        hymn_id = _first(record, 'id', 'hymnary_id', 'hymn_id', 'text_id')
        title = _first(record, 'title', 'tune', 'name') or 'Untitled Hymn'
        author = _first(record, 'author', 'text_author', 'composer', 'arranger') or 'Traditional'
        first_line = _first(record, 'first_line', 'incipit', 'text') or ''

        return SearchCandidate(
            id=f"hymnary:{hymn_id or title}",
            provider='hymnary',
            title=title,
            artist=author,
            snippet=str(first_line)[:SNIPPET_LENGTH],
            payload=HymnaryReference(hymn_id=str(hymn_id or ''), title=title, author=author),
            metadata={
                'year': _first(record, 'year', 'publication_date'),
                'tune': _first(record, 'tune', 'tune_name'),
                'meter': record.get('meter'),
            },
        )

    async def _search(self, query: str, limit: int,
                      cancellation_token: Optional[CancellationToken]) -> ProviderSearchResponse:
        key = await self.get_api_key()
        if not key:
            return ProviderSearchResponse(errors=["Add your Hymnary API key to search their catalog."])

        response = await self._get(
            f"{BASE_URL}/api/search",
            params={'q': query, 'k': key, 'm': 'texts', 'size': min(limit, MAX_SEARCH_SIZE), 'format': 'json'},
            headers=self.headers,
            cancellation_token=cancellation_token,
        )
        if not response.ok:
            return ProviderSearchResponse(
                errors=[f"Hymnary search failed ({response.status}): {response.text[:120]}"]
            )

        records = pick_records(response.json())[:limit]
        return ProviderSearchResponse(results=[self._normalize_record(record) for record in records])

    async def get_lyrics(self, reference: LyricReference,
                         cancellation_token: Optional[CancellationToken] = None) -> LyricContent:
        ref = self.coerce_reference(reference)
        if not ref.hymn_id:
            raise LyricsNotFoundError("Hymnary requires a hymn id to fetch lyrics.", details={'provider': self.id})

        key = await self.get_api_key()
        if not key:
            raise MissingCredentialError(
                "Add your Hymnary API key before loading hymn texts.",
                details={'provider': self.id},
            )

        hymn_path = quote(ref.hymn_id, safe='')
        response = await self._get(
            f"{BASE_URL}/api/text/hymn/{hymn_path}",
            params={'k': key, 'format': 'json'},
            headers=self.headers,
            cancellation_token=cancellation_token,
        )
        if not response.ok:
            raise ProviderResponseError(
                f"Hymnary lyrics request failed ({response.status}): {response.text[:120]}",
                status=response.status,
                details={'provider': self.id},
            )

        text = pick_text(response.json())
        if not text:
            raise LyricsNotFoundError(
                "Hymnary returned no hymn text for this selection.",
                details={'provider': self.id},
            )

        return LyricContent(
            provider=self.id,
            title=ref.title or 'Unknown Hymn',
            artist=ref.author or 'Traditional',
            content=text,
            source_url=f"{BASE_URL}/text/{hymn_path}",
        )
