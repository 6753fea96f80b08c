"""
Open Hymnal adapter

Searches a bundled dataset of public-domain hymn texts, so it works offline
and never fails on the network. The dataset path can be overridden through
the providers.open_hymnal_data_path setting or OPEN_HYMNAL_DATA_PATH.
"""

import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from ..exceptions import LyricsNotFoundError
from .base import ProviderAdapter
from .fetch import CancellationToken
from .models import LyricContent, LyricReference, ProviderDefinition, ProviderSearchResponse, SearchCandidate


DEFAULT_DATA_PATH = Path(__file__).resolve().parent.parent / "data" / "open_hymnal.yaml"
SNIPPET_LENGTH = 140


@dataclass(frozen=True)
class OpenHymnalReference(LyricReference):
    provider = 'openHymnal'

    entry_id: str


def normalize_text(text: Any) -> str:
    """Lowercase and strip accents so 'Né' matches 'ne'"""
    decomposed = unicodedata.normalize('NFKD', str(text or '').lower())
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def _stanza_text(stanza: Any) -> str:
    return '\n'.join(str(line) for line in stanza) if isinstance(stanza, list) else str(stanza)


def collect_text(entry: Dict[str, Any]) -> str:
    """Join stanzas into lyric text, singing the refrain after every stanza"""
    stanzas = entry.get('lyrics') if isinstance(entry.get('lyrics'), list) else []
    blocks = [_stanza_text(stanza) for stanza in stanzas]

    refrain = entry.get('refrain')
    refrain_block = _stanza_text(refrain) if refrain else ''
    if refrain_block:
        with_refrain = []
        for block in blocks:
            with_refrain.extend([block, refrain_block])
        blocks = with_refrain

    return '\n\n'.join(blocks)


class OpenHymnalAdapter(ProviderAdapter):
    definition = ProviderDefinition(
        id='openHymnal',
        display_name='Open Hymnal',
        requires_key=False,
        supported_features=('suggestions', 'search', 'lyrics'),
        description='Bundled public-domain hymn texts sourced from the Open Hymnal Project.',
        homepage='https://openhymnal.org/',
    )
    reference_type = OpenHymnalReference

    def __init__(self, data_path: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.data_path = Path(data_path).expanduser() if data_path else DEFAULT_DATA_PATH
        self._dataset: Optional[List[Dict[str, Any]]] = None

    def load_dataset(self) -> List[Dict[str, Any]]:
        """
        Load the hymn dataset once

        A missing or unreadable file yields an empty dataset and a warning;
        searches then report the dataset as unavailable.
        """
        if self._dataset is not None:
            return self._dataset

        try:
            with open(self.data_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            self.logger.warning(f"Failed to load Open Hymnal dataset from {self.data_path}: {e}")
            data = None

        self._dataset = [entry for entry in data if isinstance(entry, dict)] if isinstance(data, list) else []
        self.logger.debug(f"Loaded {len(self._dataset)} Open Hymnal entries")
        return self._dataset

    @staticmethod
    def _haystack(entry: Dict[str, Any]) -> str:
        parts = [entry.get('title'), entry.get('author')]
        parts.extend(entry.get('topics') or [])
        parts.extend(_stanza_text(stanza) for stanza in entry.get('lyrics') or [])
        return ' '.join(normalize_text(part) for part in parts if part)

    def _normalize_entry(self, entry: Dict[str, Any]) -> SearchCandidate:
        entry_id = str(entry.get('id') or entry.get('title'))
        stanzas = entry.get('lyrics') or []
        snippet = _stanza_text(stanzas[0])[:SNIPPET_LENGTH] if stanzas else ''

        return SearchCandidate(
            id=f"openHymnal:{entry_id}",
            provider='openHymnal',
            title=entry.get('title') or 'Untitled Hymn',
            artist=entry.get('author') or 'Traditional',
            snippet=snippet,
            payload=OpenHymnalReference(entry_id=entry_id),
            metadata={
                'year': entry.get('year'),
                'meter': entry.get('meter'),
                'topics': list(entry.get('topics') or []),
            },
        )

    async def _search(self, query: str, limit: int,
                      cancellation_token: Optional[CancellationToken]) -> ProviderSearchResponse:
        dataset = self.load_dataset()
        if not dataset:
            return ProviderSearchResponse(errors=["Open Hymnal dataset is unavailable."])

        normalized = normalize_text(query)
        words = normalized.split()
        matches = []
        for entry in dataset:
            haystack = self._haystack(entry)
            if normalized in haystack or all(word in haystack for word in words):
                matches.append(entry)

        return ProviderSearchResponse(results=[self._normalize_entry(entry) for entry in matches[:limit]])

    async def get_lyrics(self, reference: LyricReference,
                         cancellation_token: Optional[CancellationToken] = None) -> LyricContent:
        ref = self.coerce_reference(reference)
        target = next(
            (entry for entry in self.load_dataset()
             if str(entry.get('id')) == ref.entry_id or entry.get('title') == ref.entry_id),
            None,
        )
        if target is None:
            raise LyricsNotFoundError("Open Hymnal entry not found.", details={'provider': self.id})

        content = collect_text(target)
        if not content:
            raise LyricsNotFoundError("Open Hymnal entry has no lyric text.", details={'provider': self.id})

        return LyricContent(
            provider=self.id,
            title=target.get('title') or 'Untitled Hymn',
            artist=target.get('author') or 'Traditional',
            content=content,
            source_url='https://openhymnal.org/',
            metadata={
                'meter': target.get('meter'),
                'year': target.get('year'),
                'topics': list(target.get('topics') or []),
            },
        )
