"""
Data models for the search engine

Ranking and aggregation types. Provider-facing types (ProviderDefinition,
SearchCandidate, LyricContent) live in lyricsearch.providers.models and are
re-exported here for convenience.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..providers.models import LyricContent, ProviderDefinition, SearchCandidate


@dataclass
class ScoredCandidate:
    """
    A candidate with its relevance score

    Attributes:
        candidate: The normalized result
        score: Total relevance score
        signals: Named score contributions
        is_exact: Exact match (exempt from cross-source deduplication)
        provider_index: 0-based rank of the candidate within its source
    """
    candidate: SearchCandidate
    score: float
    signals: Dict[str, Any] = field(default_factory=dict)
    is_exact: bool = False
    provider_index: int = 0


@dataclass
class ProviderChunk:
    """
    Outcome of one source call within a search

    Attributes:
        definition: Source descriptor
        order: Registration index of the source
        results: Candidates returned (empty on failure)
        errors: Human-readable error strings
        duration: Wall time of the call in milliseconds
    """
    definition: ProviderDefinition
    order: int
    results: List[SearchCandidate] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    duration: int = 0


@dataclass
class ProviderSummary:
    id: str
    display_name: str
    count: int = 0
    errors: List[str] = field(default_factory=list)
    duration: int = 0

    @classmethod
    def from_chunk(cls, chunk: ProviderChunk) -> 'ProviderSummary':
        return cls(
            id=chunk.definition.id,
            display_name=chunk.definition.display_name,
            count=len(chunk.results),
            errors=list(chunk.errors),
            duration=chunk.duration,
        )

    @property
    def available(self) -> bool:
        """A source with results is available even when it also reported errors"""
        return self.count > 0 or not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'display_name': self.display_name,
            'count': self.count,
            'errors': list(self.errors),
            'duration': self.duration,
        }


@dataclass
class SearchMeta:
    providers: List[ProviderSummary] = field(default_factory=list)


@dataclass
class SearchResultPayload:
    """
    Ranked search results plus per-source metadata

    Partial snapshots have is_complete False and their meta covers only the
    sources that have finished so far.
    """
    results: List[SearchCandidate] = field(default_factory=list)
    meta: SearchMeta = field(default_factory=SearchMeta)
    is_complete: bool = False

    def unavailable_providers(self) -> List[ProviderSummary]:
        """Sources that returned nothing and reported at least one error"""
        return [summary for summary in self.meta.providers if not summary.available]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'results': [candidate.to_dict() for candidate in self.results],
            'meta': {'providers': [summary.to_dict() for summary in self.meta.providers]},
            'is_complete': self.is_complete,
        }


@dataclass
class ProviderStatus:
    """A registered source and whether it is ready to use"""
    definition: ProviderDefinition
    configured: bool

    def to_dict(self) -> Dict[str, Any]:
        return {**self.definition.to_dict(), 'configured': self.configured}


__all__ = [
    'ScoredCandidate',
    'ProviderChunk',
    'ProviderSummary',
    'SearchMeta',
    'SearchResultPayload',
    'ProviderStatus',
    'SearchCandidate',
    'ProviderDefinition',
    'LyricContent',
]
