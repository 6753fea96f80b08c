"""
Search engine for lyricsearch

- query: title/artist inference from free-text queries
- scoring: multi-signal relevance scoring
- merger: ranking and cross-source deduplication
- cache: in-process TTL cache for complete payloads
- orchestrator: concurrent fan-out, partial snapshots, lyric retrieval
"""

from .cache import TTLCache
from .merger import ResultMerger
from .models import ProviderChunk, ProviderStatus, ProviderSummary, ScoredCandidate, SearchMeta, SearchResultPayload
from .orchestrator import SearchOrchestrator, build_orchestrator
from .query import QueryAnalysis, QueryAnalyzer, load_known_artists
from .scoring import RelevanceScorer, ScoreResult

__all__ = [
    'TTLCache',
    'ResultMerger',
    'ProviderChunk',
    'ProviderStatus',
    'ProviderSummary',
    'ScoredCandidate',
    'SearchMeta',
    'SearchResultPayload',
    'SearchOrchestrator',
    'build_orchestrator',
    'QueryAnalysis',
    'QueryAnalyzer',
    'load_known_artists',
    'RelevanceScorer',
    'ScoreResult',
]
