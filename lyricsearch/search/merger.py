"""
Merging and ranking of per-source result chunks

Candidates from every chunk are scored, concatenated in chunk order, stably
sorted by descending score and deduplicated on (title, artist). Exact
matches carry the provider in their key, so the same exact song from two
sources is kept once per source.
"""

from typing import Iterable, List, Optional

from ..providers.models import SearchCandidate
from .models import ProviderChunk, ScoredCandidate
from .query import QueryAnalysis, QueryAnalyzer
from .scoring import RelevanceScorer


def dedup_key(scored: ScoredCandidate) -> str:
    candidate = scored.candidate
    key = f"{(candidate.title or '').lower()}|{(candidate.artist or '').lower()}"
    if scored.is_exact:
        key = f"{key}|{candidate.provider}"
    return key


class ResultMerger:
    """
    Scores, ranks and deduplicates search candidates

    Args:
        analyzer: Query analyzer (defaults to one without known artists)
        scorer: Relevance scorer
    """

    def __init__(self, analyzer: Optional[QueryAnalyzer] = None, scorer: Optional[RelevanceScorer] = None):
        self.analyzer = analyzer or QueryAnalyzer()
        self.scorer = scorer or RelevanceScorer()

    def score_chunks(self, chunks: Iterable[ProviderChunk], analysis: QueryAnalysis) -> List[ScoredCandidate]:
        """Score every candidate, in chunk order then source rank order"""
        scored = []
        for chunk in chunks:
            for index, candidate in enumerate(chunk.results):
                result = self.scorer.score(candidate, analysis, index)
                scored.append(ScoredCandidate(
                    candidate=candidate,
                    score=result.score,
                    signals=result.signals,
                    is_exact=result.is_exact,
                    provider_index=index,
                ))
        return scored

    def rank(self, chunks: Iterable[ProviderChunk], query: str) -> List[ScoredCandidate]:
        """
        Score and sort all candidates without deduplication or limit

        Equal scores keep chunk order, then source rank order.
        """
        analysis = self.analyzer.analyze(query)
        return sorted(self.score_chunks(chunks, analysis), key=lambda item: item.score, reverse=True)

    def merge(self, chunks: Iterable[ProviderChunk], query: str, limit: int = 10) -> List[SearchCandidate]:
        """
        Produce the final ranked result list

        Args:
            chunks: Completed chunks ordered by source registration
            query: Raw user query
            limit: Maximum number of results

        Returns:
            Up to limit candidates, best first, without duplicates
        """
        results: List[SearchCandidate] = []
        seen = set()

        for scored in self.rank(chunks, query):
            if len(results) >= limit:
                break
            key = dedup_key(scored)
            if key in seen:
                continue
            seen.add(key)
            results.append(scored.candidate)

        return results
