"""Test ranking and cross-source deduplication"""

from lyricsearch.providers.models import ProviderDefinition
from lyricsearch.search.merger import ResultMerger, dedup_key
from lyricsearch.search.models import ProviderChunk, ScoredCandidate

from conftest import make_candidate


def chunk(provider_id, order, *candidates):
    return ProviderChunk(
        definition=ProviderDefinition(id=provider_id, display_name=provider_id),
        order=order,
        results=list(candidates),
    )


class TestDedupKey:
    """Test the deduplication key"""

    def test_non_exact_key_ignores_provider(self):
        """Test title|artist key, case-insensitive"""
        scored = ScoredCandidate(candidate=make_candidate('lrclib', 'Hello', 'Adele'), score=10)
        assert dedup_key(scored) == 'hello|adele'

    def test_exact_key_includes_provider(self):
        """Test exact matches are kept per source"""
        scored = ScoredCandidate(candidate=make_candidate('lrclib', 'Hello', 'Adele'), score=10, is_exact=True)
        assert dedup_key(scored) == 'hello|adele|lrclib'


class TestResultMerger:
    """Test merge ordering and dedup"""

    def test_non_exact_duplicates_collapse(self):
        """Test the same song from two sources appears once when not exact"""
        chunks = [
            chunk('lrclib', 0, make_candidate('lrclib', 'Amazing Grace', 'John Newton')),
            chunk('chartlyrics', 1, make_candidate('chartlyrics', 'amazing grace', 'JOHN NEWTON')),
        ]
        results = ResultMerger().merge(chunks, "grace")

        assert len(results) == 1
        assert results[0].provider == 'lrclib'

    def test_exact_duplicates_kept_per_source(self):
        """Test exact matches from two sources both survive"""
        chunks = [
            chunk('lrclib', 0, make_candidate('lrclib', 'Amazing Grace', 'John Newton')),
            chunk('chartlyrics', 1, make_candidate('chartlyrics', 'Amazing Grace', 'John Newton')),
        ]
        results = ResultMerger().merge(chunks, "amazing grace")

        assert [r.provider for r in results] == ['lrclib', 'chartlyrics']

    def test_ranked_by_score(self):
        """Test a later source's better match ranks first"""
        chunks = [
            chunk('lrclib', 0, make_candidate('lrclib', 'Grace Like Rain', 'Todd Agnew')),
            chunk('openHymnal', 1, make_candidate('openHymnal', 'Amazing Grace', 'John Newton')),
        ]
        results = ResultMerger().merge(chunks, "amazing grace")
        assert results[0].title == 'Amazing Grace'

    def test_ties_keep_chunk_order(self):
        """Test equal scores are ordered by source registration"""
        chunks = [
            chunk('first', 0, make_candidate('first', 'Alpha', 'One')),
            chunk('second', 1, make_candidate('second', 'Beta', 'Two')),
        ]
        results = ResultMerger().merge(chunks, "zzz")
        assert [r.provider for r in results] == ['first', 'second']

    def test_limit(self):
        """Test output is capped at limit"""
        candidates = [make_candidate('lrclib', f'Song {i}', 'Artist', key=str(i)) for i in range(8)]
        results = ResultMerger().merge([chunk('lrclib', 0, *candidates)], "song", limit=3)
        assert [r.title for r in results] == ['Song 0', 'Song 1', 'Song 2']

    def test_rank_records_provider_index(self):
        """Test each candidate keeps its rank within its source"""
        candidates = [make_candidate('lrclib', f'Song {i}', 'Artist', key=str(i)) for i in range(3)]
        ranked = ResultMerger().rank([chunk('lrclib', 0, *candidates)], "song")
        assert [item.provider_index for item in ranked] == [0, 1, 2]
