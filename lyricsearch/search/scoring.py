"""
Relevance scoring for search candidates

A candidate's score is built in strict priority stages. An exact title or
artist match returns immediately; every later stage only adds to the score:

    exact title                     1,000,000 (returns)
    exact artist                      900,000 (returns)
    title / artist contains query    +100,000 / +80,000
    inferred title / artist fuzzy    +300,000 x sim / +200,000 x sim
    meaningful word overlap           +10,000 x fraction (fraction > 0.5)
    bigram fallback (score < 50k)     +20,000 x title / +15,000 x artist
    year + lrclib, hymn + hymn source  +5,000 each
    position within its source           -100 x index

Each contribution is recorded as a named signal for diagnostics.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict

from ..providers.models import SearchCandidate
from .query import QueryAnalysis


EXACT_TITLE_SCORE = 1_000_000
EXACT_ARTIST_SCORE = 900_000
TITLE_CONTAINS_SCORE = 100_000
ARTIST_CONTAINS_SCORE = 80_000
INFERRED_TITLE_WEIGHT = 300_000
INFERRED_ARTIST_WEIGHT = 200_000
WORD_OVERLAP_WEIGHT = 10_000
BIGRAM_TITLE_WEIGHT = 20_000
BIGRAM_ARTIST_WEIGHT = 15_000
CONTEXT_BOOST = 5_000
POSITION_PENALTY = 100

FUZZY_THRESHOLD = 0.75
INFERRED_EXACT_THRESHOLD = 0.9
MAX_INFERRED_LENGTH_GAP = 5
WORD_OVERLAP_MIN_FRACTION = 0.5
MIN_MEANINGFUL_WORD_LENGTH = 3
BIGRAM_FALLBACK_CEILING = 50_000
BIGRAM_THRESHOLD = 0.3

YEAR_PATTERN = re.compile(r'(?<!\d)20(?:1\d|2[0-5])(?!\d)')
HYMN_PATTERN = re.compile(r'hymn|traditional|praise|gospel|spiritual')
CONTEMPORARY_PROVIDERS = frozenset({'lrclib'})
HYMN_PROVIDERS = frozenset({'openHymnal', 'hymnary'})


def levenshtein_distance(a: str, b: str, max_distance: int = 10) -> int:
    """
    Edit distance with early exit

    Returns max_distance + 1 as soon as the distance is known to exceed
    max_distance: up front when the lengths differ by more than that, or
    when every cell of the current row is already larger.
    """
    if abs(len(a) - len(b)) > max_distance:
        return max_distance + 1

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))

        if min(current) > max_distance:
            return max_distance + 1
        previous = current

    return previous[-1]


def fuzzy_similarity(a: str, b: str, threshold: float = FUZZY_THRESHOLD) -> float:
    """
    Normalized edit similarity in [0, 1], or 0 when below threshold

    Strings whose lengths differ by more than half of the longer one are
    never considered similar.
    """
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0

    longer = max(len(a), len(b))
    if abs(len(a) - len(b)) > longer * 0.5:
        return 0.0

    max_distance = math.ceil(longer * (1 - threshold))
    distance = levenshtein_distance(a, b, max_distance)
    if distance > max_distance:
        return 0.0

    similarity = 1 - distance / longer
    return similarity if similarity >= threshold else 0.0


def _bigrams(text: str):
    return [text[i:i + 2] for i in range(len(text) - 1)]


def bigram_recall(query: str, text: str) -> float:
    """
    Query bigrams found in text, divided by the number of bigrams in text

    The measure is asymmetric and can exceed 1.0 when the query is longer
    than the text.
    """
    if query == text:
        return 1.0
    if len(query) < 2 or len(text) < 2:
        return 0.0

    text_bigrams = _bigrams(text)
    present = set(text_bigrams)
    matches = sum(1 for bigram in _bigrams(query) if bigram in present)
    return matches / len(text_bigrams)


@dataclass
class ScoreResult:
    score: float
    signals: Dict[str, Any] = field(default_factory=dict)
    is_exact: bool = False


class RelevanceScorer:
    """Scores one candidate against an analyzed query"""

    def score(self, candidate: SearchCandidate, analysis: QueryAnalysis, provider_index: int = 0) -> ScoreResult:
        """
        Args:
            candidate: Normalized search result
            analysis: Output of QueryAnalyzer.analyze for the current query
            provider_index: 0-based rank of the candidate within its source

        Returns:
            ScoreResult with the total score, contributing signals and exactness
        """
        query = analysis.normalized_query
        title = (candidate.title or '').strip().lower()
        artist = (candidate.artist or '').strip().lower()

        if title == query:
            return ScoreResult(EXACT_TITLE_SCORE, {'exact_title_match': True}, True)
        if artist == query:
            return ScoreResult(EXACT_ARTIST_SCORE, {'exact_artist_match': True}, True)

        score = 0.0
        signals: Dict[str, Any] = {}
        is_exact = False

        if query in title:
            score += TITLE_CONTAINS_SCORE
            signals['title_contains_query'] = True
        if query in artist:
            score += ARTIST_CONTAINS_SCORE
            signals['artist_contains_query'] = True

        if analysis.inferred_title and analysis.inferred_artist:
            title_sim = self._inferred_similarity(title, analysis.inferred_title)
            artist_sim = self._inferred_similarity(artist, analysis.inferred_artist)
            if title_sim:
                score += INFERRED_TITLE_WEIGHT * title_sim
                signals['title_inferred_match'] = title_sim
            if artist_sim:
                score += INFERRED_ARTIST_WEIGHT * artist_sim
                signals['artist_inferred_match'] = artist_sim
            if title_sim >= INFERRED_EXACT_THRESHOLD and artist_sim >= INFERRED_EXACT_THRESHOLD:
                is_exact = True
        elif analysis.inferred_title:
            # title_inferred_match is only recorded by the branch above, so this never fires.
            # Kept pending a decision on whether title-only fuzzy matches should count as exact.
            if signals.get('title_inferred_match', 0) >= INFERRED_EXACT_THRESHOLD:
                is_exact = True

        meaningful = [
            word for word in analysis.words
            if len(word) >= MIN_MEANINGFUL_WORD_LENGTH and word not in analysis.stop_words
        ]
        if meaningful:
            fraction = sum(1 for word in meaningful if word in title) / len(meaningful)
            if fraction > WORD_OVERLAP_MIN_FRACTION:
                score += WORD_OVERLAP_WEIGHT * fraction
                signals['word_overlap'] = fraction

        if score < BIGRAM_FALLBACK_CEILING:
            title_bigram = bigram_recall(query, title)
            artist_bigram = bigram_recall(query, artist)
            if title_bigram > BIGRAM_THRESHOLD:
                score += BIGRAM_TITLE_WEIGHT * title_bigram
                signals['title_bigram_match'] = title_bigram
            if artist_bigram > BIGRAM_THRESHOLD:
                score += BIGRAM_ARTIST_WEIGHT * artist_bigram
                signals['artist_bigram_match'] = artist_bigram

        if YEAR_PATTERN.search(query) and candidate.provider in CONTEMPORARY_PROVIDERS:
            score += CONTEXT_BOOST
            signals['contemporary_boost'] = True
        if HYMN_PATTERN.search(query) and candidate.provider in HYMN_PROVIDERS:
            score += CONTEXT_BOOST
            signals['hymn_boost'] = True

        if provider_index:
            score -= POSITION_PENALTY * provider_index
            signals['position_penalty'] = POSITION_PENALTY * provider_index

        return ScoreResult(score, signals, is_exact)

    @staticmethod
    def _inferred_similarity(value: str, inferred: str) -> float:
        if abs(len(value) - len(inferred)) >= MAX_INFERRED_LENGTH_GAP:
            return 0.0
        return fuzzy_similarity(value, inferred)
