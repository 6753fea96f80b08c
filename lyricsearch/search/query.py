"""
Query analysis

Turns a raw query into normalized tokens plus an inferred (title, artist)
pair. Inference order:

1. "<title> by <artist>", split at the last " by "
2. "<title> - <artist>", split at the last " - "
3. A known artist name appearing anywhere in the query; the title is the
   query with the artist's words removed
4. Otherwise the whole normalized query is the title
"""

from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Iterable, List, Optional, Tuple

import yaml

from ..utils.logger import get_logger


STOP_WORDS: FrozenSet[str] = frozenset({'the', 'a', 'an', 'of', 'to', 'in', 'by', 'with', 'for'})
SEPARATORS = (' by ', ' - ')
DEFAULT_KNOWN_ARTISTS_PATH = Path(__file__).resolve().parent.parent / "data" / "known_artists.yaml"

logger = get_logger(__name__)


@dataclass(frozen=True)
class QueryAnalysis:
    raw_query: str
    normalized_query: str
    words: Tuple[str, ...]
    inferred_title: Optional[str]
    inferred_artist: Optional[str]
    stop_words: FrozenSet[str] = STOP_WORDS


def load_known_artists(path: Optional[str] = None) -> List[str]:
    """
    Load the known-artist list from YAML

    The file holds either a plain list or a mapping with an 'artists' list.
    A missing or malformed file yields an empty list, which only disables
    step 3 of artist inference.
    """
    target = Path(path).expanduser() if path else DEFAULT_KNOWN_ARTISTS_PATH
    try:
        with open(target, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load known artists from {target}, artist inference will be limited: {e}")
        return []

    if isinstance(data, dict):
        data = data.get('artists')
    if not isinstance(data, list):
        logger.warning(f"Known artists file {target} has no artist list")
        return []

    artists = [str(name).strip().lower() for name in data if str(name).strip()]
    logger.debug(f"Loaded {len(artists)} known artists")
    return artists


def _split_on(normalized: str, separator: str) -> Optional[Tuple[str, str]]:
    if separator not in normalized:
        return None
    title, _, artist = normalized.rpartition(separator)
    title, artist = title.strip(), artist.strip()
    if title and artist:
        return title, artist
    return None


class QueryAnalyzer:
    """
    Infers title and artist from free-text queries

    Args:
        known_artists: Lowercase artist names; the first one found in a
            query wins, so list longer names before names they contain
    """

    def __init__(self, known_artists: Optional[Iterable[str]] = None):
        self.known_artists = [name.lower() for name in known_artists or []]

    def analyze(self, query: str) -> QueryAnalysis:
        raw = query or ''
        normalized = raw.strip().lower()
        words = tuple(normalized.split())

        title, artist = self._infer(normalized, words)
        if not title:
            title = normalized

        return QueryAnalysis(
            raw_query=raw,
            normalized_query=normalized,
            words=words,
            inferred_title=title,
            inferred_artist=artist,
        )

    def _infer(self, normalized: str, words: Tuple[str, ...]) -> Tuple[Optional[str], Optional[str]]:
        for separator in SEPARATORS:
            split = _split_on(normalized, separator)
            if split:
                return split

        for artist in self.known_artists:
            if artist and artist in normalized:
                artist_words = set(artist.split())
                remaining = [word for word in words if word not in artist_words]
                return (' '.join(remaining) or None), artist

        return None, None
