"""
lyricsearch - federated lyrics search and ranking

Sends one query to several lyrics sources at once, ranks the combined
results and fetches lyric text from the source a result came from.
"""

__version__ = "0.1.0"
__author__ = "lyricsearch contributors"

from .exceptions import LyricSearchError
from .providers import CancellationToken
from .search import SearchOrchestrator, SearchResultPayload, build_orchestrator

__all__ = [
    '__version__',
    'LyricSearchError',
    'CancellationToken',
    'SearchOrchestrator',
    'SearchResultPayload',
    'build_orchestrator',
]
