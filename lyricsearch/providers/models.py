"""
Data models shared by provider adapters and the search engine

ProviderDefinition describes a source and never changes after registration.
SearchCandidate is one normalized result from a source. Its payload is a
LyricReference subclass owned by the adapter that produced it, so lyric
retrieval receives exactly the typed reference it handed out.
"""

from dataclasses import dataclass, field, fields, asdict
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple

from ..exceptions import InvalidReferenceError


@dataclass(frozen=True)
class ProviderDefinition:
    """
    Static descriptor for one lyrics source

    Attributes:
        id: Stable provider id used in candidate ids and lookups
        display_name: Human-readable name for summaries and errors
        requires_key: Whether the source needs an API key from the credential store
        supported_features: Feature names such as 'search', 'lyrics', 'synced_lyrics'
        description: One-line description shown by `providers list`
        homepage: Where to learn about the source or request a key
    """
    id: str
    display_name: str
    requires_key: bool = False
    supported_features: Tuple[str, ...] = ('search', 'lyrics')
    description: str = ''
    homepage: str = ''

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['supported_features'] = list(self.supported_features)
        return data


@dataclass(frozen=True)
class LyricReference:
    """
    Base class for provider-specific lyric references

    Each adapter subclasses this with the fields its lyric endpoint needs
    and sets the provider tag. References round-trip through plain mappings
    so they can be printed as JSON and handed back later.
    """
    provider: ClassVar[str] = ''

    def to_dict(self) -> Dict[str, Any]:
        return {'provider': self.provider, **asdict(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'LyricReference':
        """
        Build a reference from a plain mapping

        Unknown keys (including the provider tag) are ignored.

        Raises:
            InvalidReferenceError: Required fields are missing or the mapping
                is tagged for another provider
        """
        tagged = data.get('provider')
        if tagged and tagged != cls.provider:
            raise InvalidReferenceError(
                f"Reference belongs to provider '{tagged}', not '{cls.provider}'",
                details={'provider': cls.provider},
            )

        names = {f.name for f in fields(cls)}
        try:
            return cls(**{k: v for k, v in data.items() if k in names})
        except TypeError as e:
            raise InvalidReferenceError(
                f"Incomplete {cls.provider} reference: {e}",
                details={'provider': cls.provider},
            )


@dataclass
class SearchCandidate:
    """
    One normalized search result

    Attributes:
        id: Provider-scoped id ("<provider>:<native id>"), not globally unique
        provider: Id of the source that returned the candidate
        title: Song or hymn title
        artist: Artist, author or composer
        payload: Typed reference passed back unmodified for lyric retrieval
        album: Album name when the source knows it
        snippet: Short preview line for display
        metadata: Source-specific extras (duration, links, topics)
    """
    id: str
    provider: str
    title: str
    artist: str
    payload: LyricReference
    album: Optional[str] = None
    snippet: str = ''
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'provider': self.provider,
            'title': self.title,
            'artist': self.artist,
            'album': self.album,
            'snippet': self.snippet,
            'payload': self.payload.to_dict(),
            'metadata': dict(self.metadata),
        }


@dataclass
class ProviderSearchResponse:
    """Result of one adapter search: candidates plus human-readable errors"""
    results: List[SearchCandidate] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class LyricContent:
    """
    Lyrics returned by a provider

    Attributes:
        provider: Source id
        title: Title as reported by the source
        artist: Artist as reported by the source
        content: Lyric text (LRC text when the source only has synced lyrics)
        source_url: Page where the lyrics can be viewed
        credits: Attribution or translation info when available
        metadata: Source-specific extras
    """
    provider: str
    title: str
    artist: str
    content: str
    source_url: Optional[str] = None
    credits: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
