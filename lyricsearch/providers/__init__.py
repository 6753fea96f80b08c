"""
Lyrics provider adapters for lyricsearch

This package contains one adapter per external lyrics source, all sharing
the ProviderAdapter contract:

- OpenHymnalAdapter: bundled public-domain hymn texts (offline)
- LrclibAdapter: LRCLIB synced lyrics database
- LyricsOvhAdapter: Lyrics.ovh (Deezer catalog)
- ChartLyricsAdapter: ChartLyrics XML API
- VagalumeAdapter: Vagalume (API key needed for lyric text)
- HymnaryAdapter: Hymnary.org (API key required)
- GeniusAdapter: Genius via lyricsgenius (access token required)

Usage:
    http = ProviderHttpClient(user_agent=settings.network.user_agent)
    adapters = default_adapters(settings, http, credential_store)
"""

from typing import Dict, List, Optional, Type

from ..config.credentials import CredentialStore
from ..exceptions import ConfigError
from .base import ProviderAdapter
from .chartlyrics import ChartLyricsAdapter, ChartLyricsReference
from .fetch import CancellationToken, FetchResponse, ProviderHttpClient, fetch_with_timeout, run_with_timeout
from .genius import GeniusAdapter, GeniusReference
from .hymnary import HymnaryAdapter, HymnaryReference
from .lrclib import LrclibAdapter, LrclibReference
from .lyrics_ovh import LyricsOvhAdapter, LyricsOvhReference
from .models import LyricContent, LyricReference, ProviderDefinition, ProviderSearchResponse, SearchCandidate
from .open_hymnal import OpenHymnalAdapter, OpenHymnalReference
from .vagalume import VagalumeAdapter, VagalumeReference


ADAPTER_CLASSES: Dict[str, Type[ProviderAdapter]] = {
    cls.definition.id: cls
    for cls in (
        OpenHymnalAdapter,
        LrclibAdapter,
        LyricsOvhAdapter,
        ChartLyricsAdapter,
        VagalumeAdapter,
        HymnaryAdapter,
        GeniusAdapter,
    )
}


def default_adapters(
    settings=None,
    http: Optional[ProviderHttpClient] = None,
    credentials: Optional[CredentialStore] = None,
) -> List[ProviderAdapter]:
    """
    Build the adapters listed in providers.enabled, in that order

    Args:
        settings: Settings instance, defaults to the shared settings
        http: Shared HTTP client for network-backed adapters
        credentials: Store consulted for API keys

    Returns:
        Ordered adapter list ready for SearchOrchestrator

    Raises:
        ConfigError: providers.enabled names an unknown provider
    """
    if settings is None:
        from ..config.settings import get_settings
        settings = get_settings()

    rate_limit = settings.network.rate_limit
    adapters: List[ProviderAdapter] = []

    for provider_id in settings.providers.enabled:
        cls = ADAPTER_CLASSES.get(provider_id)
        if cls is None:
            raise ConfigError(f"Unknown provider in configuration: {provider_id}", details={'provider': provider_id})

        kwargs = {'http': http, 'credentials': credentials, 'rate_limit': rate_limit}
        if cls is OpenHymnalAdapter:
            kwargs['data_path'] = settings.providers.open_hymnal_data_path or None
        elif cls is GeniusAdapter:
            kwargs['timeout'] = settings.network.request_timeout

        adapters.append(cls(**kwargs))

    return adapters


__all__ = [
    'ProviderAdapter',
    'ProviderDefinition',
    'ProviderSearchResponse',
    'SearchCandidate',
    'LyricReference',
    'LyricContent',
    'CancellationToken',
    'FetchResponse',
    'ProviderHttpClient',
    'fetch_with_timeout',
    'run_with_timeout',
    'ADAPTER_CLASSES',
    'default_adapters',
    'OpenHymnalAdapter',
    'OpenHymnalReference',
    'LrclibAdapter',
    'LrclibReference',
    'LyricsOvhAdapter',
    'LyricsOvhReference',
    'ChartLyricsAdapter',
    'ChartLyricsReference',
    'VagalumeAdapter',
    'VagalumeReference',
    'HymnaryAdapter',
    'HymnaryReference',
    'GeniusAdapter',
    'GeniusReference',
]
