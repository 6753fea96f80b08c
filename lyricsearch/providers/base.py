"""
Provider adapter contract

Every lyrics source implements ProviderAdapter:

- definition: class-level ProviderDefinition, registered with the engine
- search(query, limit, cancellation_token): never raises; failures are
  reported as strings in ProviderSearchResponse.errors
- get_lyrics(reference, cancellation_token): may raise; the error reaches
  the caller of fetch_lyrics_by_provider unchanged
- aclose(): release adapter resources

Subclasses implement _search and get_lyrics and use the helpers below for
throttled HTTP calls, credential lookups and reference validation.
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional, Type

from asyncio_throttle import Throttler

from ..config.credentials import CredentialStore
from ..exceptions import ConfigError, InvalidReferenceError, MissingCredentialError
from ..utils.logger import get_logger
from .fetch import CancellationToken, FetchResponse, ProviderHttpClient
from .models import LyricContent, LyricReference, ProviderDefinition, ProviderSearchResponse


class ProviderAdapter(ABC):
    """
    Base class for lyrics source adapters

    Adapters are constructed once and registered with a SearchOrchestrator.
    Network-backed adapters share one ProviderHttpClient; each adapter keeps
    its own Throttler so a busy source never slows down its siblings.
    """

    definition: ClassVar[ProviderDefinition]
    reference_type: ClassVar[Type[LyricReference]]

    def __init__(
        self,
        http: Optional[ProviderHttpClient] = None,
        credentials: Optional[CredentialStore] = None,
        rate_limit: int = 10,
    ):
        """
        Initialize adapter

        Args:
            http: Shared HTTP client (not needed by offline adapters)
            credentials: Store consulted for API keys
            rate_limit: Requests this adapter may start per second
        """
        self.http = http
        self.credentials = credentials
        self.throttler = Throttler(rate_limit=rate_limit, period=1.0)
        self.logger = get_logger(f"lyricsearch.providers.{self.definition.id}")

    @property
    def id(self) -> str:
        return self.definition.id

    @property
    def display_name(self) -> str:
        return self.definition.display_name

    async def search(
        self,
        query: str,
        limit: int = 10,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> ProviderSearchResponse:
        """
        Search the source for a free-text query

        Args:
            query: Raw user query
            limit: Maximum number of candidates to return
            cancellation_token: Token shared by all sources of the current search

        Returns:
            ProviderSearchResponse; any internal failure becomes an error string
        """
        trimmed = (query or '').strip()
        if not trimmed:
            return ProviderSearchResponse()

        try:
            response = await self._search(trimmed, limit, cancellation_token)
        except Exception as e:
            message = str(e) or f"{self.display_name} search failed"
            self.logger.debug(f"{self.display_name} search failed for '{trimmed}': {message}")
            return ProviderSearchResponse(errors=[message])

        response.results = response.results[:limit]
        return response

    @abstractmethod
    async def _search(
        self,
        query: str,
        limit: int,
        cancellation_token: Optional[CancellationToken],
    ) -> ProviderSearchResponse:
        """Source-specific search; may raise, search() converts errors to strings"""

    @abstractmethod
    async def get_lyrics(
        self,
        reference: LyricReference,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> LyricContent:
        """Fetch lyrics for a reference this adapter produced"""

    async def aclose(self) -> None:
        """Release adapter resources (the shared HTTP client is closed by its owner)"""

    def coerce_reference(self, payload: Any) -> LyricReference:
        """
        Accept this adapter's reference type or a plain mapping

        Raises:
            InvalidReferenceError: Payload is missing fields or belongs to another provider
        """
        if isinstance(payload, self.reference_type):
            return payload
        if isinstance(payload, LyricReference):
            raise InvalidReferenceError(
                f"{self.display_name} cannot use a {payload.provider or 'foreign'} reference",
                details={'provider': self.id},
            )
        if isinstance(payload, dict):
            return self.reference_type.from_dict(payload)
        raise InvalidReferenceError(
            f"{self.display_name} payload missing",
            details={'provider': self.id},
        )

    async def get_api_key(self) -> Optional[str]:
        if self.credentials is None:
            return None
        return await self.credentials.get(self.id)

    async def require_api_key(self) -> str:
        """
        Raises:
            MissingCredentialError: No key stored for this provider
        """
        key = await self.get_api_key()
        if not key:
            raise MissingCredentialError(
                f"{self.display_name} API key is missing.",
                details={'provider': self.id},
            )
        return key

    async def _get(
        self,
        url: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> FetchResponse:
        if self.http is None:
            raise ConfigError(f"{self.display_name} has no HTTP client configured", details={'provider': self.id})

        async with self.throttler:
            return await self.http.get(url, params=params, headers=headers, cancellation_token=cancellation_token)
