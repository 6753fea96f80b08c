"""
Federated search orchestration

SearchOrchestrator owns an ordered list of provider adapters, a TTL cache and
a credential store. A search fans out to every adapter concurrently, isolates
each source's failures, re-ranks the accumulated results as sources finish
and returns one merged payload with per-source metadata.

Two ways to observe progress:
- search(on_partial_results=callback): callback receives a full re-ranked
  snapshot every time a source finishes
- stream(): async iterator of snapshots ending with the complete payload

Usage:
    async with build_orchestrator() as engine:
        payload = await engine.search("amazing grace by chris tomlin")
        first = payload.results[0]
        lyrics = await engine.fetch_lyrics_by_provider(first.provider, first.payload)
"""

import asyncio
import inspect
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from ..config.credentials import CredentialStore, FileCredentialStore, MemoryCredentialStore
from ..exceptions import MissingCredentialError, UnknownProviderError
from ..providers import default_adapters
from ..providers.base import ProviderAdapter
from ..providers.fetch import CancellationToken, ProviderHttpClient
from ..providers.models import LyricContent
from ..utils.helpers import clamp, elapsed_ms
from ..utils.logger import get_logger
from .cache import TTLCache
from .merger import ResultMerger
from .models import ProviderChunk, ProviderStatus, ProviderSummary, SearchMeta, SearchResultPayload
from .query import QueryAnalyzer, load_known_artists


PartialCallback = Callable[[SearchResultPayload], Union[None, Awaitable[None]]]

NOTABLE_SOURCE_MS = 1000

logger = get_logger(__name__)


class SearchOrchestrator:
    """
    Federated lyrics search engine

    Args:
        adapters: Ordered adapters; the order is the ranking tie-break order
        credential_store: Store for provider API keys
        cache: Cache for complete search payloads
        merger: Ranking and deduplication strategy
        http: Shared HTTP client, closed by aclose()
        min_per_source: Lower bound of the per-source result limit
        max_per_source: Upper bound of the per-source result limit
        slow_source_ms: Sources slower than this are logged as warnings
    """

    def __init__(
        self,
        adapters: Sequence[ProviderAdapter],
        credential_store: Optional[CredentialStore] = None,
        cache: Optional[TTLCache] = None,
        merger: Optional[ResultMerger] = None,
        http: Optional[ProviderHttpClient] = None,
        min_per_source: int = 5,
        max_per_source: int = 15,
        slow_source_ms: int = 3000,
    ):
        self._adapters: Dict[str, ProviderAdapter] = {}
        for adapter in adapters:
            if adapter.id in self._adapters:
                raise ValueError(f"Duplicate provider id: {adapter.id}")
            self._adapters[adapter.id] = adapter

        self.credentials = credential_store or MemoryCredentialStore()
        self.cache = cache or TTLCache()
        self.merger = merger or ResultMerger()
        self.http = http
        self.min_per_source = min_per_source
        self.max_per_source = max_per_source
        self.slow_source_ms = slow_source_ms

    @property
    def adapters(self) -> List[ProviderAdapter]:
        return list(self._adapters.values())

    def get_adapter(self, provider_id: str) -> ProviderAdapter:
        """
        Raises:
            UnknownProviderError: No adapter registered under provider_id
        """
        adapter = self._adapters.get(provider_id)
        if adapter is None:
            raise UnknownProviderError(provider_id)
        return adapter

    @staticmethod
    def cache_key(query: str, limit: int) -> str:
        return f"{query.strip().lower()}::{limit}"

    def per_source_limit(self, limit: int) -> int:
        return int(clamp(limit, self.min_per_source, self.max_per_source))

    # Search

    async def search(
        self,
        query: str,
        limit: int = 10,
        skip_cache: bool = False,
        cancellation_token: Optional[CancellationToken] = None,
        on_partial_results: Optional[PartialCallback] = None,
    ) -> SearchResultPayload:
        """
        Search every registered source and merge the results

        Args:
            query: Free-text query ("title", "title by artist", "title - artist")
            limit: Maximum number of merged results
            skip_cache: Ignore any cached payload for this query
            cancellation_token: Shared by every source call of this search
            on_partial_results: Sync or async callable receiving a snapshot each
                time a source finishes; not called after the token is cancelled

        Returns:
            Complete payload with exactly one summary per registered source.
            Source failures are reported in the summaries, never raised.
        """
        trimmed = (query or '').strip()
        if not trimmed:
            return self._empty_payload()

        key = self.cache_key(trimmed, limit)
        if not skip_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug(f"Cache hit for '{trimmed}' (limit {limit})")
                return cached

        tasks = self._start_sources(trimmed, limit, cancellation_token)
        completed: List[ProviderChunk] = []

        try:
            for next_chunk in asyncio.as_completed(tasks):
                completed.append(await next_chunk)
                if on_partial_results is None:
                    continue
                if cancellation_token is not None and cancellation_token.is_cancelled:
                    continue
                await self._notify(on_partial_results, self._build_payload(completed, trimmed, limit, False))
        finally:
            await self._cancel_pending(tasks)

        payload = self._build_payload(completed, trimmed, limit, True)
        self.cache.set(key, payload)
        self._log_summary(trimmed, payload)
        return payload

    async def stream(
        self,
        query: str,
        limit: int = 10,
        skip_cache: bool = False,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> AsyncIterator[SearchResultPayload]:
        """
        Search every registered source, yielding snapshots as sources finish

        One partial snapshot is yielded per finished source except the last;
        the final item is the complete payload, which is cached. Cancelling the
        token ends the stream early: outstanding source calls are cancelled and
        nothing is cached. Empty queries and cache hits yield a single complete
        payload.

        A consumer that stops iterating early should close the generator so
        outstanding source calls are cancelled right away:

            async with contextlib.aclosing(engine.stream(query)) as snapshots:
                async for snapshot in snapshots:
                    if snapshot.results:
                        break
        """
        trimmed = (query or '').strip()
        if not trimmed:
            yield self._empty_payload()
            return

        key = self.cache_key(trimmed, limit)
        if not skip_cache:
            cached = self.cache.get(key)
            if cached is not None:
                yield cached
                return

        tasks = self._start_sources(trimmed, limit, cancellation_token)
        pending = set(tasks)
        completed: List[ProviderChunk] = []
        cancel_waiter = asyncio.ensure_future(cancellation_token.wait()) if cancellation_token else None

        try:
            while pending:
                waiters = (pending | {cancel_waiter}) if cancel_waiter else pending
                done, _ = await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)

                if cancellation_token is not None and cancellation_token.is_cancelled:
                    logger.debug(f"Search stream for '{trimmed}' cancelled with {len(pending)} sources outstanding")
                    return

                for task in sorted(done & pending, key=lambda t: t.result().order):
                    pending.discard(task)
                    completed.append(task.result())
                    if pending:
                        yield self._build_payload(completed, trimmed, limit, False)

            payload = self._build_payload(completed, trimmed, limit, True)
            self.cache.set(key, payload)
            self._log_summary(trimmed, payload)
            yield payload
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()
            await self._cancel_pending(tasks)

    def _start_sources(self, query: str, limit: int,
                       cancellation_token: Optional[CancellationToken]) -> List["asyncio.Task[ProviderChunk]"]:
        per_source_limit = self.per_source_limit(limit)
        logger.debug(f"Searching {len(self._adapters)} sources for '{query}' ({per_source_limit} per source)")
        return [
            asyncio.ensure_future(self._run_source(order, adapter, query, per_source_limit, cancellation_token))
            for order, adapter in enumerate(self._adapters.values())
        ]

    async def _run_source(self, order: int, adapter: ProviderAdapter, query: str, limit: int,
                          cancellation_token: Optional[CancellationToken]) -> ProviderChunk:
        start = time.monotonic()
        try:
            response = await adapter.search(query, limit=limit, cancellation_token=cancellation_token)
            results, errors = list(response.results), list(response.errors)
        except Exception as e:
            results, errors = [], [str(e) or "Unknown provider error"]

        chunk = ProviderChunk(
            definition=adapter.definition,
            order=order,
            results=results,
            errors=errors,
            duration=elapsed_ms(start),
        )
        self._log_source(chunk)
        return chunk

    def _log_source(self, chunk: ProviderChunk) -> None:
        name = chunk.definition.display_name
        if chunk.errors and not chunk.results:
            logger.error(f"{name} failed after {chunk.duration}ms: {'; '.join(chunk.errors)}")
        elif chunk.duration > self.slow_source_ms:
            logger.warning(f"{name} is slow: {chunk.duration}ms for {len(chunk.results)} results")
        elif chunk.duration > NOTABLE_SOURCE_MS:
            logger.info(f"{name} took {chunk.duration}ms for {len(chunk.results)} results")
        else:
            logger.debug(f"{name} returned {len(chunk.results)} results in {chunk.duration}ms")

    def _log_summary(self, query: str, payload: SearchResultPayload) -> None:
        unavailable = payload.unavailable_providers()
        logger.debug(
            f"Search '{query}' complete: {len(payload.results)} results, "
            f"{len(payload.meta.providers) - len(unavailable)}/{len(payload.meta.providers)} sources available"
        )

    @staticmethod
    async def _notify(callback: PartialCallback, payload: SearchResultPayload) -> None:
        result = callback(payload)
        if inspect.isawaitable(result):
            await result

    @staticmethod
    async def _cancel_pending(tasks: Sequence[asyncio.Future]) -> None:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _build_payload(self, chunks: List[ProviderChunk], query: str, limit: int,
                       is_complete: bool) -> SearchResultPayload:
        ordered = sorted(chunks, key=lambda chunk: chunk.order)
        return SearchResultPayload(
            results=self.merger.merge(ordered, query, limit),
            meta=SearchMeta(providers=[ProviderSummary.from_chunk(chunk) for chunk in ordered]),
            is_complete=is_complete,
        )

    def _empty_payload(self) -> SearchResultPayload:
        summaries = [
            ProviderSummary(id=adapter.id, display_name=adapter.display_name)
            for adapter in self._adapters.values()
        ]
        return SearchResultPayload(results=[], meta=SearchMeta(providers=summaries), is_complete=True)

    def clear_cache(self) -> None:
        self.cache.clear()

    # Lyrics

    async def fetch_lyrics_by_provider(
        self,
        provider_id: str,
        payload: Any,
        cancellation_token: Optional[CancellationToken] = None,
    ) -> LyricContent:
        """
        Fetch lyrics for a candidate payload from the provider that produced it

        Args:
            provider_id: Registered provider id
            payload: The adapter's reference object or an equivalent plain mapping
            cancellation_token: Optional token aborting the request

        Raises:
            UnknownProviderError: provider_id is not registered
            MissingCredentialError: The provider requires a key and none is stored
            ProviderError: Any failure raised by the adapter, unchanged
        """
        adapter = self.get_adapter(provider_id)

        if adapter.definition.requires_key:
            key = await self.credentials.get(provider_id)
            if not key:
                raise MissingCredentialError(
                    f"{adapter.display_name} API key is missing.",
                    details={'provider': provider_id},
                )

        reference = adapter.coerce_reference(payload)
        return await adapter.get_lyrics(reference, cancellation_token=cancellation_token)

    # Providers and credentials

    async def list_provider_definitions(self) -> List[ProviderStatus]:
        """Registered sources in order, with whether each has what it needs to run"""
        statuses = []
        for adapter in self._adapters.values():
            configured = True
            if adapter.definition.requires_key:
                configured = bool(await self.credentials.get(adapter.id))
            statuses.append(ProviderStatus(definition=adapter.definition, configured=configured))
        return statuses

    async def save_provider_key(self, provider_id: str, key: Optional[str]) -> None:
        """
        Store (or clear, when key is empty) the API key for a provider

        Raises:
            UnknownProviderError: provider_id is not registered
        """
        self.get_adapter(provider_id)
        await self.credentials.set(provider_id, key)
        logger.debug(f"Saved API key for {provider_id}")

    async def remove_provider_key(self, provider_id: str) -> None:
        if provider_id not in self._adapters:
            return
        await self.credentials.delete(provider_id)

    async def get_provider_key_state(self, provider_id: str) -> Optional[str]:
        """Stored key for a registered provider, None if unknown or not set"""
        if provider_id not in self._adapters:
            return None
        return await self.credentials.get(provider_id) or None

    # Lifecycle

    async def aclose(self) -> None:
        for adapter in self._adapters.values():
            await adapter.aclose()
        if self.http is not None:
            await self.http.close()

    async def __aenter__(self) -> 'SearchOrchestrator':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


def build_orchestrator(settings=None, credential_store: Optional[CredentialStore] = None) -> SearchOrchestrator:
    """
    Wire a SearchOrchestrator from configuration

    Args:
        settings: Settings instance, defaults to the shared settings
        credential_store: Key store, defaults to the file store at
            security.credentials_path

    Returns:
        Orchestrator with the enabled adapters, a shared HTTP client and a
        fresh cache
    """
    if settings is None:
        from ..config.settings import get_settings
        settings = get_settings()

    credentials = credential_store or FileCredentialStore(settings.get_credentials_path())
    http = ProviderHttpClient(user_agent=settings.network.user_agent, timeout=settings.network.request_timeout)
    analyzer = QueryAnalyzer(load_known_artists(settings.providers.known_artists_path or None))

    return SearchOrchestrator(
        adapters=default_adapters(settings, http, credentials),
        credential_store=credentials,
        cache=TTLCache(max_entries=settings.cache.max_entries, ttl=settings.cache.ttl_seconds),
        merger=ResultMerger(analyzer=analyzer),
        http=http,
        min_per_source=settings.search.min_per_source,
        max_per_source=settings.search.max_per_source,
        slow_source_ms=settings.search.slow_source_ms,
    )
