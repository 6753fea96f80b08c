"""
Exception classes for lyricsearch.

Every error raised by the engine, its provider adapters and the CLI derives
from LyricSearchError, so one except clause is enough for callers that do
not care which stage failed.

Exception Hierarchy:
    LyricSearchError (base)
        ConfigError - Configuration and credential issues
            MissingCredentialError - Provider needs an API key that is not stored
        UnknownProviderError - Provider id not registered with the engine
        ProviderError - Failures inside a provider adapter
            RequestTimeoutError - Deadline elapsed or the call was cancelled
            ProviderResponseError - Upstream answered with a non-success status
            LyricsNotFoundError - Upstream has nothing for the given reference
            InvalidReferenceError - Reference does not belong to the provider
        SearchCancelledError - A cancellation token was checked after cancel()

Propagation policy:
    Search operations never raise ProviderError subclasses; they are caught per
    source and reported as strings in the provider summary. Lyric retrieval is
    a thin pass-through and raises everything listed above.
"""


class LyricSearchError(Exception):
    """
    Root of the lyricsearch exception tree.

    Attributes:
        message: Text shown to the user as-is.
        details: Extra context for the log file, e.g. provider, url or status.

    Example:
        try:
            content = await engine.fetch_lyrics_by_provider("lrclib", reference)
        except LyricSearchError as e:
            logger.error(f"Lyrics fetch failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConfigError(LyricSearchError):
    """
    Raised when configuration or stored credentials cannot be used.

    Common causes:
        - The config file or key store cannot be written
        - A blank provider id passed to a credential store
        - providers.enabled names a source that does not exist
    """
    pass


class MissingCredentialError(ConfigError):
    """
    Raised when a provider requires an API key and none is stored.

    During search this condition is reported as an entry in the provider's
    error list; lyric retrieval raises it.

    Example:
        raise MissingCredentialError(
            "Hymnary.org API key is missing.",
            details={'provider': 'hymnary'}
        )
    """
    pass


class UnknownProviderError(LyricSearchError):
    """
    Raised the moment an unregistered provider id is referenced.

    This is a programmer or integration error, not a runtime condition
    worth retrying.
    """

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Unknown lyrics provider: {provider_id}", details={'provider': provider_id})
        self.provider_id = provider_id


class ProviderError(LyricSearchError):
    """
    Raised when a provider adapter fails.

    Transient failures (network errors, timeouts, bad status codes) are
    isolated per source during search. Lyric retrieval propagates them
    unchanged to the caller.
    """
    pass


class RequestTimeoutError(ProviderError):
    """
    Raised when a provider call is aborted.

    Note:
        The same error is raised whether the internal deadline elapsed or
        the caller's cancellation token fired, so a caller cannot tell a
        cancelled request from a genuinely slow one.
    """
    pass


class ProviderResponseError(ProviderError):
    """
    Raised when an upstream service answers with a non-success status.

    Attributes:
        status: HTTP status code returned by the upstream service.
    """

    def __init__(self, message: str, status: int, details: dict | None = None) -> None:
        super().__init__(message, details={**(details or {}), 'status': status})
        self.status = status


class LyricsNotFoundError(ProviderError):
    """
    Raised by lyric retrieval when the upstream source has no content
    for the given reference.
    """
    pass


class InvalidReferenceError(ProviderError):
    """
    Raised when a lyric reference is missing required fields or was
    produced by a different provider.
    """
    pass


class SearchCancelledError(LyricSearchError):
    """Raised by CancellationToken.raise_if_cancelled() once cancel() was called."""
    pass
