"""
Main CLI interface for lyricsearch

This module provides the command-line interface for searching lyrics across
all configured sources, fetching lyric text, managing provider API keys and
inspecting configuration.

The CLI is built using Click framework and provides structured command groups for:
- Searching (search, lyrics)
- Provider management (providers list, set-key, remove-key, key-status)
- Configuration management (config show)
"""

import asyncio
import functools
import json
import sys
from typing import Optional

import click

from . import __version__
from .config.settings import get_settings, reload_settings
from .exceptions import LyricSearchError
from .search import SearchOrchestrator, SearchResultPayload, build_orchestrator
from .utils.helpers import format_milliseconds, truncate_string
from .utils.logger import SourceProgress, configure_from_settings, get_logger


logger = get_logger(__name__)


def print_banner():
    """
    Print application banner to console

    Shown when the CLI is invoked without a subcommand.
    """
    banner = """
╔═══════════════════════════════════════════════════════════════╗
║                          lyricsearch                          ║
║                                                               ║
║      Search lyrics across many sources, best match first      ║
║                                                               ║
╚═══════════════════════════════════════════════════════════════╝
    """
    click.echo(click.style(banner, fg='green', bold=True))


def handle_error(func):
    """
    Decorator to handle common CLI errors gracefully

    Known lyricsearch errors are shown as a one-line message; anything else
    is logged and reported as a generic failure. Both exit with status 1.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            click.echo(click.style("\n\nOperation cancelled by user", fg='yellow'))
            sys.exit(130)
        except click.ClickException:
            raise
        except LyricSearchError as e:
            logger.debug(f"Command failed: {e} {e.details}")
            click.echo(click.style(f"Error: {e.message}", fg='red'), err=True)
            sys.exit(1)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            click.echo(click.style(f"Error: {e}", fg='red'), err=True)
            sys.exit(1)
    return wrapper


def run_async(coro):
    """Run an engine coroutine to completion from synchronous click commands"""
    return asyncio.run(coro)


def mask_key(key: str) -> str:
    if len(key) <= 8:
        return "*" * len(key)
    return f"{key[:4]}{'*' * (len(key) - 8)}{key[-4:]}"


def print_results(payload: SearchResultPayload) -> None:
    """Print ranked results followed by a per-source summary"""
    if not payload.results:
        click.echo("No results found.")
    else:
        for position, candidate in enumerate(payload.results, 1):
            title = truncate_string(candidate.title, 50)
            artist = truncate_string(candidate.artist, 30)
            click.echo(
                f"{position:>3}. {click.style(title, bold=True)} - {artist} "
                f"{click.style(f'[{candidate.provider}]', fg='cyan')}"
            )
            if candidate.snippet:
                click.echo(f"       {truncate_string(candidate.snippet.splitlines()[0], 70)}")

    click.echo("\nSources:")
    for summary in payload.meta.providers:
        status = click.style("ok", fg='green') if summary.available else click.style("unavailable", fg='red')
        click.echo(
            f"   {summary.display_name:<14} {status:<20} "
            f"{summary.count:>3} results  {format_milliseconds(summary.duration)}"
        )
        for error in summary.errors:
            click.echo(click.style(f"      {error}", fg='yellow'))

    unavailable = payload.unavailable_providers()
    if unavailable:
        click.echo(f"\n{len(unavailable)} of {len(payload.meta.providers)} sources unavailable")


async def _search(engine: SearchOrchestrator, query: str, limit: int, skip_cache: bool,
                  show_progress: bool) -> SearchResultPayload:
    progress = SourceProgress(logger, total=len(engine.adapters), show_bar=show_progress)
    settled = set()
    progress.start(query)

    def on_partial(snapshot: SearchResultPayload) -> None:
        for summary in snapshot.meta.providers:
            if summary.id not in settled:
                settled.add(summary.id)
                progress.source_finished(summary.display_name, len(settled))

    try:
        payload = await engine.search(query, limit=limit, skip_cache=skip_cache, on_partial_results=on_partial)
    except Exception as e:
        progress.close(failed=e)
        raise
    finally:
        await engine.aclose()

    progress.close()
    return payload


async def _fetch_lyrics(engine: SearchOrchestrator, provider_id: str, reference):
    try:
        return await engine.fetch_lyrics_by_provider(provider_id, reference)
    finally:
        await engine.aclose()


async def _search_and_fetch(engine: SearchOrchestrator, query: str, index: int):
    try:
        payload = await engine.search(query, limit=max(index, 10))
        if len(payload.results) < index:
            raise click.ClickException(f"Only {len(payload.results)} results found for '{query}'")
        candidate = payload.results[index - 1]
        return await engine.fetch_lyrics_by_provider(candidate.provider, candidate.payload)
    finally:
        await engine.aclose()


# Main CLI group - root command that all subcommands attach to
@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--config', type=click.Path(), help='Path to config file')
@click.pass_context
def cli(ctx, version, verbose, config):
    """
    lyricsearch - federated lyrics search

    Sends one query to every enabled lyrics source, ranks the combined
    results and fetches lyric text from the source of your choice.
    """
    ctx.ensure_object(dict)

    if version:
        click.echo(f"lyricsearch v{__version__}")
        return

    settings = reload_settings(config) if config else get_settings()

    if verbose:
        ctx.obj['verbose'] = True
        settings.logging.level = "DEBUG"

    configure_from_settings(settings)
    if config:
        logger.console_info(f"Loaded config: {config}")
    settings.validate()

    if ctx.invoked_subcommand is None:
        print_banner()
        click.echo(ctx.get_help())


@cli.command()
@click.argument('query', nargs=-1, required=True)
@click.option('--limit', '-n', type=int, help='Maximum number of results')
@click.option('--skip-cache', is_flag=True, help='Ignore cached results')
@click.option('--json', 'as_json', is_flag=True, help='Print the full payload as JSON')
@click.option('--no-progress', is_flag=True, help='Hide the source progress bar')
@handle_error
def search(query, limit, skip_cache, as_json, no_progress):
    """
    Search all enabled sources

    QUERY may name a title, an artist, or both as "TITLE by ARTIST" or
    "TITLE - ARTIST".
    """
    settings = get_settings()
    text = ' '.join(query)
    if limit is None:
        limit = settings.search.default_limit
    if limit < 1:
        click.echo(click.style("Limit must be at least 1", fg='red'), err=True)
        sys.exit(1)

    engine = build_orchestrator(settings)
    payload = run_async(_search(engine, text, limit, skip_cache, show_progress=not (no_progress or as_json)))

    if as_json:
        click.echo(json.dumps(payload.to_dict(), indent=2, ensure_ascii=False))
    else:
        print_results(payload)


@cli.command()
@click.argument('query', nargs=-1)
@click.option('--index', '-i', type=int, default=1, show_default=True, help='Result to fetch when searching')
@click.option('--provider', '-p', help='Provider id of a saved reference')
@click.option('--reference', '-r', help='Reference JSON as printed by "search --json"')
@handle_error
def lyrics(query, index, provider, reference):
    """
    Fetch lyric text

    Either search for QUERY and fetch the lyrics of result number --index,
    or fetch directly with --provider and --reference.
    """
    settings = get_settings()

    if reference or provider:
        if not (reference and provider):
            raise click.UsageError("--provider and --reference must be used together")
        try:
            reference_data = json.loads(reference)
        except ValueError as e:
            raise click.BadParameter(f"Reference is not valid JSON: {e}", param_hint='--reference')
        if not isinstance(reference_data, dict):
            raise click.BadParameter("Reference must be a JSON object", param_hint='--reference')
        content = run_async(_fetch_lyrics(build_orchestrator(settings), provider, reference_data))
    else:
        if not query:
            raise click.UsageError("Give a QUERY or --provider with --reference")
        if index < 1:
            raise click.BadParameter("Index starts at 1", param_hint='--index')
        content = run_async(_search_and_fetch(build_orchestrator(settings), ' '.join(query), index))

    click.echo(click.style(f"{content.title} - {content.artist}", bold=True))
    click.echo(click.style(f"Source: {content.provider}", fg='cyan'))
    if content.source_url:
        click.echo(click.style(content.source_url, fg='cyan'))
    click.echo()
    click.echo(content.content)
    if content.credits:
        click.echo(f"\n{content.credits}")


# Provider management commands
@cli.group()
def providers():
    """
    Provider management

    List the enabled lyrics sources and manage their API keys.
    """
    pass


@providers.command('list')
@handle_error
def list_providers():
    """List enabled sources and whether each is ready to use"""
    async def _list(engine: SearchOrchestrator):
        try:
            return await engine.list_provider_definitions()
        finally:
            await engine.aclose()

    statuses = run_async(_list(build_orchestrator(get_settings())))

    click.echo("Lyrics sources:\n")
    for status in statuses:
        definition = status.definition
        if status.configured:
            state = click.style("ready", fg='green')
        else:
            state = click.style("needs API key", fg='yellow')
        click.echo(f"   {click.style(definition.display_name, bold=True)} ({definition.id}) - {state}")
        if definition.description:
            click.echo(f"      {definition.description}")
        if definition.requires_key and not status.configured and definition.homepage:
            click.echo(f"      Get a key: {definition.homepage}")


@providers.command('set-key')
@click.argument('provider_id')
@click.option('--key', prompt=True, hide_input=True, help='API key (prompted when omitted)')
@handle_error
def set_key(provider_id, key):
    """Store the API key for PROVIDER_ID"""
    async def _save(engine: SearchOrchestrator):
        try:
            await engine.save_provider_key(provider_id, key.strip())
        finally:
            await engine.aclose()

    run_async(_save(build_orchestrator(get_settings())))
    click.echo(click.style(f"API key saved for {provider_id}", fg='green'))


@providers.command('remove-key')
@click.argument('provider_id')
@handle_error
def remove_key(provider_id):
    """Remove the stored API key for PROVIDER_ID"""
    async def _remove(engine: SearchOrchestrator):
        try:
            await engine.remove_provider_key(provider_id)
        finally:
            await engine.aclose()

    run_async(_remove(build_orchestrator(get_settings())))
    click.echo(f"API key removed for {provider_id}")


@providers.command('key-status')
@click.argument('provider_id')
@handle_error
def key_status(provider_id):
    """Show whether PROVIDER_ID has an API key"""
    async def _state(engine: SearchOrchestrator) -> Optional[str]:
        try:
            engine.get_adapter(provider_id)
            return await engine.get_provider_key_state(provider_id)
        finally:
            await engine.aclose()

    key = run_async(_state(build_orchestrator(get_settings())))
    if key:
        click.echo(f"{provider_id}: {click.style('key set', fg='green')} ({mask_key(key)})")
    else:
        click.echo(f"{provider_id}: {click.style('no key', fg='yellow')}")


# Configuration management commands
@cli.group()
def config():
    """
    Configuration management

    Command group for viewing application configuration.
    """
    pass


@config.command()
@handle_error
def show():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:\n")

    click.echo("Search:")
    click.echo(f"   Default limit: {settings.search.default_limit}")
    click.echo(f"   Results per source: {settings.search.min_per_source}-{settings.search.max_per_source}")
    click.echo(f"   Slow source threshold: {settings.search.slow_source_ms}ms")

    click.echo("\nCache:")
    click.echo(f"   Max entries: {settings.cache.max_entries}")
    click.echo(f"   TTL: {settings.cache.ttl_seconds}s")

    click.echo("\nProviders:")
    click.echo(f"   Enabled: {', '.join(settings.providers.enabled)}")
    click.echo(f"   Known artists: {settings.providers.known_artists_path or '(bundled)'}")
    click.echo(f"   Open Hymnal data: {settings.providers.open_hymnal_data_path or '(bundled)'}")

    click.echo("\nNetwork:")
    click.echo(f"   Request timeout: {settings.network.request_timeout}s")
    click.echo(f"   Rate limit: {settings.network.rate_limit}/s per source")
    click.echo(f"   User agent: {settings.network.user_agent}")

    click.echo("\nLogging:")
    click.echo(f"   Level: {settings.logging.level}")
    click.echo(f"   File: {settings.logging.file or '(disabled)'}")

    click.echo("\nSecurity:")
    click.echo(f"   Credentials: {settings.get_credentials_path()}")

    click.echo(f"\nLoaded from: {settings.loaded_from or '(defaults)'}")
    problems = settings.problems()
    if problems:
        click.echo("\nProblems:")
        for problem in problems:
            click.echo(f"   {problem}")


# Entry point for module execution
if __name__ == '__main__':
    cli()
