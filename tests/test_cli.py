"""Test the command-line interface"""

import json

import pytest
from click.testing import CliRunner

from lyricsearch import __version__
from lyricsearch import main
from lyricsearch.config.credentials import MemoryCredentialStore
from lyricsearch.config.settings import Settings
from lyricsearch.search.orchestrator import SearchOrchestrator

from conftest import FakeAdapter, make_candidate


@pytest.fixture
def cli_settings(temp_dir, monkeypatch):
    """Isolated settings with console logging off"""
    path = temp_dir / "config.yaml"
    path.write_text("", encoding="utf-8")
    settings = Settings(str(path))
    settings.logging.console_output = False
    monkeypatch.setattr(main, 'get_settings', lambda: settings)
    return settings


@pytest.fixture
def engine_factory(cli_settings, monkeypatch):
    """Patch build_orchestrator to return engines over fake sources sharing one key store"""
    store = MemoryCredentialStore()

    def build(settings=None, credential_store=None):
        return SearchOrchestrator(
            [
                FakeAdapter('lrclib', display_name='LRCLIB',
                            results=[make_candidate('lrclib', 'Hello', 'Adele', key='hello')]),
                FakeAdapter('genius', display_name='Genius', requires_key=True,
                            fail=RuntimeError("Genius API key is missing.")),
            ],
            credential_store=store,
        )

    monkeypatch.setattr(main, 'build_orchestrator', build)
    return store


class TestCli:
    """Test CLI commands"""

    def test_version(self):
        """Test --version output"""
        result = CliRunner().invoke(main.cli, ['--version'])
        assert result.exit_code == 0
        assert f"lyricsearch v{__version__}" in result.output

    def test_search(self, engine_factory):
        """Test ranked results and the source summary"""
        result = CliRunner().invoke(main.cli, ['search', 'hello', '--no-progress'])

        assert result.exit_code == 0, result.output
        assert "Hello - Adele" in result.output
        assert "[lrclib]" in result.output
        assert "Genius API key is missing." in result.output
        assert "1 of 2 sources unavailable" in result.output

    def test_search_json(self, cli_settings, monkeypatch):
        """Test the JSON payload"""
        adapter = FakeAdapter('lrclib', results=[make_candidate('lrclib', 'Hello', 'Adele', key='hello')])
        monkeypatch.setattr(main, 'build_orchestrator', lambda settings=None: SearchOrchestrator([adapter]))

        result = CliRunner().invoke(main.cli, ['search', 'hello', '--json'])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload['is_complete'] is True
        assert payload['results'][0]['payload'] == {'provider': 'fake', 'key': 'hello'}
        assert [p['id'] for p in payload['meta']['providers']] == ['lrclib']

    def test_search_rejects_bad_limit(self, engine_factory):
        """Test the limit must be positive"""
        result = CliRunner().invoke(main.cli, ['search', 'hello', '--limit', '0'])
        assert result.exit_code == 1

    def test_lyrics_from_reference(self, engine_factory):
        """Test fetching with a saved reference"""
        result = CliRunner().invoke(main.cli, ['lyrics', '--provider', 'lrclib', '--reference', '{"key": "hello"}'])

        assert result.exit_code == 0, result.output
        assert "hello - Someone" in result.output
        assert "la la la" in result.output

    def test_lyrics_from_search(self, engine_factory):
        """Test searching then fetching result number one"""
        result = CliRunner().invoke(main.cli, ['lyrics', 'hello', '--index', '1'])
        assert result.exit_code == 0, result.output
        assert "Source: lrclib" in result.output

    def test_lyrics_unknown_provider(self, engine_factory):
        """Test engine errors become a one-line message"""
        result = CliRunner().invoke(main.cli, ['lyrics', '--provider', 'nope', '--reference', '{"key": "x"}'])
        assert result.exit_code == 1
        assert "Error: Unknown lyrics provider: nope" in result.output

    def test_lyrics_needs_query_or_reference(self, engine_factory):
        """Test usage errors"""
        result = CliRunner().invoke(main.cli, ['lyrics'])
        assert result.exit_code == 2

        result = CliRunner().invoke(main.cli, ['lyrics', '--provider', 'lrclib', '--reference', 'not json'])
        assert result.exit_code == 2

    def test_provider_keys(self, engine_factory):
        """Test set-key, key-status and remove-key"""
        runner = CliRunner()

        result = runner.invoke(main.cli, ['providers', 'set-key', 'genius', '--key', 'abcd1234efgh'])
        assert result.exit_code == 0, result.output

        result = runner.invoke(main.cli, ['providers', 'key-status', 'genius'])
        assert "key set" in result.output
        assert "abcd****efgh" in result.output

        runner.invoke(main.cli, ['providers', 'remove-key', 'genius'])
        result = runner.invoke(main.cli, ['providers', 'key-status', 'genius'])
        assert "no key" in result.output

    def test_set_key_unknown_provider(self, engine_factory):
        """Test keys can only be stored for registered sources"""
        result = CliRunner().invoke(main.cli, ['providers', 'set-key', 'nope', '--key', 'k'])
        assert result.exit_code == 1
        assert "Unknown lyrics provider: nope" in result.output

    def test_providers_list(self, engine_factory):
        """Test readiness per source"""
        result = CliRunner().invoke(main.cli, ['providers', 'list'])
        assert result.exit_code == 0, result.output
        assert "LRCLIB (lrclib) - ready" in result.output
        assert "Genius (genius) - needs API key" in result.output

    def test_config_show(self, cli_settings):
        """Test configuration display"""
        result = CliRunner().invoke(main.cli, ['config', 'show'])
        assert result.exit_code == 0, result.output
        assert "Current Configuration" in result.output
        assert "Results per source: 5-15" in result.output
        assert "Problems:" not in result.output

    def test_config_show_lists_problems(self, cli_settings):
        """Test invalid values are reported"""
        cli_settings.providers.enabled = ['lrclib', 'nope']
        result = CliRunner().invoke(main.cli, ['config', 'show'])
        assert result.exit_code == 0, result.output
        assert "providers.enabled lists unknown providers: nope" in result.output


    def test_startup_warns_about_invalid_settings(self, cli_settings):
        """Test every command warns once per configuration problem"""
        cli_settings.logging.console_output = True
        cli_settings.logging.colored_output = False
        cli_settings.cache.ttl_seconds = 0

        result = CliRunner().invoke(main.cli, ['config', 'show'])

        assert result.exit_code == 0, result.output
        assert "warning: Invalid configuration: cache.ttl_seconds must be positive (got 0)" in result.output


class TestMaskKey:
    """Test key masking"""

    def test_mask_key(self):
        """Test only the ends of long keys are shown"""
        assert main.mask_key("abcd1234efgh") == "abcd****efgh"
        assert main.mask_key("short") == "*****"
