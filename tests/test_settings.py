"""Test configuration loading and credential storage"""

import json
import os
import sys

import pytest
import yaml

from lyricsearch.config.credentials import CredentialStore, FileCredentialStore, MemoryCredentialStore, env_var_for
from lyricsearch.config.settings import DEFAULT_PROVIDER_ORDER, Settings
from lyricsearch.exceptions import ConfigError


class TestSettings:
    """Test settings loading"""

    def test_defaults(self, temp_dir):
        """Test default values when the config file is empty"""
        path = temp_dir / "config.yaml"
        path.write_text("", encoding="utf-8")
        settings = Settings(str(path))

        assert settings.search.default_limit == 10
        assert settings.search.min_per_source == 5
        assert settings.search.max_per_source == 15
        assert settings.cache.max_entries == 100
        assert settings.cache.ttl_seconds == 45
        assert settings.providers.enabled == DEFAULT_PROVIDER_ORDER
        assert settings.validate()

    def test_yaml_values(self, temp_dir):
        """Test values from a config file; unknown keys are ignored"""
        path = temp_dir / "config.yaml"
        path.write_text(yaml.safe_dump({
            'search': {'default_limit': 5, 'bogus': 1},
            'cache': {'ttl_seconds': 10},
            'providers': {'enabled': ['lrclib', 'openHymnal']},
        }), encoding="utf-8")

        settings = Settings(str(path))

        assert settings.search.default_limit == 5
        assert not hasattr(settings.search, 'bogus')
        assert settings.cache.ttl_seconds == 10
        assert settings.providers.enabled == ['lrclib', 'openHymnal']

    def test_environment_overrides(self, temp_dir, monkeypatch):
        """Test environment variables win over the file"""
        path = temp_dir / "config.yaml"
        path.write_text(yaml.safe_dump({'network': {'request_timeout': 20}}), encoding="utf-8")
        monkeypatch.setenv('LYRICSEARCH_REQUEST_TIMEOUT', '2.5')
        monkeypatch.setenv('OPEN_HYMNAL_DATA_PATH', '/data/hymns.yaml')

        settings = Settings(str(path))

        assert settings.network.request_timeout == 2.5
        assert settings.providers.open_hymnal_data_path == '/data/hymns.yaml'

    def test_validate_rejects_bad_values(self, temp_dir):
        """Test validation catches unknown providers and bad bounds"""
        path = temp_dir / "config.yaml"
        path.write_text("", encoding="utf-8")
        settings = Settings(str(path))

        settings.providers.enabled = ['lrclib', 'nope']
        assert not settings.validate()

        settings.providers.enabled = ['lrclib']
        settings.search.max_per_source = 2
        assert not settings.validate()

    def test_problems_describe_values(self, temp_dir):
        """Test problems name the offending setting"""
        path = temp_dir / "config.yaml"
        path.write_text(yaml.safe_dump({'cache': {'ttl_seconds': 0}}), encoding="utf-8")
        settings = Settings(str(path))

        assert settings.loaded_from == path
        assert settings.problems() == ["cache.ttl_seconds must be positive (got 0)"]

    def test_bad_environment_value_is_ignored(self, temp_dir, monkeypatch):
        """Test an unparseable override keeps the file value"""
        path = temp_dir / "config.yaml"
        path.write_text("", encoding="utf-8")
        monkeypatch.setenv('LYRICSEARCH_REQUEST_TIMEOUT', 'soon')

        assert Settings(str(path)).network.request_timeout == 10.0


class TestMemoryCredentialStore:
    """Test the in-memory key store"""

    def test_base_store_is_abstract(self):
        """Test stores must implement every key operation"""
        with pytest.raises(TypeError):
            CredentialStore()

        class GetOnly(CredentialStore):
            async def get(self, provider_id):
                return None

        with pytest.raises(TypeError):
            GetOnly()

    @pytest.mark.asyncio
    async def test_set_get_delete(self):
        """Test basic key lifecycle"""
        store = MemoryCredentialStore()
        await store.set('genius', 'token')
        assert await store.get('genius') == 'token'
        assert await store.list_keys() == {'genius': 'token'}

        await store.delete('genius')
        await store.delete('genius')
        assert await store.get('genius') is None

    @pytest.mark.asyncio
    async def test_empty_value_clears(self):
        """Test setting an empty key removes it"""
        store = MemoryCredentialStore({'genius': 'token'})
        await store.set('genius', '')
        assert await store.get('genius') is None

    @pytest.mark.asyncio
    async def test_provider_id_required(self):
        """Test a blank provider id is rejected"""
        with pytest.raises(ConfigError):
            await MemoryCredentialStore().set('', 'token')


class TestFileCredentialStore:
    """Test the JSON file key store"""

    @pytest.mark.asyncio
    async def test_persists_to_file(self, temp_dir, monkeypatch):
        """Test keys survive a new store instance"""
        monkeypatch.delenv('GENIUS_API_KEY', raising=False)
        path = temp_dir / "keys" / "provider_keys.json"

        await FileCredentialStore(path).set('genius', 'token')

        assert await FileCredentialStore(path).get('genius') == 'token'
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data['genius']['key'] == 'token'
        assert 'saved_at' in data['genius']

    @pytest.mark.skipif(sys.platform == 'win32', reason="POSIX permissions only")
    @pytest.mark.asyncio
    async def test_owner_only_permissions(self, temp_dir):
        """Test the key file is not readable by others"""
        path = temp_dir / "provider_keys.json"
        await FileCredentialStore(path).set('hymnary', 'k')
        assert os.stat(path).st_mode & 0o777 == 0o600

    @pytest.mark.asyncio
    async def test_environment_takes_precedence(self, temp_dir, monkeypatch):
        """Test <PROVIDER>_API_KEY overrides the stored key"""
        store = FileCredentialStore(temp_dir / "provider_keys.json")
        await store.set('vagalume', 'stored')

        monkeypatch.setenv(env_var_for('vagalume'), 'from-env')
        assert env_var_for('vagalume') == 'VAGALUME_API_KEY'
        assert await store.get('vagalume') == 'from-env'

    @pytest.mark.asyncio
    async def test_delete(self, temp_dir, monkeypatch):
        """Test removal and idempotent delete"""
        monkeypatch.delenv('GENIUS_API_KEY', raising=False)
        store = FileCredentialStore(temp_dir / "provider_keys.json")
        await store.set('genius', 'token')

        await store.delete('genius')
        await store.delete('genius')

        assert await store.get('genius') is None
        assert await store.list_keys() == {}

    @pytest.mark.asyncio
    async def test_corrupt_file_is_empty(self, temp_dir, monkeypatch):
        """Test a damaged key file does not break lookups"""
        monkeypatch.delenv('GENIUS_API_KEY', raising=False)
        path = temp_dir / "provider_keys.json"
        path.write_text("{not json", encoding="utf-8")

        assert await FileCredentialStore(path).get('genius') is None
