"""
Configuration management for lyricsearch

Settings are grouped into dataclass sections and resolved in three layers:

1. Dataclass defaults
2. The first YAML file found among --config, ~/.lyricsearch/config.yaml,
   config/config.yaml and config.yaml
3. Environment variables (a .env file in the working directory is honoured)

Provider API keys are deliberately absent. They live in the credential
store (see credentials.py), which has its own <PROVIDER>_API_KEY overrides.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml
from dotenv import load_dotenv

from ..utils.logger import get_logger


load_dotenv()

logger = get_logger(__name__)


DEFAULT_PROVIDER_ORDER = [
    "openHymnal",
    "lrclib",
    "lyricsOvh",
    "chartlyrics",
    "vagalume",
    "hymnary",
    "genius",
]


@dataclass
class SearchConfig:
    """
    Search configuration and fan-out bounds

    Each source receives its own result limit clamped between
    min_per_source and max_per_source, independent of the caller's
    overall limit.
    """
    default_limit: int = 10
    min_per_source: int = 5
    max_per_source: int = 15
    slow_source_ms: int = 3000


@dataclass
class CacheConfig:
    """
    Response cache configuration

    The cache is in-process only. Entries expire lazily after ttl_seconds
    and the soonest-to-expire entries are evicted when max_entries is exceeded.
    """
    max_entries: int = 100
    ttl_seconds: float = 45.0


@dataclass
class ProvidersConfig:
    """
    Provider selection and bundled data

    The enabled list controls both which sources are registered and their
    registration order, which is also the tie-break order during ranking.
    """
    enabled: list = field(default_factory=lambda: list(DEFAULT_PROVIDER_ORDER))
    known_artists_path: str = ""
    open_hymnal_data_path: str = ""


@dataclass
class NetworkConfig:
    """
    Outbound request settings

    request_timeout bounds each individual provider call. rate_limit is the
    number of requests a single provider may start per second.
    """
    user_agent: str = "lyricsearch/0.1 (+https://github.com/lyricsearch/lyricsearch)"
    request_timeout: float = 10.0
    rate_limit: int = 10


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str = ""
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


@dataclass
class SecurityConfig:
    """Where provider API keys are kept on disk"""
    config_directory: str = "~/.lyricsearch/"
    credentials_path: str = "~/.lyricsearch/provider_keys.json"


# (variable, section, attribute, converter)
ENV_OVERRIDES: List[Tuple[str, str, str, Callable[[str], Any]]] = [
    ('LYRICSEARCH_LOG_LEVEL', 'logging', 'level', str.upper),
    ('LYRICSEARCH_LOG_FILE', 'logging', 'file', str),
    ('LYRICSEARCH_REQUEST_TIMEOUT', 'network', 'request_timeout', float),
    ('LYRICSEARCH_CREDENTIALS_PATH', 'security', 'credentials_path', str),
    ('LYRICSEARCH_KNOWN_ARTISTS_PATH', 'providers', 'known_artists_path', str),
    ('OPEN_HYMNAL_DATA_PATH', 'providers', 'open_hymnal_data_path', str),
]


def candidate_config_paths(explicit: Optional[str] = None) -> List[Path]:
    """Config file locations, most specific first"""
    paths = [Path(explicit).expanduser()] if explicit else []
    paths.extend([
        Path.home() / ".lyricsearch" / "config.yaml",
        Path("config") / "config.yaml",
        Path("config.yaml"),
    ])
    return paths


class Settings:
    """
    Resolved lyricsearch configuration

    Attributes mirror the YAML sections: search, cache, providers, network,
    logging and security.

    Args:
        config_path: Explicit YAML file, tried before the default locations
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path
        self.loaded_from: Optional[Path] = None

        self.search = SearchConfig()
        self.cache = CacheConfig()
        self.providers = ProvidersConfig()
        self.network = NetworkConfig()
        self.logging = LoggingConfig()
        self.security = SecurityConfig()

        self._apply(self._read_first_file())
        self._apply_environment()

    def sections(self) -> Dict[str, Any]:
        return {
            'search': self.search,
            'cache': self.cache,
            'providers': self.providers,
            'network': self.network,
            'logging': self.logging,
            'security': self.security,
        }

    def _read_first_file(self) -> Dict[str, Any]:
        for path in candidate_config_paths(self.config_path):
            if not path.is_file():
                continue
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Skipping unreadable config file {path}: {e}")
                continue
            if not isinstance(data, dict):
                logger.warning(f"Skipping config file {path}: top level must be a mapping")
                continue
            self.loaded_from = path
            return data
        return {}

    def _apply(self, data: Dict[str, Any]) -> None:
        """Copy known keys of known sections onto the dataclasses; anything else is ignored"""
        sections = self.sections()
        for name, values in data.items():
            section = sections.get(name)
            if section is None or not isinstance(values, dict):
                continue
            known = {f.name for f in fields(section)}
            for key, value in values.items():
                if key in known:
                    setattr(section, key, value)

    def _apply_environment(self) -> None:
        sections = self.sections()
        for variable, section, attribute, convert in ENV_OVERRIDES:
            raw = os.getenv(variable)
            if not raw:
                continue
            try:
                setattr(sections[section], attribute, convert(raw))
            except ValueError:
                logger.warning(f"Ignoring {variable}={raw!r}: not a valid {section}.{attribute}")

    def get_config_directory(self) -> Path:
        return Path(self.security.config_directory).expanduser()

    def get_credentials_path(self) -> Path:
        return Path(self.security.credentials_path).expanduser()

    def problems(self) -> List[str]:
        """Human-readable descriptions of invalid values; empty when the configuration is usable"""
        found = []

        if self.search.default_limit < 1:
            found.append(f"search.default_limit must be at least 1 (got {self.search.default_limit})")
        if self.search.min_per_source < 1:
            found.append(f"search.min_per_source must be at least 1 (got {self.search.min_per_source})")
        if self.search.max_per_source < self.search.min_per_source:
            found.append("search.max_per_source must not be smaller than search.min_per_source")
        if self.cache.max_entries < 1:
            found.append(f"cache.max_entries must be at least 1 (got {self.cache.max_entries})")
        if self.cache.ttl_seconds <= 0:
            found.append(f"cache.ttl_seconds must be positive (got {self.cache.ttl_seconds})")
        if self.network.request_timeout <= 0:
            found.append(f"network.request_timeout must be positive (got {self.network.request_timeout})")

        unknown = [p for p in self.providers.enabled if p not in DEFAULT_PROVIDER_ORDER]
        if unknown:
            found.append(f"providers.enabled lists unknown providers: {', '.join(unknown)}")

        return found

    def validate(self) -> bool:
        """Log every problem as a warning; True when there are none"""
        found = self.problems()
        for problem in found:
            logger.warning(f"Invalid configuration: {problem}")
        return not found

    def __str__(self) -> str:
        return (
            f"Settings(providers={len(self.providers.enabled)}, limit={self.search.default_limit}, "
            f"cache={self.cache.max_entries}@{self.cache.ttl_seconds}s, timeout={self.network.request_timeout}s)"
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Shared Settings instance, created on first use"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """Replace the shared Settings instance, optionally from a specific file"""
    global _settings
    _settings = Settings(config_path)
    return _settings
