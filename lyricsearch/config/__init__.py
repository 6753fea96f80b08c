"""
Configuration package for lyricsearch

Two components live here:

1. Settings Management (settings.py):
   - Application configuration from YAML files and environment variables
   - Validation and reloading

2. Credential Storage (credentials.py):
   - Provider API keys kept outside the YAML configuration
   - Environment variable overrides per provider

Usage:
    from lyricsearch.config import get_settings, FileCredentialStore

    settings = get_settings()
    store = FileCredentialStore(settings.get_credentials_path())
"""

from .settings import get_settings, reload_settings, Settings
from .credentials import CredentialStore, MemoryCredentialStore, FileCredentialStore

__all__ = [
    'get_settings',
    'reload_settings',
    'Settings',
    'CredentialStore',
    'MemoryCredentialStore',
    'FileCredentialStore',
]
