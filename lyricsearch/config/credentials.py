"""
Provider credential storage

Some lyrics providers (Vagalume, Hymnary.org, Genius) need an API key. This
module stores those keys outside the main YAML configuration so the config
file can be shared without leaking secrets.

Two implementations share the CredentialStore interface:
- MemoryCredentialStore: process-local dictionary, used by tests and embedders
- FileCredentialStore: JSON file with owner-only permissions, with
  environment variable overrides (e.g. GENIUS_API_KEY, HYMNARY_API_KEY)

All methods are coroutines so a store backed by a system keyring or a remote
secret manager can be dropped in without changing callers.
"""

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from ..exceptions import ConfigError
from ..utils.logger import get_logger


def env_var_for(provider_id: str) -> str:
    """Environment variable that overrides the stored key for a provider"""
    return f"{provider_id.upper()}_API_KEY"


class CredentialStore(ABC):
    """
    Interface for provider API key storage

    get returns the stored secret or None, set overwrites the secret (an empty
    value clears it) and delete is idempotent.
    """

    @abstractmethod
    async def get(self, provider_id: str) -> Optional[str]:
        """Stored key for provider_id, or None"""

    @abstractmethod
    async def set(self, provider_id: str, key: Optional[str]) -> None:
        """Store key for provider_id; an empty key removes it"""

    @abstractmethod
    async def delete(self, provider_id: str) -> None:
        """Remove the key for provider_id if present"""

    @abstractmethod
    async def list_keys(self) -> Dict[str, str]:
        """All stored keys by provider id"""


class MemoryCredentialStore(CredentialStore):
    """Credential store kept entirely in memory"""

    def __init__(self, keys: Optional[Dict[str, str]] = None):
        self._keys: Dict[str, str] = dict(keys or {})

    async def get(self, provider_id: str) -> Optional[str]:
        return self._keys.get(provider_id) or None

    async def set(self, provider_id: str, key: Optional[str]) -> None:
        if not provider_id:
            raise ConfigError("provider_id is required")
        if not key:
            await self.delete(provider_id)
            return
        self._keys[provider_id] = key

    async def delete(self, provider_id: str) -> None:
        self._keys.pop(provider_id, None)

    async def list_keys(self) -> Dict[str, str]:
        return dict(self._keys)


class FileCredentialStore(CredentialStore):
    """
    Credential store persisted as a JSON file

    The file maps provider ids to {"key": ..., "saved_at": ...} records and
    is written with 0600 permissions on Unix-like systems. Environment
    variables named <PROVIDER>_API_KEY take precedence over stored keys.
    """

    def __init__(self, path: Union[str, Path]):
        """
        Initialize file-backed credential store

        Args:
            path: Location of the JSON key file (created on first write)
        """
        self.path = Path(path).expanduser()
        self.logger = get_logger(__name__)

    def _read(self) -> Dict[str, Dict[str, str]]:
        """
        Load stored keys from disk

        A missing file is an empty store. A corrupted file is reported and
        treated as empty so searches keep working without provider keys.
        """
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self.logger.warning(f"Failed to read provider keys from {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            self.logger.warning(f"Ignoring malformed provider key file: {self.path}")
            return {}

        return {k: v for k, v in data.items() if isinstance(v, dict) and v.get('key')}

    def _write(self, data: Dict[str, Dict[str, str]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            raise ConfigError(f"Failed to save provider keys to {self.path}: {e}", details={'path': str(self.path)})

        try:
            # 0o600 = owner read/write only
            self.path.chmod(0o600)
        except OSError:
            # Windows doesn't support chmod
            pass

    async def get(self, provider_id: str) -> Optional[str]:
        if not provider_id:
            return None

        env_value = os.getenv(env_var_for(provider_id))
        if env_value:
            return env_value

        record = self._read().get(provider_id)
        return record['key'] if record else None

    async def set(self, provider_id: str, key: Optional[str]) -> None:
        if not provider_id:
            raise ConfigError("provider_id is required")

        if not key:
            await self.delete(provider_id)
            return

        data = self._read()
        data[provider_id] = {'key': key, 'saved_at': datetime.now().isoformat()}
        self._write(data)
        self.logger.info(f"Stored API key for provider: {provider_id}")

    async def delete(self, provider_id: str) -> None:
        if not provider_id:
            return

        data = self._read()
        if provider_id in data:
            del data[provider_id]
            self._write(data)
            self.logger.info(f"Removed API key for provider: {provider_id}")

    async def list_keys(self) -> Dict[str, str]:
        """Stored keys only; environment overrides are resolved per provider by get()"""
        return {provider_id: record['key'] for provider_id, record in self._read().items()}
