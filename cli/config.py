"""Configuration management for the byp CLI."""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from common.constants import DEFAULT_PACKAGE_NAME, DEFAULT_REGISTRY_URL, MAX_CHUNK_SIZE_BYTES
from common.logging_config import get_logger

logger = get_logger(__name__)


def default_config_path() -> Path:
    return Path.home() / '.byp' / 'config.json'


def read_npmrc_token(npmrc_path: Path, registry_url: str) -> Optional[str]:
    """
    Find the auth token for a registry in an .npmrc file.

    Accepts both the registry-scoped form ('//registry.npmjs.org/:_authToken=...')
    and a bare '_authToken=...' line; the scoped entry wins.

    Args:
        npmrc_path: Path to the .npmrc file
        registry_url: Registry whose token is wanted

    Returns:
        Token string or None
    """
    try:
        lines = npmrc_path.read_text(encoding='utf-8').splitlines()
    except OSError:
        return None

    host_key = '//' + registry_url.split('://', 1)[-1].rstrip('/') + '/:_authToken'
    bare_token = None
    for line in lines:
        line = line.strip()
        if not line or line.startswith(('#', ';')) or '=' not in line:
            continue
        key, value = (part.strip() for part in line.split('=', 1))
        if key == host_key:
            return value
        if key == '_authToken':
            bare_token = value
    return bare_token


class Config:
    """Manages CLI configuration stored in JSON file."""

    DEFAULT_CONFIG = {
        "registry_url": os.environ.get("BYP_REGISTRY_URL", DEFAULT_REGISTRY_URL),
        "package_name": os.environ.get("BYP_PACKAGE_NAME", DEFAULT_PACKAGE_NAME),
        "max_chunk_size": MAX_CHUNK_SIZE_BYTES,
        "scratch_dir": None,
        "timeout": 30,
        "max_retries": 3,
        "retry_backoff_multiplier": 2,
    }

    def __init__(self, config_path: Path, npmrc_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config JSON file (typically ~/.byp/config.json)
            npmrc_path: .npmrc consulted for credentials (defaults to ~/.npmrc)
        """
        self.config_path = config_path
        self.npmrc_path = npmrc_path if npmrc_path is not None else Path.home() / '.npmrc'
        self.data = self._load()

    def _load(self) -> dict:
        """
        Load configuration from file, creating defaults if necessary.

        Returns:
            Configuration dictionary
        """
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError:
            self.config_path = Path(tempfile.gettempdir()) / '.byp' / 'config.json'
            self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError("config root must be an object")
                config = self.DEFAULT_CONFIG.copy()
                config.update(data)
                return config
            except (json.JSONDecodeError, ValueError, IOError) as e:
                backup_path = self.config_path.with_suffix('.json.bak')
                logger.warning(f"Config file {self.config_path} unreadable ({e}), backing up to {backup_path}")
                try:
                    shutil.copy(self.config_path, backup_path)
                except OSError as copy_error:
                    logger.warning(f"Could not back up config file: {copy_error}")
                return self.DEFAULT_CONFIG.copy()
        else:
            config = self.DEFAULT_CONFIG.copy()
            try:
                with open(self.config_path, 'w') as f:
                    json.dump(config, f, indent=2)
            except IOError as e:
                logger.warning(f"Could not write default config to {self.config_path}: {e}")
            return config

    def save(self) -> None:
        """Save current configuration to file."""
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except IOError as e:
            logger.warning(f"Could not save config to {self.config_path}: {e}")

    def get_registry_url(self) -> str:
        """
        Get registry base URL without trailing slash.

        Returns:
            Base URL string (e.g., "https://registry.npmjs.org")
        """
        return str(self.data.get('registry_url') or DEFAULT_REGISTRY_URL).rstrip('/')

    def get_package_name(self) -> str:
        """Scoped registry package that holds every published file."""
        return self.data.get('package_name') or DEFAULT_PACKAGE_NAME

    def get_max_chunk_size(self) -> int:
        return int(self.data.get('max_chunk_size') or MAX_CHUNK_SIZE_BYTES)

    def get_scratch_dir(self) -> Optional[Path]:
        """Parent directory for scratch workspaces (None = system temp)."""
        scratch_dir = self.data.get('scratch_dir')
        return Path(scratch_dir).expanduser() if scratch_dir else None

    def get_auth_token(self) -> Optional[str]:
        """
        Get the registry auth token.

        Lookup order: 'auth_token' in the config file, the NPM_TOKEN
        environment variable, then the .npmrc entry for the registry.

        Returns:
            Token string or None if no credentials are configured
        """
        token = self.data.get('auth_token') or os.environ.get('NPM_TOKEN')
        if token:
            return token
        return read_npmrc_token(self.npmrc_path, self.get_registry_url())

    def set_auth_token(self, token: str) -> None:
        """Set auth token and save to file."""
        self.data['auth_token'] = token
        self.save()

    def get_timeout(self) -> int:
        """
        Get request timeout in seconds.

        Returns:
            Timeout value in seconds
        """
        return self.data.get('timeout', 30)

    def get_retry_config(self) -> dict:
        """
        Get retry configuration.

        Returns:
            Dictionary with 'max_retries' and 'retry_backoff_multiplier'
        """
        return {
            'max_retries': self.data.get('max_retries', 3),
            'retry_backoff_multiplier': self.data.get('retry_backoff_multiplier', 2),
        }
