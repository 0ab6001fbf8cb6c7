# Path: release_installer/core/config_loader.py
"""
Release Installer Configuration Loader

Centralized configuration management for the release installer.
Loads and validates environment variables with type safety and defaults.

Architecture:
- .env loaded once from the project root (python-dotenv)
- Type-safe access with validation
- Sensible defaults for every key (runs without a .env)
- Explicit instances passed to components, get_config() for the default one
"""

import os
from typing import Any, Optional
from pathlib import Path
from dotenv import load_dotenv

from release_installer.constants import (
    ENV_APP_SUPPORT_DIR,
    ENV_INSTALL_DIR,
    ENV_TRASH_DIR,
    ENV_LOG_DIR,
    ENV_CATALOG_URL,
    ENV_DOWNLOADER,
    ENV_ARIA2_PATH,
    ENV_REQUEST_TIMEOUT,
    ENV_CONNECT_TIMEOUT,
    ENV_CHUNK_SIZE,
    ENV_RESUME_RETRY_ATTEMPTS,
    ENV_RESUME_RETRY_DELAY,
    ENV_DAMAGED_ARCHIVE_RETRIES,
    ENV_DOWNLOAD_COOKIES,
    ENV_REQUIRE_SESSION,
    ENV_APP_NAME,
    ENV_BUNDLE_IDENTIFIER,
    ENV_EXPECTED_TEAM_IDENTIFIER,
    ENV_EXPECTED_AUTHORITIES,
    ENV_LOG_LEVEL,
    ENV_LOG_CONSOLE,
    DEFAULT_APP_SUPPORT_DIR,
    DEFAULT_INSTALL_DIR,
    DEFAULT_TRASH_DIR,
    DEFAULT_CATALOG_URL,
    DEFAULT_DOWNLOADER,
    DEFAULT_ARIA2_PATH,
    DEFAULT_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_RESUME_RETRY_ATTEMPTS,
    DEFAULT_RESUME_RETRY_DELAY,
    DEFAULT_DAMAGED_ARCHIVE_RETRIES,
    DEFAULT_APP_NAME,
    DEFAULT_BUNDLE_IDENTIFIER,
    DEFAULT_EXPECTED_TEAM_IDENTIFIER,
    DEFAULT_EXPECTED_AUTHORITIES,
    SUPPORTED_DOWNLOADERS,
    CATALOG_CACHE_FILENAME,
)

_env_loaded = False


def _load_env_file() -> None:
    """Load project .env once per process."""
    global _env_loaded
    if _env_loaded:
        return

    # config_loader.py is at: <root>/release_installer/core/config_loader.py
    project_root = Path(__file__).resolve().parent.parent.parent
    env_path = project_root / '.env'

    if env_path.exists():
        load_dotenv(dotenv_path=env_path, interpolate=True)

    _env_loaded = True


class ConfigLoader:
    """
    Configuration loader for the release installer.

    Loads configuration from environment variables with validation,
    type conversion, and sensible defaults. Unlike a singleton, each
    instance owns its values so tests and embedding callers can build
    their own through override().

    Example:
        config = ConfigLoader()
        install_dir = config.get('install_dir')

        test_config = config.override(install_dir=tmp_path / 'Applications')
    """

    def __init__(self, values: Optional[dict[str, Any]] = None):
        """
        Initialize configuration loader.

        Args:
            values: Explicit configuration values (skips environment loading)
        """
        if values is not None:
            self._config = dict(values)
            return

        _load_env_file()
        self._config = self._load_configuration()

    def _load_configuration(self) -> dict[str, Any]:
        """
        Load and validate all configuration from environment.

        Returns:
            Dictionary of validated configuration values

        Raises:
            ValueError: If a configured value is invalid
        """
        app_support_dir = self._get_path(ENV_APP_SUPPORT_DIR, DEFAULT_APP_SUPPORT_DIR)

        config = {
            # ================================================================
            # DIRECTORY PATHS
            # ================================================================
            'app_support_dir': app_support_dir,
            'archive_dir': app_support_dir,
            'catalog_cache_file': app_support_dir / CATALOG_CACHE_FILENAME,
            'install_dir': self._get_path(ENV_INSTALL_DIR, DEFAULT_INSTALL_DIR),
            'trash_dir': self._get_path(ENV_TRASH_DIR, DEFAULT_TRASH_DIR),
            'log_dir': self._get_path(ENV_LOG_DIR, None),

            # ================================================================
            # CATALOG CONFIGURATION
            # ================================================================
            'catalog_url': self._get_env(ENV_CATALOG_URL, DEFAULT_CATALOG_URL),

            # ================================================================
            # DOWNLOAD CONFIGURATION
            # ================================================================
            'downloader': self._get_downloader(),
            'aria2_path': self._get_path(ENV_ARIA2_PATH, Path(DEFAULT_ARIA2_PATH)),
            'request_timeout': self._get_int(ENV_REQUEST_TIMEOUT, DEFAULT_TIMEOUT),
            'connect_timeout': self._get_int(ENV_CONNECT_TIMEOUT, DEFAULT_CONNECT_TIMEOUT),
            'chunk_size': self._get_int(ENV_CHUNK_SIZE, DEFAULT_CHUNK_SIZE),
            'resume_retry_attempts': self._get_int(
                ENV_RESUME_RETRY_ATTEMPTS, DEFAULT_RESUME_RETRY_ATTEMPTS
            ),
            'resume_retry_delay': self._get_float(
                ENV_RESUME_RETRY_DELAY, DEFAULT_RESUME_RETRY_DELAY
            ),
            'damaged_archive_retries': self._get_int(
                ENV_DAMAGED_ARCHIVE_RETRIES, DEFAULT_DAMAGED_ARCHIVE_RETRIES
            ),
            'download_cookies': self._get_cookies(),
            'require_session': self._get_bool(ENV_REQUIRE_SESSION, True),

            # ================================================================
            # BUNDLE IDENTITY
            # ================================================================
            'app_name': self._get_env(ENV_APP_NAME, DEFAULT_APP_NAME),
            'bundle_identifier': self._get_env(ENV_BUNDLE_IDENTIFIER, DEFAULT_BUNDLE_IDENTIFIER),
            'expected_team_identifier': self._get_env(
                ENV_EXPECTED_TEAM_IDENTIFIER, DEFAULT_EXPECTED_TEAM_IDENTIFIER
            ),
            'expected_certificate_authority': self._get_list(
                ENV_EXPECTED_AUTHORITIES, DEFAULT_EXPECTED_AUTHORITIES
            ),

            # ================================================================
            # LOGGING CONFIGURATION
            # ================================================================
            'log_level': self._get_env(ENV_LOG_LEVEL, 'INFO'),
            'log_console': self._get_bool(ENV_LOG_CONSOLE, False),
        }

        return config

    def _get_env(self, key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
        """
        Get environment variable value.

        Args:
            key: Environment variable name
            default: Default value if not set
            required: Whether variable is required

        Returns:
            Environment variable value or default

        Raises:
            ValueError: If required variable is missing
        """
        value = os.getenv(key)

        if value is None or value == '':
            if required:
                raise ValueError(f"Required environment variable not set: {key}")
            return default

        return value.strip()

    def _get_int(self, key: str, default: int) -> int:
        """Get integer environment variable."""
        value = self._get_env(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Invalid integer value for {key}: {value}")

    def _get_float(self, key: str, default: float) -> float:
        """Get float environment variable."""
        value = self._get_env(key)
        if value is None:
            return default

        try:
            return float(value)
        except ValueError:
            raise ValueError(f"Invalid float value for {key}: {value}")

    def _get_bool(self, key: str, default: bool) -> bool:
        """Get boolean environment variable."""
        value = self._get_env(key)
        if value is None:
            return default

        return value.lower() in ('true', '1', 'yes', 'on')

    def _get_path(self, key: str, default: Optional[Path]) -> Optional[Path]:
        """Get path environment variable, expanding ~."""
        value = self._get_env(key)
        if value is None:
            return default

        return Path(value).expanduser()

    def _get_list(self, key: str, default: list) -> list:
        """Get comma-separated list environment variable."""
        value = self._get_env(key)
        if value is None:
            return list(default)

        return [item.strip() for item in value.split(',') if item.strip()]

    def _get_downloader(self) -> str:
        """Get download strategy name, validated."""
        value = self._get_env(ENV_DOWNLOADER, DEFAULT_DOWNLOADER).lower()
        if value not in SUPPORTED_DOWNLOADERS:
            raise ValueError(
                f"Invalid value for {ENV_DOWNLOADER}: {value} "
                f"(expected one of {', '.join(SUPPORTED_DOWNLOADERS)})"
            )
        return value

    def _get_cookies(self) -> dict[str, str]:
        """
        Get download cookies.

        Format: name=value; name2=value2 (same as a Cookie header).
        """
        value = self._get_env(ENV_DOWNLOAD_COOKIES)
        if value is None:
            return {}

        cookies = {}
        for part in value.split(';'):
            if '=' not in part:
                continue
            name, cookie_value = part.split('=', 1)
            cookies[name.strip()] = cookie_value.strip()
        return cookies

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return self._config.get(key, default)

    def override(self, **values: Any) -> 'ConfigLoader':
        """
        Copy of this configuration with some values replaced.

        Changing app_support_dir also moves archive_dir and the
        catalog cache file unless those are given explicitly.
        """
        merged = dict(self._config)
        if 'app_support_dir' in values:
            support_dir = Path(values['app_support_dir'])
            merged['archive_dir'] = support_dir
            merged['catalog_cache_file'] = support_dir / CATALOG_CACHE_FILENAME
        merged.update(values)
        return ConfigLoader(values=merged)

    def get_all(self) -> dict[str, Any]:
        """Get all configuration values."""
        return self._config.copy()

    def __getitem__(self, key: str) -> Any:
        """Allow dictionary-style access."""
        return self._config[key]

    def __contains__(self, key: str) -> bool:
        """Check if configuration key exists."""
        return key in self._config


_default_config: Optional[ConfigLoader] = None


def get_config() -> ConfigLoader:
    """
    Get the process-wide default configuration.

    Returns:
        ConfigLoader built from the environment on first use
    """
    global _default_config
    if _default_config is None:
        _default_config = ConfigLoader()
    return _default_config


__all__ = ['ConfigLoader', 'get_config']
