# Path: release_installer/constants.py
"""
Release Installer Constants

Module-wide constants for release acquisition and installation.
Component-specific constants go in engine/constants.py.

No hardcoded user paths - all paths come from .env via config_loader.
"""

from pathlib import Path

# ============================================================================
# INSTALL STATE VALUES
# ============================================================================
STATE_NOT_INSTALLED: str = 'not_installed'
STATE_INSTALLING: str = 'installing'
STATE_INSTALLED: str = 'installed'

# ============================================================================
# INSTALL STEP VALUES (ordered)
# ============================================================================
STEP_DOWNLOADING: str = 'downloading'
STEP_UNARCHIVING: str = 'unarchiving'
STEP_MOVING: str = 'moving'
STEP_TRASHING_ARCHIVE: str = 'trashing_archive'
STEP_CHECKING_SECURITY: str = 'checking_security'
STEP_FINISHING: str = 'finishing'
INSTALL_STEP_ORDER: tuple = (
    STEP_DOWNLOADING,
    STEP_UNARCHIVING,
    STEP_MOVING,
    STEP_TRASHING_ARCHIVE,
    STEP_CHECKING_SECURITY,
    STEP_FINISHING,
)

# ============================================================================
# HTTP STATUS CODES
# ============================================================================
HTTP_OK: int = 200
HTTP_PARTIAL_CONTENT: int = 206
HTTP_RANGE_NOT_SATISFIABLE: int = 416
HTTP_TOO_MANY_REQUESTS: int = 429
HTTP_SERVER_ERROR: int = 500
HTTP_BAD_GATEWAY: int = 502
HTTP_SERVICE_UNAVAILABLE: int = 503
HTTP_GATEWAY_TIMEOUT: int = 504
RETRYABLE_STATUS_CODES: list = [
    HTTP_TOO_MANY_REQUESTS,
    HTTP_SERVER_ERROR,
    HTTP_BAD_GATEWAY,
    HTTP_SERVICE_UNAVAILABLE,
    HTTP_GATEWAY_TIMEOUT
]

# ============================================================================
# DOWNLOAD CONFIGURATION DEFAULTS
# ============================================================================
DEFAULT_CHUNK_SIZE: int = 1048576  # 1MB chunks, archives are multi-GB
DEFAULT_TIMEOUT: int = 0  # 0 = no total timeout for multi-GB transfers
DEFAULT_CONNECT_TIMEOUT: int = 30
DEFAULT_RESUME_RETRY_ATTEMPTS: int = 3
DEFAULT_RESUME_RETRY_DELAY: float = 2.0
DEFAULT_DAMAGED_ARCHIVE_RETRIES: int = 1
DEFAULT_DOWNLOADER: str = 'http'
DOWNLOADER_HTTP: str = 'http'
DOWNLOADER_ARIA2: str = 'aria2'
SUPPORTED_DOWNLOADERS: tuple = (DOWNLOADER_HTTP, DOWNLOADER_ARIA2)
DEFAULT_ARIA2_PATH: str = '/usr/local/bin/aria2c'

# ============================================================================
# CATALOG DEFAULTS
# ============================================================================
DEFAULT_CATALOG_URL: str = ''  # normalized JSON catalog, set in .env
CATALOG_CACHE_FILENAME: str = 'available-releases.json'
CATALOG_REFRESH_INTERVAL_HOURS: int = 24

# ============================================================================
# BUNDLE IDENTITY DEFAULTS
# ============================================================================
DEFAULT_APP_NAME: str = 'Xcode'
DEFAULT_BUNDLE_IDENTIFIER: str = 'com.apple.dt.Xcode'
DEFAULT_BETA_ICON_NAME: str = 'XcodeBeta'
DEFAULT_EXPECTED_TEAM_IDENTIFIER: str = '59GAB85EFG'
DEFAULT_EXPECTED_AUTHORITIES: list = [
    'Software Signing',
    'Apple Code Signing Certification Authority',
    'Apple Root CA',
]

# ============================================================================
# FILE LAYOUT
# ============================================================================
ARCHIVE_PREFIX: str = 'Release'
RESUME_DATA_SUFFIX: str = '.resumedata'
ARIA2_CONTROL_SUFFIX: str = '.aria2'
PARTIAL_DOWNLOAD_SUFFIX: str = '.part'
BUNDLE_EXTENSION: str = '.app'
INSTALL_CHECK_MARKER_PREFIX: str = 'com.vendor.app.InstallCheckCache'
SUPPORTED_ARCHIVE_EXTENSIONS: set = {'xip'}

DEFAULT_APP_SUPPORT_DIR: Path = Path.home() / 'Library' / 'Application Support' / 'release-installer'
DEFAULT_INSTALL_DIR: Path = Path('/Applications')
DEFAULT_TRASH_DIR: Path = Path.home() / '.Trash'

# ============================================================================
# LOGGING CONFIGURATION
# ============================================================================
LOG_FORMAT: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT: str = '%Y-%m-%d %H:%M:%S'

# IPO logging prefixes
LOG_INPUT: str = '[INPUT]'
LOG_PROCESS: str = '[PROCESS]'
LOG_OUTPUT: str = '[OUTPUT]'

# Component logger names
LOGGER_ROOT: str = 'release_installer'
LOGGER_CORE: str = 'release_installer.core'
LOGGER_ENGINE: str = 'release_installer.engine'
LOGGER_DOWNLOAD: str = 'release_installer.download'
LOGGER_EXTRACTION: str = 'release_installer.extraction'
LOGGER_CLI: str = 'release_installer.cli'

# ============================================================================
# ENVIRONMENT VARIABLE NAMES
# ============================================================================
# Paths
ENV_APP_SUPPORT_DIR: str = 'RELEASE_INSTALLER_APP_SUPPORT_DIR'
ENV_INSTALL_DIR: str = 'RELEASE_INSTALLER_INSTALL_DIR'
ENV_TRASH_DIR: str = 'RELEASE_INSTALLER_TRASH_DIR'
ENV_LOG_DIR: str = 'RELEASE_INSTALLER_LOG_DIR'

# Catalog
ENV_CATALOG_URL: str = 'RELEASE_INSTALLER_CATALOG_URL'

# Transfer
ENV_DOWNLOADER: str = 'RELEASE_INSTALLER_DOWNLOADER'
ENV_ARIA2_PATH: str = 'RELEASE_INSTALLER_ARIA2_PATH'
ENV_REQUEST_TIMEOUT: str = 'RELEASE_INSTALLER_REQUEST_TIMEOUT'
ENV_CONNECT_TIMEOUT: str = 'RELEASE_INSTALLER_CONNECT_TIMEOUT'
ENV_CHUNK_SIZE: str = 'RELEASE_INSTALLER_CHUNK_SIZE'
ENV_RESUME_RETRY_ATTEMPTS: str = 'RELEASE_INSTALLER_RESUME_RETRY_ATTEMPTS'
ENV_RESUME_RETRY_DELAY: str = 'RELEASE_INSTALLER_RESUME_RETRY_DELAY'
ENV_DAMAGED_ARCHIVE_RETRIES: str = 'RELEASE_INSTALLER_DAMAGED_ARCHIVE_RETRIES'
ENV_DOWNLOAD_COOKIES: str = 'RELEASE_INSTALLER_DOWNLOAD_COOKIES'
ENV_REQUIRE_SESSION: str = 'RELEASE_INSTALLER_REQUIRE_SESSION'

# Bundle identity
ENV_APP_NAME: str = 'RELEASE_INSTALLER_APP_NAME'
ENV_BUNDLE_IDENTIFIER: str = 'RELEASE_INSTALLER_BUNDLE_IDENTIFIER'
ENV_EXPECTED_TEAM_IDENTIFIER: str = 'RELEASE_INSTALLER_EXPECTED_TEAM_IDENTIFIER'
ENV_EXPECTED_AUTHORITIES: str = 'RELEASE_INSTALLER_EXPECTED_AUTHORITIES'

# Logging
ENV_LOG_LEVEL: str = 'RELEASE_INSTALLER_LOG_LEVEL'
ENV_LOG_CONSOLE: str = 'RELEASE_INSTALLER_LOG_CONSOLE'


__all__ = [
    'STATE_NOT_INSTALLED',
    'STATE_INSTALLING',
    'STATE_INSTALLED',
    'STEP_DOWNLOADING',
    'STEP_UNARCHIVING',
    'STEP_MOVING',
    'STEP_TRASHING_ARCHIVE',
    'STEP_CHECKING_SECURITY',
    'STEP_FINISHING',
    'INSTALL_STEP_ORDER',
    'HTTP_OK',
    'HTTP_PARTIAL_CONTENT',
    'HTTP_RANGE_NOT_SATISFIABLE',
    'HTTP_TOO_MANY_REQUESTS',
    'HTTP_SERVER_ERROR',
    'HTTP_BAD_GATEWAY',
    'HTTP_SERVICE_UNAVAILABLE',
    'HTTP_GATEWAY_TIMEOUT',
    'RETRYABLE_STATUS_CODES',
    'DEFAULT_CHUNK_SIZE',
    'DEFAULT_TIMEOUT',
    'DEFAULT_CONNECT_TIMEOUT',
    'DEFAULT_RESUME_RETRY_ATTEMPTS',
    'DEFAULT_RESUME_RETRY_DELAY',
    'DEFAULT_DAMAGED_ARCHIVE_RETRIES',
    'DEFAULT_DOWNLOADER',
    'DOWNLOADER_HTTP',
    'DOWNLOADER_ARIA2',
    'SUPPORTED_DOWNLOADERS',
    'DEFAULT_ARIA2_PATH',
    'DEFAULT_CATALOG_URL',
    'CATALOG_CACHE_FILENAME',
    'CATALOG_REFRESH_INTERVAL_HOURS',
    'DEFAULT_APP_NAME',
    'DEFAULT_BUNDLE_IDENTIFIER',
    'DEFAULT_BETA_ICON_NAME',
    'DEFAULT_EXPECTED_TEAM_IDENTIFIER',
    'DEFAULT_EXPECTED_AUTHORITIES',
    'ARCHIVE_PREFIX',
    'RESUME_DATA_SUFFIX',
    'ARIA2_CONTROL_SUFFIX',
    'PARTIAL_DOWNLOAD_SUFFIX',
    'BUNDLE_EXTENSION',
    'INSTALL_CHECK_MARKER_PREFIX',
    'SUPPORTED_ARCHIVE_EXTENSIONS',
    'DEFAULT_APP_SUPPORT_DIR',
    'DEFAULT_INSTALL_DIR',
    'DEFAULT_TRASH_DIR',
    'LOG_FORMAT',
    'LOG_DATE_FORMAT',
    'LOG_INPUT',
    'LOG_PROCESS',
    'LOG_OUTPUT',
    'LOGGER_ROOT',
    'LOGGER_CORE',
    'LOGGER_ENGINE',
    'LOGGER_DOWNLOAD',
    'LOGGER_EXTRACTION',
    'LOGGER_CLI',
    'ENV_APP_SUPPORT_DIR',
    'ENV_INSTALL_DIR',
    'ENV_TRASH_DIR',
    'ENV_LOG_DIR',
    'ENV_CATALOG_URL',
    'ENV_DOWNLOADER',
    'ENV_ARIA2_PATH',
    'ENV_REQUEST_TIMEOUT',
    'ENV_CONNECT_TIMEOUT',
    'ENV_CHUNK_SIZE',
    'ENV_RESUME_RETRY_ATTEMPTS',
    'ENV_RESUME_RETRY_DELAY',
    'ENV_DAMAGED_ARCHIVE_RETRIES',
    'ENV_DOWNLOAD_COOKIES',
    'ENV_REQUIRE_SESSION',
    'ENV_APP_NAME',
    'ENV_BUNDLE_IDENTIFIER',
    'ENV_EXPECTED_TEAM_IDENTIFIER',
    'ENV_EXPECTED_AUTHORITIES',
    'ENV_LOG_LEVEL',
    'ENV_LOG_CONSOLE',
]
