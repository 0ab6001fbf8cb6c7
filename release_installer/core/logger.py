# Path: release_installer/core/logger.py
"""
Release Installer Logger

Centralized logging configuration for the release installer.

Architecture:
- Component-based logging (core, engine, download, extraction, cli)
- File and console output
- Configurable log levels
- IPO (Input-Process-Output) structured logging
"""

import logging
from typing import Optional

from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.constants import (
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOGGER_ROOT,
    LOGGER_CORE,
    LOGGER_ENGINE,
    LOGGER_DOWNLOAD,
    LOGGER_EXTRACTION,
    LOGGER_CLI,
)

_COMPONENT_LOGGERS = {
    'core': LOGGER_CORE,
    'engine': LOGGER_ENGINE,
    'download': LOGGER_DOWNLOAD,
    'extraction': LOGGER_EXTRACTION,
    'cli': LOGGER_CLI,
}


class InstallerLogger:
    """
    Centralized logger for the release installer.

    Provides component-specific loggers with unified configuration.
    Configuration is deferred until the first logger is requested.

    Example:
        logger = get_logger(__name__, 'engine')
        logger.info("[INPUT] Installing 15.0.0")
        logger.info("[PROCESS] Unarchiving Release-15.0.0.xip")
        logger.info("[OUTPUT] Installed /Applications/Xcode-15.0.0.app")
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize installer logger.

        Args:
            config: Optional ConfigLoader instance
        """
        self.config = config
        self._configured = False

    def configure(self) -> None:
        """Configure logging system for the installer."""
        if self._configured:
            return

        config = self.config if self.config else get_config()

        log_dir = config.get('log_dir')
        log_level = config.get('log_level', 'INFO')
        console_output = config.get('log_console', False)
        level = getattr(logging, str(log_level).upper(), logging.INFO)
        formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        logger = logging.getLogger(LOGGER_ROOT)
        logger.setLevel(level)

        # Clear any existing handlers
        logger.handlers.clear()

        if log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_dir / 'installer_activity.log')
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

            # Transfer-specific log file
            download_handler = logging.FileHandler(log_dir / 'downloads.log')
            download_handler.setLevel(logging.DEBUG)
            download_handler.setFormatter(formatter)
            logging.getLogger(LOGGER_DOWNLOAD).addHandler(download_handler)

            # Error-only log file
            error_handler = logging.FileHandler(log_dir / 'errors.log')
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(formatter)
            logger.addHandler(error_handler)

        if console_output:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

        self._configured = True

    def get_logger(self, name: str, component: str = 'core') -> logging.Logger:
        """
        Get logger for specific component.

        Args:
            name: Module name (typically __name__)
            component: Component type ('core', 'engine', 'download', 'extraction', 'cli')

        Returns:
            Configured logger instance
        """
        if not self._configured:
            self.configure()

        prefix = _COMPONENT_LOGGERS.get(component, LOGGER_ROOT)
        return logging.getLogger(component_logger_name(name, prefix))


def component_logger_name(name: str, prefix: str) -> str:
    """
    Place a module logger under its component logger.

    A module already under the component logger keeps its name. Other
    package modules keep only their last segment, so
    'release_installer.engine.protocol_handlers' under the download
    component becomes 'release_installer.download.protocol_handlers'.
    """
    if name == prefix or name.startswith(f"{prefix}."):
        return name
    if name.startswith(f"{LOGGER_ROOT}."):
        name = name.rsplit('.', 1)[-1]
    return f"{prefix}.{name}"


# Global logger instance
_installer_logger = InstallerLogger()


def get_logger(name: str, component: str = 'core') -> logging.Logger:
    """
    Get logger for an installer component.

    Args:
        name: Module name (typically __name__)
        component: Component type ('core', 'engine', 'download', 'extraction', 'cli')

    Returns:
        Logger instance

    Example:
        from release_installer.core.logger import get_logger

        logger = get_logger(__name__, 'download')
        logger.info("[PROCESS] Resuming from byte 1048576")
    """
    return _installer_logger.get_logger(name, component)


def configure_logging(config: Optional[ConfigLoader] = None) -> None:
    """
    Configure installer logging system.

    Call this once at program start; later calls with a config
    replace the handlers.

    Args:
        config: Optional ConfigLoader instance
    """
    global _installer_logger

    if config:
        _installer_logger = InstallerLogger(config)

    _installer_logger.configure()


__all__ = ['get_logger', 'configure_logging', 'component_logger_name', 'InstallerLogger']
