# Path: release_installer/core/data_paths.py
"""
Release Installer Data Paths Manager

Automatic directory creation for the installer's working directories.

Architecture:
- Creates the application support directory (archives, resume data, catalog cache)
- Creates the log directory when file logging is configured
- Never creates the install directory (owned by the OS)
"""

from pathlib import Path
from typing import Optional

from release_installer.core.config_loader import ConfigLoader, get_config


class DataPathsManager:
    """
    Manages working directory creation for the installer.

    Example:
        manager = DataPathsManager(config)
        result = manager.ensure_all_directories()
        if result['failed']:
            print("Could not prepare working directories")
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize data paths manager.

        Args:
            config: Optional ConfigLoader instance
        """
        self.config = config if config else get_config()

    def get_required_directories(self) -> list[Path]:
        """Directories the installer writes into."""
        directories = [self.config.get('app_support_dir')]

        archive_dir = self.config.get('archive_dir')
        if archive_dir and archive_dir not in directories:
            directories.append(archive_dir)

        log_dir = self.config.get('log_dir')
        if log_dir:
            directories.append(log_dir)

        return [d for d in directories if d]

    def ensure_all_directories(self) -> dict[str, list]:
        """
        Create every required directory.

        Returns:
            Dictionary with 'created', 'existing' and 'failed' lists
        """
        results = {
            'created': [],
            'existing': [],
            'failed': [],
        }

        for directory in self.get_required_directories():
            if directory.exists():
                results['existing'].append(directory)
                continue

            try:
                directory.mkdir(parents=True, exist_ok=True)
                results['created'].append(directory)
            except OSError as e:
                results['failed'].append((directory, str(e)))

        return results


__all__ = ['DataPathsManager']
