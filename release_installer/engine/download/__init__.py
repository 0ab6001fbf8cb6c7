# Path: release_installer/engine/download/__init__.py
"""
Download Strategies

Two interchangeable strategies behind one interface:
- ResumableDownloader: single HTTP connection with persisted resume state
- Aria2Downloader: multi-connection transfer through aria2c

Use create_downloader() to pick the configured one.
"""

from typing import Optional

from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.engine.download.base import Downloader
from release_installer.engine.download.resumable import ResumableDownloader
from release_installer.engine.download.aria2 import Aria2Downloader
from release_installer.constants import DOWNLOADER_ARIA2


def create_downloader(config: Optional[ConfigLoader] = None) -> Downloader:
    """Downloader for the configured strategy ('http' or 'aria2')."""
    config = config if config else get_config()
    if config.get('downloader') == DOWNLOADER_ARIA2:
        return Aria2Downloader(config)
    return ResumableDownloader(config)


__all__ = [
    'Downloader',
    'ResumableDownloader',
    'Aria2Downloader',
    'create_downloader',
]
