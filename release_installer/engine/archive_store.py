# Path: release_installer/engine/archive_store.py
"""
Archive Store

Local file layout for downloaded release archives.

Architecture:
- Archives at <archive_dir>/Release-<version>.<ext>
- Resume state beside the archive (<archive>.resumedata)
- aria2 control files (<archive>.aria2) mark incomplete downloads
- In-flight HTTP transfers stream into <archive>.part
- Safe removal and trashing (missing files are not errors, other
  processes may race on the same paths)
"""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from release_installer.core.logger import get_logger
from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.models.catalog import CatalogEntry
from release_installer.engine.errors import UnsupportedArchiveFormat
from release_installer.constants import (
    ARCHIVE_PREFIX,
    RESUME_DATA_SUFFIX,
    ARIA2_CONTROL_SUFFIX,
    PARTIAL_DOWNLOAD_SUFFIX,
    SUPPORTED_ARCHIVE_EXTENSIONS,
    LOG_PROCESS,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')


def _sidecar(path: Path, suffix: str) -> Path:
    return path.with_name(path.name + suffix)


class ArchiveStore:
    """
    Resolves and manages archive paths.

    Example:
        store = ArchiveStore(config)
        archive = store.existing_archive(entry)
        if archive is None:
            archive = await downloader.fetch(entry, store.archive_path(entry))
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize archive store.

        Args:
            config: Optional ConfigLoader instance
        """
        self.config = config if config else get_config()
        self.archive_dir: Path = self.config.get('archive_dir')
        self.trash_dir: Optional[Path] = self.config.get('trash_dir')

    def ensure_directory(self) -> None:
        self.archive_dir.mkdir(parents=True, exist_ok=True)

    # ========================================================================
    # PATHS
    # ========================================================================

    def archive_path(self, entry: CatalogEntry) -> Path:
        """
        Local archive path for a catalog entry.

        Raises:
            UnsupportedArchiveFormat: If the entry's archive type can't be installed
        """
        extension = entry.archive_extension
        if extension not in SUPPORTED_ARCHIVE_EXTENSIONS:
            raise UnsupportedArchiveFormat(extension or entry.filename)
        return self.archive_dir / f"{ARCHIVE_PREFIX}-{entry.version}.{extension}"

    @staticmethod
    def resume_data_path(archive_path: Path) -> Path:
        return _sidecar(archive_path, RESUME_DATA_SUFFIX)

    @staticmethod
    def aria2_control_path(archive_path: Path) -> Path:
        return _sidecar(archive_path, ARIA2_CONTROL_SUFFIX)

    @staticmethod
    def partial_path(archive_path: Path) -> Path:
        return _sidecar(archive_path, PARTIAL_DOWNLOAD_SUFFIX)

    # ========================================================================
    # QUERIES
    # ========================================================================

    def is_usable(self, archive_path: Path) -> bool:
        """
        Whether an archive file is complete.

        A leftover aria2 control file means the multi-connection
        download never finished, whatever the archive file looks like.
        """
        if not archive_path.is_file():
            return False
        if self.aria2_control_path(archive_path).exists():
            logger.info(
                f"{LOG_PROCESS} Ignoring incomplete archive (aria2 control file present): "
                f"{archive_path.name}"
            )
            return False
        return True

    def existing_archive(self, entry: CatalogEntry) -> Optional[Path]:
        """Usable archive for the entry, or None."""
        archive_path = self.archive_path(entry)
        return archive_path if self.is_usable(archive_path) else None

    # ========================================================================
    # REMOVAL
    # ========================================================================

    @staticmethod
    def _unlink(path: Path) -> bool:
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False

    def remove_archive(self, archive_path: Path) -> None:
        """Delete an archive and its download sidecar files."""
        removed = self._unlink(archive_path)
        for sidecar in (
            self.aria2_control_path(archive_path),
            self.resume_data_path(archive_path),
            self.partial_path(archive_path),
        ):
            self._unlink(sidecar)
        if removed:
            logger.info(f"{LOG_OUTPUT} Removed archive {archive_path.name}")

    def trash_archive(self, archive_path: Path) -> Optional[Path]:
        """
        Move an archive to the trash directory.

        Falls back to deleting it when there is no usable trash
        directory. Returns the trashed path, or None when deleted or
        already gone.
        """
        if not archive_path.exists():
            return None

        if self.trash_dir is None or not self.trash_dir.is_dir():
            self.remove_archive(archive_path)
            return None

        destination = self.trash_dir / archive_path.name
        if destination.exists():
            stamp = datetime.now().strftime('%Y%m%d-%H%M%S')
            destination = self.trash_dir / f"{archive_path.stem} {stamp}{archive_path.suffix}"

        try:
            shutil.move(str(archive_path), str(destination))
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Could not trash {archive_path.name} ({e}), deleting instead")
            self.remove_archive(archive_path)
            return None

        self._unlink(self.aria2_control_path(archive_path))
        logger.info(f"{LOG_OUTPUT} Moved archive to trash: {destination}")
        return destination


__all__ = ['ArchiveStore']
