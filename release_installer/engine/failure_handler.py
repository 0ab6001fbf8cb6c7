# Path: release_installer/engine/failure_handler.py
"""
Failure Handler

Recovery decisions and cleanup for failed or cancelled pipeline runs.

Architecture:
- Structured failure logging (stage, error kind, message)
- Damaged-archive recovery policy (bounded, managed archives only)
- Best-effort cleanup after a cancelled run has moved the bundle
"""

import shutil
from pathlib import Path
from typing import Optional

from release_installer.core.logger import get_logger
from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.engine.archive_store import ArchiveStore
from release_installer.engine.errors import DamagedArchive
from release_installer.models.version import VersionID
from release_installer.constants import DEFAULT_DAMAGED_ARCHIVE_RETRIES, LOG_PROCESS, LOG_OUTPUT

logger = get_logger(__name__, 'engine')


class FailureHandler:
    """
    Handles pipeline failures.

    Example:
        handler = FailureHandler(archive_store, config)
        if handler.should_retry_damaged(error, downloaded=True, retries_used=0):
            handler.discard_damaged_archive(error.archive_path)
    """

    def __init__(self, archive_store: ArchiveStore, config: Optional[ConfigLoader] = None):
        """
        Initialize failure handler.

        Args:
            archive_store: Store owning the archive files
            config: Optional ConfigLoader instance
        """
        self.config = config if config else get_config()
        self.archive_store = archive_store
        self.max_damaged_retries = self.config.get(
            'damaged_archive_retries', DEFAULT_DAMAGED_ARCHIVE_RETRIES
        )

    def log_failure(self, version: VersionID, stage: str, error: BaseException) -> None:
        logger.error(
            f"{LOG_OUTPUT} Installing {version.display_name} failed during {stage}: "
            f"{type(error).__name__}: {error}"
        )

    def should_retry_damaged(self, error: BaseException, managed: bool, retries_used: int) -> bool:
        """
        Whether a damaged archive warrants a fresh download.

        Only archives kept in the archive directory are discarded and
        downloaded again; archives the user supplied are left alone.
        """
        if not isinstance(error, DamagedArchive):
            return False
        if not managed:
            logger.info(f"{LOG_PROCESS} Damaged archive was supplied by the user, not retrying")
            return False
        return retries_used < self.max_damaged_retries

    def discard_damaged_archive(self, archive_path: Path) -> None:
        logger.warning(f"{LOG_PROCESS} Deleting damaged archive {archive_path.name} and downloading again")
        self.archive_store.remove_archive(archive_path)

    def cleanup_after_cancel(self, bundle_path: Optional[Path], archive_path: Optional[Path]) -> None:
        """
        Remove the moved bundle and any leftover archive.

        Runs synchronously so a second cancellation can't interrupt it.
        Errors are logged, never raised.
        """
        if bundle_path is not None and bundle_path.exists():
            try:
                shutil.rmtree(bundle_path)
                logger.info(f"{LOG_OUTPUT} Removed cancelled install {bundle_path}")
            except OSError as e:
                logger.warning(f"Could not remove {bundle_path} after cancel: {e}")

        if archive_path is not None:
            try:
                self.archive_store.remove_archive(archive_path)
            except OSError as e:
                logger.warning(f"Could not remove {archive_path} after cancel: {e}")


__all__ = ['FailureHandler']
