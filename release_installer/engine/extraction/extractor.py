# Path: release_installer/engine/extraction/extractor.py
"""
Archive Extractor

Expands self-verifying .xip archives into an application bundle.

Architecture:
- Runs xip --expand in a per-archive work directory (<archive>.expanding)
- Classifies tool failures: damaged archive, out of disk space, other
- Locates the expanded bundle under its release or prerelease name
- Removes partially expanded output when cancelled or failed
"""

import asyncio
import shutil
import time
from pathlib import Path
from typing import Optional

from release_installer.core.logger import get_logger
from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.engine.shell import ShellRunner, ProcessExecutionError
from release_installer.engine.errors import (
    BundleNotFoundAfterExtraction,
    DamagedArchive,
    ExtractionFailed,
    InsufficientDiskSpace,
    UnsupportedArchiveFormat,
)
from release_installer.models.version import VersionID
from release_installer.constants import (
    BUNDLE_EXTENSION,
    DEFAULT_APP_NAME,
    SUPPORTED_ARCHIVE_EXTENSIONS,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)
from release_installer.engine.constants import (
    XIP_PATH,
    XIP_EXPAND_FLAG,
    XIP_DAMAGED_MARKERS,
    XIP_NO_SPACE_MARKERS,
    EXPANSION_DIR_SUFFIX,
)

logger = get_logger(__name__, 'extraction')


def classify_expansion_failure(
    archive_path: Path,
    error: ProcessExecutionError,
    version: Optional[VersionID] = None
) -> Exception:
    """
    Map an xip failure to a pipeline error.

    Returns:
        DamagedArchive, InsufficientDiskSpace or ExtractionFailed
    """
    stderr = error.stderr
    if any(marker in stderr for marker in XIP_DAMAGED_MARKERS):
        return DamagedArchive(archive_path)
    if any(marker.lower() in stderr.lower() for marker in XIP_NO_SPACE_MARKERS):
        return InsufficientDiskSpace(archive_path, version)
    return ExtractionFailed(archive_path, error.stdout, error.stderr)


def expansion_dir(archive_path: Path) -> Path:
    """Work directory an archive expands into: <archive>.expanding beside it."""
    return archive_path.with_name(f"{archive_path.name}{EXPANSION_DIR_SUFFIX}")


def _remove_tree(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path, ignore_errors=True)
    elif path.exists() or path.is_symlink():
        path.unlink(missing_ok=True)


class XipExtractor:
    """
    Expands release archives.

    Example:
        extractor = XipExtractor(config)
        bundle = await extractor.expand(Path('.../Release-15.0.0.xip'), version)
        # .../Release-15.0.0.xip.expanding/Xcode.app
    """

    def __init__(
        self,
        config: Optional[ConfigLoader] = None,
        runner: Optional[ShellRunner] = None
    ):
        """
        Initialize extractor.

        Args:
            config: Optional ConfigLoader instance
            runner: Process runner
        """
        self.config = config if config else get_config()
        self.runner = runner if runner else ShellRunner()
        self.app_name = self.config.get('app_name', DEFAULT_APP_NAME)

    def candidate_bundle_names(self) -> list[str]:
        """Bundle names an archive can expand to, in lookup order."""
        return [
            f"{self.app_name}{BUNDLE_EXTENSION}",
            f"{self.app_name}-beta{BUNDLE_EXTENSION}",
        ]

    async def expand(self, archive_path: Path, version: Optional[VersionID] = None) -> Path:
        """
        Expand an archive into its own work directory beside it.

        Each archive gets <archive>.expanding/, so pipelines for different
        releases never touch each other's output.

        Args:
            archive_path: .xip archive
            version: Release being installed (for error messages)

        Returns:
            Path of the expanded bundle (inside the work directory)

        Raises:
            UnsupportedArchiveFormat: Not a .xip archive
            DamagedArchive: Archive failed its integrity check
            InsufficientDiskSpace: Not enough space to expand
            ExtractionFailed: Any other tool failure
            BundleNotFoundAfterExtraction: Tool succeeded but no bundle appeared
        """
        extension = archive_path.suffix.lstrip('.').lower()
        if extension not in SUPPORTED_ARCHIVE_EXTENSIONS:
            raise UnsupportedArchiveFormat(extension)

        logger.info(f"{LOG_INPUT} Expanding {archive_path}")

        work_dir = expansion_dir(archive_path)
        candidates = [work_dir / name for name in self.candidate_bundle_names()]

        if work_dir.exists():
            logger.info(f"{LOG_PROCESS} Removing stale {work_dir.name}")
            _remove_tree(work_dir)
        work_dir.mkdir(parents=True)

        start_time = time.time()
        try:
            await self.runner.run(XIP_PATH, XIP_EXPAND_FLAG, archive_path, cwd=work_dir)
        except ProcessExecutionError as e:
            self.discard_output(archive_path)
            error = classify_expansion_failure(archive_path, e, version)
            logger.error(f"{LOG_OUTPUT} Expansion failed: {error}")
            raise error
        except asyncio.CancelledError:
            self.discard_output(archive_path)
            raise

        for candidate in candidates:
            if candidate.exists():
                logger.info(
                    f"{LOG_OUTPUT} Expanded {candidate.name} in {time.time() - start_time:.1f}s"
                )
                return candidate

        self.discard_output(archive_path)
        raise BundleNotFoundAfterExtraction(archive_path, candidates)

    def discard_output(self, archive_path: Path) -> None:
        """Remove the archive's work directory and anything left in it."""
        _remove_tree(expansion_dir(archive_path))


__all__ = ['XipExtractor', 'classify_expansion_failure', 'expansion_dir']
