# Path: release_installer/engine/coordinator.py
"""
Installation Coordinator

Main workflow orchestrator for release installation.
Coordinates: acquire -> unarchive -> move -> trash archive -> verify -> finish.

Architecture:
- Collaborators passed in at construction (InstallerServices)
- Per-version state machine: NotInstalled -> Installing(step) -> Installed | NotInstalled
- At most one pipeline per version at a time
- Damaged-archive recovery via FailureHandler
- Filesystem reflects reality: "already installed" and "archive present"
  are re-checked right before acting
- IPO logging throughout
"""

import asyncio
import shutil
import time
from pathlib import Path
from typing import Optional, Sequence

from release_installer.core.logger import get_logger
from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.engine.archive_store import ArchiveStore
from release_installer.engine.collaborators import InstallerServices
from release_installer.engine.download import create_downloader
from release_installer.engine.errors import (
    AlreadyInstalled,
    AuthenticationRequired,
    DamagedArchive,
    FailedToMoveBundle,
    InstallationInProgress,
    MissingHelperConsent,
    PostInstallStepsNotPerformed,
)
from release_installer.engine.extraction import XipExtractor
from release_installer.engine.failure_handler import FailureHandler
from release_installer.engine.post_installer import PostInstaller
from release_installer.engine.reconciler import CatalogReconciler, find_installed
from release_installer.engine.result import InstallResult
from release_installer.engine.shell import ShellRunner
from release_installer.engine.verifier import Verifier
from release_installer.models.catalog import CatalogEntry
from release_installer.models.installed import InstalledBundle
from release_installer.models.progress import DownloadProgress
from release_installer.models.state import (
    InstallationRecord,
    InstallState,
    InstallStep,
    InstallStepKind,
    Installed,
    Installing,
    NotInstalled,
)
from release_installer.models.version import VersionID
from release_installer.constants import (
    BUNDLE_EXTENSION,
    DEFAULT_APP_NAME,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')


class InstallationCoordinator:
    """
    Coordinates complete installation workflow.

    Workflow:
    1. Check the release is not installed (fresh scan of the install directory)
    2. Acquire: reuse a complete archive or download one
    3. Unarchive the bundle next to the archive
    4. Move it to <install_dir>/<App>-<version>.app
    5. Trash the archive
    6. Verify security assessment and signing identity
    7. Finish with the privileged post-install steps (failures are warnings)

    CRITICAL: The record never stays in Installing once install() returns or raises.

    Example:
        coordinator = InstallationCoordinator(InstallerServices(helper, consent), config)
        result = await coordinator.install(entry)
        await coordinator.close()
    """

    def __init__(self, services: InstallerServices, config: Optional[ConfigLoader] = None):
        """
        Initialize installation coordinator.

        Args:
            services: External collaborators and optional engine overrides
            config: Optional ConfigLoader instance
        """
        self.config = config if config else get_config()
        self.services = services
        self.observer = services.observer

        self.runner = services.runner if services.runner else ShellRunner()
        self.archive_store = services.archive_store if services.archive_store else ArchiveStore(self.config)
        self.downloader = services.downloader if services.downloader else create_downloader(self.config)
        self.extractor = services.extractor if services.extractor else XipExtractor(self.config, self.runner)
        self.verifier = services.verifier if services.verifier else Verifier(self.config, self.runner)
        self.post_installer = services.post_installer if services.post_installer else PostInstaller(
            services.helper, services.consent, self.config, self.runner
        )

        self.reconciler = CatalogReconciler(self.config)
        self.failure_handler = FailureHandler(self.archive_store, self.config)

        self.install_dir: Path = self.config.get('install_dir')
        self.app_name: str = self.config.get('app_name', DEFAULT_APP_NAME)
        self.require_session: bool = self.config.get('require_session', True)

        self.records: dict[VersionID, InstallationRecord] = {}
        self._in_flight: set[str] = set()

    # ========================================================================
    # RECORDS
    # ========================================================================

    def refresh_records(
        self,
        catalog: Sequence[CatalogEntry],
        installed: Optional[Sequence[InstalledBundle]] = None
    ) -> list[InstallationRecord]:
        """
        Rebuild records from a catalog and the installed bundles.

        Records of versions with a pipeline in flight are kept as they are.
        """
        records = []
        for record in self.reconciler.reconcile(catalog, installed):
            if record.version.description_without_build_metadata in self._in_flight:
                current = self._lookup_record(record.version)
                if current is not None:
                    record = current
            records.append(record)

        self.records = {record.version: record for record in records}
        return records

    def _lookup_record(self, version: VersionID) -> Optional[InstallationRecord]:
        record = self.records.get(version)
        if record is not None:
            return record
        for candidate in self.records.values():
            if candidate.version.is_equivalent_for_install_matching(version):
                return candidate
        return None

    def record_for(self, version: VersionID) -> InstallationRecord:
        """Record for a version, created NotInstalled when unknown."""
        record = self._lookup_record(version)
        if record is None:
            record = InstallationRecord(version=version)
            self.records[version] = record
        return record

    def _set_state(self, record: InstallationRecord, state: InstallState) -> None:
        record.state = state
        self.observer.state_changed(record.version, state)

    def _set_step(self, record: InstallationRecord, step: InstallStep) -> None:
        self._set_state(record, Installing(step))
        self.observer.step_changed(record.version, step)

    def bundle_destination(self, version: VersionID) -> Path:
        """Canonical install path, named without build metadata."""
        return self.install_dir / f"{self.app_name}-{version.description_without_build_metadata}{BUNDLE_EXTENSION}"

    def find_installed(self, version: VersionID) -> Optional[InstalledBundle]:
        return find_installed(version, self.reconciler.scan_installed(self.install_dir))

    # ========================================================================
    # ENTRY POINTS
    # ========================================================================

    async def install(self, entry: CatalogEntry) -> InstallResult:
        """
        Install a catalog release, downloading it when needed.

        Raises:
            AlreadyInstalled: An equivalent bundle is already installed
            InstallationInProgress: This version is already being installed
            AuthenticationRequired: Download needed but no valid session
            InstallationError: Any other pipeline failure
        """
        return await self._guarded(entry, None)

    async def install_archive(self, entry: CatalogEntry, archive_path: Path) -> InstallResult:
        """
        Install a release from an archive the user already has.

        The archive is never deleted for damaged-archive recovery.
        """
        return await self._guarded(entry, Path(archive_path))

    async def _guarded(self, entry: CatalogEntry, user_archive: Optional[Path]) -> InstallResult:
        key = entry.version.description_without_build_metadata
        if key in self._in_flight:
            raise InstallationInProgress(entry.version)

        self._in_flight.add(key)
        try:
            return await self._run(entry, user_archive)
        finally:
            self._in_flight.discard(key)

    # ========================================================================
    # PIPELINE
    # ========================================================================

    async def _run(self, entry: CatalogEntry, user_archive: Optional[Path]) -> InstallResult:
        version = entry.version
        record = self.record_for(version)
        start_time = time.time()

        logger.info(f"{LOG_INPUT} Installing {version.display_name} ({version})")

        attempts = 0
        retries_used = 0
        downloaded_any = False

        try:
            existing = self.find_installed(version)
            if existing is not None:
                raise AlreadyInstalled(existing)

            while True:
                attempts += 1
                if user_archive is not None:
                    archive_path, downloaded = user_archive, False
                else:
                    archive_path, downloaded = await self._acquire(entry, record)
                downloaded_any = downloaded_any or downloaded

                try:
                    bundle_path, warnings = await self._install_from_archive(
                        version, record, archive_path, managed_archive=user_archive is None
                    )
                except DamagedArchive as e:
                    if not self.failure_handler.should_retry_damaged(e, user_archive is None, retries_used):
                        raise
                    retries_used += 1
                    self.failure_handler.discard_damaged_archive(e.archive_path)
                    continue
                break

        except AlreadyInstalled as e:
            logger.info(f"{LOG_OUTPUT} {version.display_name} already installed at {e.path}")
            self._set_state(record, Installed(e.path))
            raise
        except asyncio.CancelledError:
            logger.warning(f"{LOG_OUTPUT} Installation of {version.display_name} cancelled")
            self._set_state(record, NotInstalled())
            raise
        except Exception as e:
            stage = record.state.step.kind.value if isinstance(record.state, Installing) else 'preflight'
            self.failure_handler.log_failure(version, stage, e)
            self._set_state(record, NotInstalled())
            raise

        self._set_state(record, Installed(bundle_path))

        result = InstallResult(
            version=version,
            bundle_path=bundle_path,
            archive_downloaded=downloaded_any,
            attempts=attempts,
            duration=time.time() - start_time,
            warnings=warnings,
        )
        logger.info(
            f"{LOG_OUTPUT} Installed {version.display_name} at {bundle_path} "
            f"in {result.duration:.1f}s ({attempts} attempt(s), {len(warnings)} warning(s))"
        )
        return result

    async def _acquire(self, entry: CatalogEntry, record: InstallationRecord) -> tuple[Path, bool]:
        """
        Reuse a complete archive or download one.

        Returns:
            (archive path, whether it was downloaded by this call)
        """
        version = entry.version

        # Another process may have installed or downloaded it meanwhile
        existing = self.find_installed(version)
        if existing is not None:
            raise AlreadyInstalled(existing)

        archive_path = self.archive_store.existing_archive(entry)
        if archive_path is not None:
            logger.info(f"{LOG_PROCESS} Using existing archive {archive_path}")
            return archive_path, False

        session = self.services.session
        if self.require_session and not await session.is_session_valid():
            raise AuthenticationRequired(version)

        cookies = dict(self.config.get('download_cookies') or {})
        cookies.update(await session.download_cookies())

        destination = self.archive_store.archive_path(entry)
        self.archive_store.ensure_directory()

        def on_progress(progress: DownloadProgress) -> None:
            self._set_step(record, InstallStep.downloading(progress))

        self._set_step(record, InstallStep.downloading())
        logger.info(f"{LOG_PROCESS} Downloading {entry.download_url} with {self.downloader.name}")
        path = await self.downloader.fetch(entry.download_url, destination, cookies, on_progress)
        return path, True

    async def _install_from_archive(
        self,
        version: VersionID,
        record: InstallationRecord,
        archive_path: Path,
        managed_archive: bool
    ) -> tuple[Path, list[Exception]]:
        self._set_step(record, InstallStep(InstallStepKind.UNARCHIVING))
        expanded = await self.extractor.expand(archive_path, version)

        destination = self.bundle_destination(version)
        try:
            self._set_step(record, InstallStep.moving(destination))
            await self._move_bundle(expanded, destination)
            self.extractor.discard_output(archive_path)

            self._set_step(record, InstallStep(InstallStepKind.TRASHING_ARCHIVE))
            self.archive_store.trash_archive(archive_path)

            self._set_step(record, InstallStep(InstallStepKind.CHECKING_SECURITY))
            await self.verifier.verify(InstalledBundle(destination, version))

            self._set_step(record, InstallStep(InstallStepKind.FINISHING))
            warnings = await self._finish(destination, version)
        except asyncio.CancelledError:
            self.extractor.discard_output(archive_path)
            self.failure_handler.cleanup_after_cancel(
                destination, archive_path if managed_archive else None
            )
            raise
        except FailedToMoveBundle:
            self.extractor.discard_output(archive_path)
            raise

        return destination, warnings

    async def _move_bundle(self, source: Path, destination: Path) -> None:
        """
        Move the expanded bundle into the install directory.

        A cancel does not interrupt the move thread; it is waited for so
        the caller's cleanup sees the final layout.

        Raises:
            FailedToMoveBundle: Destination taken or the move failed
        """
        if destination.exists():
            raise FailedToMoveBundle(source, destination, 'destination already exists')

        destination.parent.mkdir(parents=True, exist_ok=True)
        move = asyncio.ensure_future(asyncio.to_thread(shutil.move, str(source), str(destination)))
        try:
            await asyncio.shield(move)
        except asyncio.CancelledError:
            await asyncio.wait([move])
            if move.exception() is not None:
                logger.warning(f"Move interrupted by cancel failed: {move.exception()}")
            raise
        except OSError as e:
            raise FailedToMoveBundle(source, destination, str(e))

        logger.info(f"{LOG_PROCESS} Moved {source.name} to {destination}")

    async def _finish(self, bundle_path: Path, version: VersionID) -> list[Exception]:
        """Post-install steps; failures come back as warnings."""
        try:
            await self.post_installer.run(bundle_path, version)
        except (MissingHelperConsent, PostInstallStepsNotPerformed) as e:
            logger.warning(f"{LOG_OUTPUT} Installed with warning: {e}")
            return [e]
        return []

    async def close(self) -> None:
        """Close coordinator and cleanup resources."""
        logger.info("Closing installation coordinator")
        await self.downloader.close()


__all__ = ['InstallationCoordinator']
