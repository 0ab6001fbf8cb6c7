# Path: release_installer/engine/reconciler.py
"""
Catalog Reconciler

Merges the remote catalog with the installed bundles into one sorted,
de-duplicated list of installation records.

Architecture:
- reconcile_releases(): pure function of its inputs
- CatalogReconciler: scans the install directory and reconciles
"""

from pathlib import Path
from typing import Optional, Sequence

from release_installer.core.logger import get_logger
from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.models.catalog import CatalogEntry
from release_installer.models.installed import InstalledBundle, scan_installed_bundles
from release_installer.models.state import InstallationRecord, Installed, NotInstalled
from release_installer.models.version import VersionID
from release_installer.constants import (
    DEFAULT_APP_NAME,
    DEFAULT_BUNDLE_IDENTIFIER,
    LOG_INPUT,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'engine')


def find_installed(version: VersionID, installed: Sequence[InstalledBundle]) -> Optional[InstalledBundle]:
    """First installed bundle equivalent to version for install matching."""
    for bundle in installed:
        if version.is_equivalent_for_install_matching(bundle.version):
            return bundle
    return None


def reconcile_releases(
    catalog: Sequence[CatalogEntry],
    installed: Sequence[InstalledBundle]
) -> list[InstallationRecord]:
    """
    Build installation records from a catalog and installed bundles.

    1. Start from every catalog version.
    2. Add installed versions no catalog version matches (delisted releases).
    3. When a matching catalog version lacks build metadata and the
       installed one has it, use the installed version instead.
    4. Mark each version Installed(path) when a bundle matches, else NotInstalled.

    Returns:
        Records sorted by version, newest first
    """
    versions = [entry.version for entry in catalog]

    for bundle in installed:
        matches = [
            index for index, version in enumerate(versions)
            if version.is_equivalent_for_install_matching(bundle.version)
        ]
        if not matches:
            versions.append(bundle.version)
            continue

        if bundle.version.has_build_metadata:
            # Duplicated catalog listings collapse into the installed version below
            for index in matches:
                if not versions[index].has_build_metadata:
                    versions[index] = bundle.version

    unique = []
    seen = set()
    for version in versions:
        if version not in seen:
            seen.add(version)
            unique.append(version)

    records = []
    for version in sorted(unique, reverse=True):
        bundle = find_installed(version, installed)
        state = Installed(bundle.path) if bundle else NotInstalled()
        records.append(InstallationRecord(version=version, state=state))

    return records


class CatalogReconciler:
    """
    Reconciles a catalog against a fresh scan of the install directory.

    Example:
        reconciler = CatalogReconciler(config)
        records = reconciler.reconcile(catalog_entries)
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize reconciler.

        Args:
            config: Optional ConfigLoader instance
        """
        self.config = config if config else get_config()

    def scan_installed(self, install_dir: Optional[Path] = None) -> list[InstalledBundle]:
        return scan_installed_bundles(
            install_dir or self.config.get('install_dir'),
            bundle_identifier=self.config.get('bundle_identifier', DEFAULT_BUNDLE_IDENTIFIER),
            app_name=self.config.get('app_name', DEFAULT_APP_NAME),
        )

    def reconcile(
        self,
        catalog: Sequence[CatalogEntry],
        installed: Optional[Sequence[InstalledBundle]] = None
    ) -> list[InstallationRecord]:
        """
        Reconcile catalog entries with installed bundles.

        Args:
            catalog: Catalog entries (fresh or cached)
            installed: Installed bundles (scanned now if None)
        """
        if installed is None:
            installed = self.scan_installed()

        logger.info(f"{LOG_INPUT} Reconciling {len(catalog)} catalog entries with {len(installed)} installed")
        records = reconcile_releases(catalog, installed)
        logger.info(f"{LOG_OUTPUT} {len(records)} releases")
        return records


__all__ = ['CatalogReconciler', 'reconcile_releases', 'find_installed']
