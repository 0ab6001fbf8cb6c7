# Path: release_installer/models/__init__.py
"""
Release Installer Models

Value types shared by the engine and the CLI.
"""

from release_installer.models.version import VersionID
from release_installer.models.catalog import CatalogEntry
from release_installer.models.installed import InstalledBundle, scan_installed_bundles
from release_installer.models.progress import DownloadProgress
from release_installer.models.state import (
    InstallStepKind,
    InstallStep,
    InstallState,
    NotInstalled,
    Installing,
    Installed,
    InstallationRecord,
)

__all__ = [
    'VersionID',
    'CatalogEntry',
    'InstalledBundle',
    'scan_installed_bundles',
    'DownloadProgress',
    'InstallStepKind',
    'InstallStep',
    'InstallState',
    'NotInstalled',
    'Installing',
    'Installed',
    'InstallationRecord',
]
