# Path: release_installer/engine/__init__.py
"""
Installation Engine

Acquire, expand, verify and finalize release bundles.
"""

from release_installer.engine.coordinator import InstallationCoordinator
from release_installer.engine.collaborators import (
    InstallerServices,
    SessionProvider,
    PrivilegedHelper,
    ConsentPrompt,
    InstallObserver,
)
from release_installer.engine.catalog_client import CatalogCache, CatalogClient
from release_installer.engine.reconciler import CatalogReconciler, reconcile_releases
from release_installer.engine.result import InstallResult

__all__ = [
    'InstallationCoordinator',
    'InstallerServices',
    'SessionProvider',
    'PrivilegedHelper',
    'ConsentPrompt',
    'InstallObserver',
    'CatalogCache',
    'CatalogClient',
    'CatalogReconciler',
    'reconcile_releases',
    'InstallResult',
]
