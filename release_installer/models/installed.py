# Path: release_installer/models/installed.py
"""
Installed Bundles

Read-only projection of the release bundles present in the install
directory. The filesystem is the source of truth: bundles are rescanned
on demand and never cached.

Architecture:
- InstalledBundle: path + version
- read_installed_bundle(): parse one bundle's Info.plist and version.plist
- scan_installed_bundles(): all matching bundles in a directory
"""

import plistlib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from release_installer.core.logger import get_logger
from release_installer.models.version import VersionID
from release_installer.constants import (
    BUNDLE_EXTENSION,
    DEFAULT_APP_NAME,
    DEFAULT_BETA_ICON_NAME,
    DEFAULT_BUNDLE_IDENTIFIER,
    LOG_INPUT,
    LOG_OUTPUT,
)

logger = get_logger(__name__, 'core')

INFO_PLIST_BUNDLE_ID = 'CFBundleIdentifier'
INFO_PLIST_SHORT_VERSION = 'CFBundleShortVersionString'
INFO_PLIST_ICON_NAME = 'CFBundleIconName'
VERSION_PLIST_BUILD = 'ProductBuildVersion'


@dataclass(frozen=True)
class InstalledBundle:
    """
    An installed release bundle.

    Attributes:
        path: Bundle directory ('/Applications/Xcode-15.0.0.app')
        version: Version from the bundle metadata, build number attached
    """
    path: Path
    version: VersionID


def _read_plist(path: Path) -> Optional[dict]:
    try:
        with open(path, 'rb') as f:
            data = plistlib.load(f)
    except (OSError, plistlib.InvalidFileException, ValueError) as e:
        logger.debug(f"Unreadable plist {path}: {e}")
        return None
    return data if isinstance(data, dict) else None


def read_bundle_identifier(bundle_path: Path) -> Optional[str]:
    """Bundle identifier from Contents/Info.plist, or None."""
    info = _read_plist(bundle_path / 'Contents' / 'Info.plist')
    return info.get(INFO_PLIST_BUNDLE_ID) if info else None


def read_product_build_version(bundle_path: Path) -> Optional[str]:
    """Build number from Contents/version.plist, or None."""
    version_info = _read_plist(bundle_path / 'Contents' / 'version.plist')
    return version_info.get(VERSION_PLIST_BUILD) if version_info else None


def read_installed_bundle(
    bundle_path: Path,
    app_name: str = DEFAULT_APP_NAME,
    beta_icon_name: str = DEFAULT_BETA_ICON_NAME
) -> Optional[InstalledBundle]:
    """
    Parse one bundle's version metadata.

    The version comes from CFBundleShortVersionString with the
    ProductBuildVersion attached as build metadata. Installed
    prereleases do not carry their prerelease number, so prerelease
    identifiers come from the bundle filename ('Xcode-15.0.0-beta.4.app')
    when it parses, else ['beta'] when the bundle uses the beta icon.

    Args:
        bundle_path: Bundle directory
        app_name: Filename prefix stripped before parsing the filename
        beta_icon_name: CFBundleIconName marking a prerelease bundle

    Returns:
        InstalledBundle or None when the metadata is missing or unreadable
    """
    info = _read_plist(bundle_path / 'Contents' / 'Info.plist')
    version_info = _read_plist(bundle_path / 'Contents' / 'version.plist')
    if info is None or version_info is None:
        return None

    short_version = info.get(INFO_PLIST_SHORT_VERSION)
    bundle_version = VersionID.try_parse(str(short_version)) if short_version else None
    if bundle_version is None:
        return None

    prerelease = bundle_version.prerelease_identifiers
    filename_version = VersionID.try_parse(
        bundle_path.stem.replace(f"{app_name}-", '', 1), strict=True
    )
    if filename_version is not None:
        prerelease = filename_version.prerelease_identifiers
    elif info.get(INFO_PLIST_ICON_NAME) == beta_icon_name and 'beta' not in prerelease:
        prerelease = ('beta',)

    build = version_info.get(VERSION_PLIST_BUILD)
    version = VersionID(
        bundle_version.major,
        bundle_version.minor,
        bundle_version.patch,
        prerelease,
        (str(build),) if build else (),
    )

    return InstalledBundle(path=bundle_path, version=version)


def scan_installed_bundles(
    install_dir: Path,
    bundle_identifier: str = DEFAULT_BUNDLE_IDENTIFIER,
    app_name: str = DEFAULT_APP_NAME,
    beta_icon_name: str = DEFAULT_BETA_ICON_NAME
) -> list[InstalledBundle]:
    """
    Scan a directory for installed release bundles.

    Only top-level *.app directories whose bundle identifier matches
    are considered; bundles with unreadable metadata are skipped.

    Args:
        install_dir: Directory to scan ('/Applications')
        bundle_identifier: CFBundleIdentifier of release bundles

    Returns:
        Installed bundles sorted by path
    """
    logger.debug(f"{LOG_INPUT} Scanning {install_dir} for {bundle_identifier}")

    if not install_dir.is_dir():
        return []

    bundles = []
    for candidate in sorted(install_dir.iterdir()):
        if candidate.suffix != BUNDLE_EXTENSION or not candidate.is_dir():
            continue
        if read_bundle_identifier(candidate) != bundle_identifier:
            continue

        bundle = read_installed_bundle(candidate, app_name, beta_icon_name)
        if bundle is None:
            logger.warning(f"Skipping bundle with unreadable version metadata: {candidate}")
            continue
        bundles.append(bundle)

    logger.debug(f"{LOG_OUTPUT} Found {len(bundles)} installed bundles")
    return bundles


__all__ = [
    'InstalledBundle',
    'read_bundle_identifier',
    'read_product_build_version',
    'read_installed_bundle',
    'scan_installed_bundles',
]
