# Path: release_installer/models/catalog.py
"""
Catalog Entry

One downloadable release as published by the remote catalog.

Architecture:
- Immutable dataclass, replaced wholesale on each catalog refresh
- JSON-friendly to_dict / from_dict for the local catalog cache
"""

from dataclasses import dataclass, field
from datetime import date
from pathlib import PurePosixPath
from typing import Any, Optional
from urllib.parse import urlparse

from release_installer.models.version import VersionID


@dataclass(frozen=True)
class CatalogEntry:
    """
    Catalog entry for a release.

    Attributes:
        version: Release version
        download_url: Archive URL
        filename: Archive filename as published ('Xcode_15.xip')
        release_date: Publication date
        file_size: Archive size in bytes
        required_os_version: Minimum OS version to run the release
        sdks: SDK name -> version
        compilers: Compiler name -> version
    """
    version: VersionID
    download_url: str
    filename: str
    release_date: Optional[date] = None
    file_size: Optional[int] = None
    required_os_version: Optional[str] = None
    sdks: dict[str, str] = field(default_factory=dict, compare=False, hash=False)
    compilers: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @property
    def archive_extension(self) -> str:
        """Archive extension without the dot, lower-cased ('xip')."""
        suffix = PurePosixPath(self.filename).suffix
        if not suffix:
            suffix = PurePosixPath(urlparse(self.download_url).path).suffix
        return suffix.lstrip('.').lower()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for the catalog cache."""
        return {
            'version': str(self.version),
            'download_url': self.download_url,
            'filename': self.filename,
            'release_date': self.release_date.isoformat() if self.release_date else None,
            'file_size': self.file_size,
            'required_os_version': self.required_os_version,
            'sdks': dict(self.sdks),
            'compilers': dict(self.compilers),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> 'CatalogEntry':
        """
        Build from a cached or fetched dictionary.

        Raises:
            KeyError: If a required field is missing
            ValueError: If the version or date does not parse
        """
        release_date = data.get('release_date')
        return cls(
            version=VersionID.parse(data['version']),
            download_url=data['download_url'],
            filename=data.get('filename') or PurePosixPath(urlparse(data['download_url']).path).name,
            release_date=date.fromisoformat(release_date) if release_date else None,
            file_size=data.get('file_size'),
            required_os_version=data.get('required_os_version'),
            sdks=dict(data.get('sdks') or {}),
            compilers=dict(data.get('compilers') or {}),
        )


__all__ = ['CatalogEntry']
