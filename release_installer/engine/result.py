# Path: release_installer/engine/result.py
"""
Pipeline Result Objects

Type-safe, structured results for transfer and installation operations.

Architecture:
- DownloadResult: one HTTP transfer attempt
- InstallResult: a completed installation pipeline run
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from release_installer.models.version import VersionID


@dataclass
class DownloadResult:
    """
    Result of a single transfer attempt.

    Attributes:
        success: Whether the transfer completed
        file_path: Where the bytes were written
        file_size: Bytes on disk after the attempt (including resumed bytes)
        url: Source URL
        duration: Attempt duration in seconds
        error_message: Error message if failed
        status_code: HTTP status code
        resumed_from: Byte offset the attempt resumed from
        validator: ETag or Last-Modified of the resource, for resuming
        total_size: Expected full size, when known
        retryable: Whether another attempt may succeed
        restart_required: Bytes on disk can't be resumed, start from zero
    """
    success: bool
    file_path: Optional[Path] = None
    file_size: int = 0
    url: str = ''
    duration: float = 0.0
    error_message: Optional[str] = None
    status_code: Optional[int] = None
    resumed_from: int = 0
    validator: Optional[str] = None
    total_size: Optional[int] = None
    retryable: bool = True
    restart_required: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def download_speed_mbps(self) -> float:
        """Calculate download speed in MB/s for this attempt."""
        transferred = self.file_size - self.resumed_from
        if self.duration > 0 and transferred > 0:
            return (transferred / (1024 * 1024)) / self.duration
        return 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/storage."""
        return {
            'success': self.success,
            'file_path': str(self.file_path) if self.file_path else None,
            'file_size': self.file_size,
            'url': self.url,
            'duration': self.duration,
            'error_message': self.error_message,
            'status_code': self.status_code,
            'resumed_from': self.resumed_from,
            'total_size': self.total_size,
            'retryable': self.retryable,
            'download_speed_mbps': self.download_speed_mbps,
            'timestamp': self.timestamp.isoformat(),
        }


@dataclass
class InstallResult:
    """
    Result of an installation pipeline run that produced a bundle.

    Attributes:
        version: Installed version
        bundle_path: Installed bundle
        archive_downloaded: Whether this run downloaded the archive
        attempts: Pipeline attempts (2 after a damaged-archive retry)
        duration: Total duration in seconds
        warnings: Non-fatal problems (post-install steps)
    """
    version: VersionID
    bundle_path: Path
    archive_downloaded: bool = False
    attempts: int = 1
    duration: float = 0.0
    warnings: list[Exception] = field(default_factory=list)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            'version': str(self.version),
            'bundle_path': str(self.bundle_path),
            'archive_downloaded': self.archive_downloaded,
            'attempts': self.attempts,
            'duration': self.duration,
            'warnings': [str(w) for w in self.warnings],
        }


__all__ = ['DownloadResult', 'InstallResult']
