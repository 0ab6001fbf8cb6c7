# Path: release_installer/models/progress.py
"""
Download Progress

Progress snapshot shared by both download strategies.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DownloadProgress:
    """
    Immutable progress snapshot.

    Attributes:
        completed_bytes: Bytes on disk so far
        total_bytes: Expected size, when known
        throughput: Bytes per second, when known
        eta_seconds: Estimated seconds remaining, when known
    """
    completed_bytes: int = 0
    total_bytes: Optional[int] = None
    throughput: Optional[float] = None
    eta_seconds: Optional[float] = None

    @property
    def fraction(self) -> Optional[float]:
        """Completed fraction in [0, 1], or None when the size is unknown."""
        if not self.total_bytes:
            return None
        return min(self.completed_bytes / self.total_bytes, 1.0)

    @property
    def percent(self) -> Optional[float]:
        fraction = self.fraction
        return fraction * 100 if fraction is not None else None

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        return {
            'completed_bytes': self.completed_bytes,
            'total_bytes': self.total_bytes,
            'throughput': self.throughput,
            'eta_seconds': self.eta_seconds,
            'percent': self.percent,
        }


__all__ = ['DownloadProgress']
