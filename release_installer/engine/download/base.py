# Path: release_installer/engine/download/base.py
"""
Downloader Interface

Contract shared by the interchangeable download strategies.
"""

from pathlib import Path
from typing import Optional, Protocol

from release_installer.engine.stream_handler import ProgressCallback


class Downloader(Protocol):
    """
    Fetches a remote archive to a local path.

    Implementations report progress through on_progress and raise
    NetworkOrDownloadFailure on failure. Cancellation propagates as
    asyncio.CancelledError after resumable state is saved.
    """

    name: str

    async def fetch(
        self,
        url: str,
        destination: Path,
        cookies: Optional[dict[str, str]] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> Path:
        """Download url to destination, returning destination."""
        ...

    async def close(self) -> None:
        ...


__all__ = ['Downloader']
