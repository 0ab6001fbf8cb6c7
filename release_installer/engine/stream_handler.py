# Path: release_installer/engine/stream_handler.py
"""
Stream Handler

Memory-efficient streaming of large archive downloads to disk.

Architecture:
- Chunk-based streaming with aiofiles
- Append mode when resuming a partial transfer
- Progress reported through a callback, never a shared global
"""

import time
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

import aiofiles

from release_installer.core.logger import get_logger
from release_installer.models.progress import DownloadProgress
from release_installer.constants import DEFAULT_CHUNK_SIZE, LOG_PROCESS

logger = get_logger(__name__, 'download')

ProgressCallback = Callable[[DownloadProgress], None]

# Report at most this often (seconds)
PROGRESS_REPORT_INTERVAL: float = 0.5


class StreamHandler:
    """
    Streams an async byte iterator to a file.

    Example:
        handler = StreamHandler(chunk_size=1048576, on_progress=print)
        written = await handler.stream_to_file(
            response.content.iter_chunked(1048576),
            Path('Release-15.0.0.xip.part'),
            total_size=total,
            resume_from=offset,
        )
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_progress: Optional[ProgressCallback] = None
    ):
        self.chunk_size = chunk_size
        self.on_progress = on_progress

        self.bytes_written = 0
        self.chunks_written = 0

    async def stream_to_file(
        self,
        response_stream: AsyncIterator[bytes],
        output_path: Path,
        total_size: Optional[int] = None,
        resume_from: int = 0
    ) -> int:
        """
        Stream response to file.

        Args:
            response_stream: Async iterator of byte chunks
            output_path: Path where bytes are written
            total_size: Total expected size of the complete file
            resume_from: Byte offset to resume from (appends when > 0)

        Returns:
            Total bytes in the file
        """
        logger.info(f"{LOG_PROCESS} Streaming to: {output_path.name}")

        mode = 'ab' if resume_from > 0 else 'wb'

        self.bytes_written = resume_from
        self.chunks_written = 0
        start_time = time.monotonic()
        last_report = 0.0

        self._report(total_size, resume_from, start_time)

        async with aiofiles.open(output_path, mode) as f:
            async for chunk in response_stream:
                if not chunk:
                    continue
                await f.write(chunk)
                self.bytes_written += len(chunk)
                self.chunks_written += 1

                now = time.monotonic()
                if now - last_report >= PROGRESS_REPORT_INTERVAL:
                    last_report = now
                    self._report(total_size, resume_from, start_time)

        self._report(total_size, resume_from, start_time)

        logger.info(
            f"{LOG_PROCESS} Stream complete: {self.bytes_written} bytes "
            f"in {self.chunks_written} chunks"
        )

        return self.bytes_written

    def _report(self, total_size: Optional[int], resume_from: int, start_time: float) -> None:
        if self.on_progress is None:
            return

        elapsed = time.monotonic() - start_time
        transferred = self.bytes_written - resume_from
        throughput = transferred / elapsed if elapsed > 0 and transferred > 0 else None

        eta = None
        if throughput and total_size:
            eta = max(total_size - self.bytes_written, 0) / throughput

        self.on_progress(DownloadProgress(
            completed_bytes=self.bytes_written,
            total_bytes=total_size,
            throughput=throughput,
            eta_seconds=eta,
        ))


__all__ = ['StreamHandler', 'ProgressCallback']
