# Path: release_installer/engine/protocol_handlers.py
"""
Protocol Handlers

HTTP/HTTPS transfer handler with streaming and range resume.

Architecture:
- Async HTTP client (aiohttp) with streaming to disk
- Range + If-Range headers for resuming a partial file
- Session cookies passed per request
- Failures reported as DownloadResult (retryable vs fatal), never raised,
  except cancellation which always propagates
"""

import asyncio
import re
import time
from pathlib import Path
from typing import Optional

import aiohttp

from release_installer.core.logger import get_logger
from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.engine.stream_handler import StreamHandler, ProgressCallback
from release_installer.engine.result import DownloadResult
from release_installer.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    HTTP_OK,
    HTTP_PARTIAL_CONTENT,
    HTTP_RANGE_NOT_SATISFIABLE,
    RETRYABLE_STATUS_CODES,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)
from release_installer.engine.constants import (
    DEFAULT_USER_AGENT,
    MAX_CONCURRENT_CONNECTIONS,
    HEADER_USER_AGENT,
    HEADER_RANGE,
    HEADER_CONTENT_LENGTH,
    HEADER_CONTENT_RANGE,
    HEADER_ETAG,
    HEADER_LAST_MODIFIED,
)

logger = get_logger(__name__, 'download')

_CONTENT_RANGE_PATTERN = re.compile(r'bytes (\d+)-(\d+)/(\d+|\*)')


def parse_content_range(value: Optional[str]) -> Optional[tuple[int, Optional[int]]]:
    """
    Parse a Content-Range header.

    Returns:
        (start, total) or None when the header is missing or malformed
    """
    if not value:
        return None
    match = _CONTENT_RANGE_PATTERN.match(value.strip())
    if not match:
        return None
    total = match.group(3)
    return int(match.group(1)), (int(total) if total != '*' else None)


class HTTPHandler:
    """
    HTTP/HTTPS transfer handler.

    Features:
    - Streaming to disk (memory-efficient for multi-GB archives)
    - Resume from a byte offset (Range header), guarded by If-Range
    - Restart from zero when the server ignores the range
    - Progress callback

    Example:
        async with HTTPHandler(config) as handler:
            result = await handler.download(
                url='https://example.com/Release.xip',
                output_path=Path('Release-15.0.0.xip.part'),
                cookies={'ADCDownloadAuth': '...'},
            )
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize HTTP handler.

        Args:
            config: Optional ConfigLoader instance
        """
        self.config = config if config else get_config()

        self.chunk_size = self.config.get('chunk_size', DEFAULT_CHUNK_SIZE)
        self.timeout = self.config.get('request_timeout', DEFAULT_TIMEOUT)
        self.connect_timeout = self.config.get('connect_timeout', DEFAULT_CONNECT_TIMEOUT)

        self._session: Optional[aiohttp.ClientSession] = None

    async def download(
        self,
        url: str,
        output_path: Path,
        cookies: Optional[dict[str, str]] = None,
        resume_from: int = 0,
        validator: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> DownloadResult:
        """
        Download url to output_path.

        Args:
            url: Source URL
            output_path: Destination path (appended to when resuming)
            cookies: Session cookies
            resume_from: Byte offset already on disk
            validator: ETag/Last-Modified from the earlier attempt
            on_progress: Progress callback

        Returns:
            DownloadResult with transfer statistics
        """
        logger.info(f"{LOG_INPUT} Downloading: {url}")
        logger.info(f"{LOG_INPUT} Output: {output_path}")

        start_time = time.time()
        result = DownloadResult(
            success=False,
            url=url,
            file_path=output_path,
            resumed_from=resume_from,
        )

        try:
            request_headers = self._build_headers()
            if resume_from > 0:
                request_headers[HEADER_RANGE] = f'bytes={resume_from}-'
                if validator:
                    request_headers['If-Range'] = validator
                logger.info(f"{LOG_PROCESS} Resuming from byte {resume_from}")

            session = await self._get_session()

            async with session.get(
                url,
                headers=request_headers,
                cookies=cookies or {},
                timeout=self._client_timeout(),
            ) as response:
                result.status_code = response.status
                result.validator = response.headers.get(HEADER_ETAG) or \
                    response.headers.get(HEADER_LAST_MODIFIED)

                if response.status == HTTP_RANGE_NOT_SATISFIABLE:
                    result.error_message = f"HTTP {response.status}: stored offset {resume_from} is invalid"
                    result.restart_required = True
                    result.file_size = resume_from
                    logger.warning(f"{LOG_OUTPUT} Range not satisfiable, resume data discarded")
                    return result

                if response.status not in (HTTP_OK, HTTP_PARTIAL_CONTENT):
                    result.error_message = f"HTTP {response.status}"
                    result.retryable = response.status in RETRYABLE_STATUS_CODES
                    result.file_size = resume_from
                    logger.error(f"{LOG_OUTPUT} HTTP error: {response.status}")
                    return result

                offset = resume_from
                total_size = None
                if response.status == HTTP_PARTIAL_CONTENT:
                    content_range = parse_content_range(response.headers.get(HEADER_CONTENT_RANGE))
                    if content_range is None or content_range[0] != resume_from:
                        result.error_message = 'Server returned an unexpected byte range'
                        result.restart_required = True
                        result.file_size = resume_from
                        return result
                    total_size = content_range[1]
                else:
                    # Full body: server ignored or rejected the range
                    if resume_from > 0:
                        logger.info(f"{LOG_PROCESS} Server sent the full file, restarting")
                    offset = 0
                    result.resumed_from = 0
                    content_length = response.headers.get(HEADER_CONTENT_LENGTH)
                    total_size = int(content_length) if content_length else None

                result.total_size = total_size
                if total_size:
                    logger.info(f"{LOG_PROCESS} File size: {total_size} bytes")

                stream_handler = StreamHandler(chunk_size=self.chunk_size, on_progress=on_progress)
                try:
                    bytes_written = await stream_handler.stream_to_file(
                        response_stream=response.content.iter_chunked(self.chunk_size),
                        output_path=output_path,
                        total_size=total_size,
                        resume_from=offset,
                    )
                finally:
                    result.file_size = stream_handler.bytes_written

                if total_size is not None and bytes_written < total_size:
                    result.error_message = (
                        f"Connection closed after {bytes_written} of {total_size} bytes"
                    )
                    result.duration = time.time() - start_time
                    logger.error(f"{LOG_OUTPUT} {result.error_message}")
                    return result

                result.success = True
                result.duration = time.time() - start_time

                logger.info(
                    f"{LOG_OUTPUT} Download complete: {bytes_written} bytes "
                    f"in {result.duration:.2f}s "
                    f"({result.download_speed_mbps:.2f} MB/s)"
                )

        except asyncio.TimeoutError as e:
            result.error_message = f"Timeout: {e}"
            result.duration = time.time() - start_time
            logger.error(f"{LOG_OUTPUT} Download timeout: {e}")

        except aiohttp.ClientError as e:
            result.error_message = f"HTTP error: {e}"
            result.duration = time.time() - start_time
            logger.error(f"{LOG_OUTPUT} Download failed: {e}")

        except OSError as e:
            result.error_message = f"File error: {e}"
            result.retryable = False
            result.duration = time.time() - start_time
            logger.error(f"{LOG_OUTPUT} Download failed writing {output_path}: {e}")

        return result

    def _build_headers(self) -> dict[str, str]:
        return {
            HEADER_USER_AGENT: DEFAULT_USER_AGENT,
            'Accept': '*/*',
            # Compressed encodings break byte ranges
            'Accept-Encoding': 'identity',
        }

    def _client_timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(
            total=self.timeout or None,
            sock_connect=self.connect_timeout,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """
        Get or create aiohttp session.

        Returns:
            ClientSession instance
        """
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(limit=MAX_CONCURRENT_CONNECTIONS)
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self._client_timeout(),
            )

        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()


__all__ = ['HTTPHandler', 'parse_content_range']
