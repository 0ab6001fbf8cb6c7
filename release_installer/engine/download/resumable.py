# Path: release_installer/engine/download/resumable.py
"""
Resumable Downloader

Single-connection HTTP(S) strategy with persisted resume state.

Architecture:
- Bytes stream into <archive>.part, renamed onto the archive on success
- Resume state (offset, validator) saved to <archive>.resumedata on
  failure and on cancellation, deleted on success
- RetryManager resumes up to 3 attempts from the saved state
- A later run picks up the saved state where the last one stopped
"""

import asyncio
import json
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

from release_installer.core.logger import get_logger
from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.engine.archive_store import ArchiveStore
from release_installer.engine.errors import NetworkOrDownloadFailure
from release_installer.engine.protocol_handlers import HTTPHandler
from release_installer.engine.retry_manager import RetryManager
from release_installer.engine.stream_handler import ProgressCallback
from release_installer.constants import DOWNLOADER_HTTP, LOG_INPUT, LOG_PROCESS, LOG_OUTPUT

logger = get_logger(__name__, 'download')


def load_resume_data(path: Path) -> Optional[dict]:
    """Read a resume data file, None when missing or unreadable."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable resume data {path.name}: {e}")
        return None
    return data if isinstance(data, dict) else None


def save_resume_data(path: Path, data: dict) -> None:
    """Write resume data atomically."""
    temp_path = path.with_name(path.name + '.tmp')
    with open(temp_path, 'w', encoding='utf-8') as f:
        json.dump(data, f)
    os.replace(temp_path, path)


class ResumableDownloader:
    """
    Resumable single-connection download strategy.

    Features:
    - Range resume across attempts and across runs
    - Resume state persisted only while incomplete
    - Cancellation saves resume state before propagating

    Example:
        downloader = ResumableDownloader(config)
        path = await downloader.fetch(url, store.archive_path(entry), cookies)
    """

    name = DOWNLOADER_HTTP

    def __init__(
        self,
        config: Optional[ConfigLoader] = None,
        http_handler: Optional[HTTPHandler] = None,
        retry_manager: Optional[RetryManager] = None
    ):
        """
        Initialize resumable downloader.

        Args:
            config: Optional ConfigLoader instance
            http_handler: Transfer handler (created from config if None)
            retry_manager: Retry policy (created from config if None)
        """
        self.config = config if config else get_config()
        self.http_handler = http_handler if http_handler else HTTPHandler(self.config)
        self.retry_manager = retry_manager if retry_manager else RetryManager(config=self.config)

    async def fetch(
        self,
        url: str,
        destination: Path,
        cookies: Optional[dict[str, str]] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> Path:
        """
        Download url to destination.

        Raises:
            NetworkOrDownloadFailure: When retries are exhausted or the failure is fatal
        """
        logger.info(f"{LOG_INPUT} Fetching {url} -> {destination.name}")

        destination.parent.mkdir(parents=True, exist_ok=True)
        resume_path = ArchiveStore.resume_data_path(destination)
        partial_path = ArchiveStore.partial_path(destination)

        saved = load_resume_data(resume_path)
        if saved is not None:
            logger.info(f"{LOG_PROCESS} Found resume data at offset {saved.get('offset', 0)}")

        state = {'resume_data': saved}

        async def attempt(resume_data: Optional[dict]) -> Path:
            state['resume_data'] = resume_data
            return await self._attempt(url, destination, partial_path, resume_path,
                                       cookies, resume_data, on_progress, state)

        try:
            path = await self.retry_manager.retry_resumable(attempt, initial_resume_data=saved)
        except asyncio.CancelledError:
            self._persist_on_cancel(url, partial_path, resume_path, state['resume_data'])
            raise

        logger.info(f"{LOG_OUTPUT} Downloaded {path}")
        return path

    async def _attempt(
        self,
        url: str,
        destination: Path,
        partial_path: Path,
        resume_path: Path,
        cookies: Optional[dict[str, str]],
        resume_data: Optional[dict],
        on_progress: Optional[ProgressCallback],
        state: dict
    ) -> Path:
        offset = self._resume_offset(partial_path, resume_data)
        validator = resume_data.get('validator') if resume_data and offset else None

        result = await self.http_handler.download(
            url,
            partial_path,
            cookies=cookies,
            resume_from=offset,
            validator=validator,
            on_progress=on_progress,
        )

        if result.success:
            os.replace(partial_path, destination)
            resume_path.unlink(missing_ok=True)
            return destination

        if result.restart_required:
            partial_path.unlink(missing_ok=True)
            new_resume = self._resume_record(url, 0, None, result.total_size)
        else:
            on_disk = partial_path.stat().st_size if partial_path.exists() else 0
            new_resume = self._resume_record(
                url,
                on_disk,
                result.validator or validator,
                result.total_size,
            )

        save_resume_data(resume_path, new_resume)
        state['resume_data'] = new_resume

        raise NetworkOrDownloadFailure(
            url,
            result.error_message or 'transfer failed',
            retryable=result.retryable,
            resume_data=new_resume,
            status_code=result.status_code,
        )

    @staticmethod
    def _resume_offset(partial_path: Path, resume_data: Optional[dict]) -> int:
        # The partial file is the truth; resume data only adds the validator
        if not resume_data or not partial_path.exists():
            return 0
        return partial_path.stat().st_size

    @staticmethod
    def _resume_record(url: str, offset: int, validator: Optional[str], total: Optional[int]) -> dict:
        return {
            'url': url,
            'offset': offset,
            'validator': validator,
            'total_size': total,
            'saved_at': datetime.now().isoformat(),
        }

    def _persist_on_cancel(
        self,
        url: str,
        partial_path: Path,
        resume_path: Path,
        resume_data: Optional[dict]
    ) -> None:
        if not partial_path.exists():
            return
        validator = resume_data.get('validator') if resume_data else None
        total = resume_data.get('total_size') if resume_data else None
        record = self._resume_record(url, partial_path.stat().st_size, validator, total)
        try:
            save_resume_data(resume_path, record)
            logger.info(f"{LOG_OUTPUT} Cancelled, resume data saved at offset {record['offset']}")
        except OSError as e:
            logger.warning(f"Could not save resume data for {url}: {e}")

    async def close(self) -> None:
        await self.http_handler.close()


__all__ = ['ResumableDownloader', 'load_resume_data', 'save_resume_data']
