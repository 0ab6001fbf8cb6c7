# Path: release_installer/engine/retry_manager.py
"""
Retry Manager

Resumable retry for interrupted transfers.

Architecture:
- Bounded attempts (3 by default, counting the first)
- Retry only failures that are retryable and carry resume data
- Each retry resumes from the resume data of the previous failure
- Delay with optional exponential backoff, capped
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from release_installer.core.logger import get_logger
from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.engine.errors import NetworkOrDownloadFailure
from release_installer.constants import (
    DEFAULT_RESUME_RETRY_ATTEMPTS,
    DEFAULT_RESUME_RETRY_DELAY,
    LOG_PROCESS,
)

logger = get_logger(__name__, 'download')

ResumableBody = Callable[[Optional[dict]], Awaitable[Any]]


class RetryManager:
    """
    Runs a resumable task with bounded retries.

    Features:
    - max_attempts counts every attempt, including the first
    - delay = base_delay * (backoff ^ retry), capped at max_delay
    - Retry requires NetworkOrDownloadFailure with retryable and resume_data
    - Cancellation is never retried

    Example:
        manager = RetryManager(config=config)

        async def attempt(resume_data):
            return await transfer(url, path, resume_data)

        path = await manager.retry_resumable(attempt, initial_resume_data=saved)
    """

    def __init__(
        self,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        backoff: float = 1.0,
        config: Optional[ConfigLoader] = None
    ):
        """
        Initialize retry manager.

        Args:
            max_attempts: Total attempts (from config if None)
            base_delay: Delay before the first retry in seconds (from config if None)
            max_delay: Delay cap (defaults to no cap beyond backoff growth)
            backoff: Delay multiplier per retry (1.0 = fixed delay)
            config: Optional ConfigLoader instance
        """
        self.config = config if config else get_config()

        self.max_attempts = max_attempts if max_attempts is not None else \
            self.config.get('resume_retry_attempts', DEFAULT_RESUME_RETRY_ATTEMPTS)

        self.base_delay = base_delay if base_delay is not None else \
            self.config.get('resume_retry_delay', DEFAULT_RESUME_RETRY_DELAY)

        self.max_delay = max_delay
        self.backoff = backoff

    def calculate_delay(self, retry: int) -> float:
        """
        Delay before a retry.

        Formula: min(base_delay * (backoff ^ retry), max_delay)

        Args:
            retry: Retry number (0-based)
        """
        delay = self.base_delay * (self.backoff ** retry)
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay

    @staticmethod
    def is_resumable_failure(error: BaseException) -> bool:
        """Whether an error may be retried by resuming."""
        return isinstance(error, NetworkOrDownloadFailure) and \
            error.retryable and error.resume_data is not None

    async def retry_resumable(
        self,
        body: ResumableBody,
        initial_resume_data: Optional[dict] = None
    ) -> Any:
        """
        Execute body, resuming after resumable failures.

        Args:
            body: Async callable taking the resume data (None for a fresh start)
            initial_resume_data: Resume data persisted by an earlier run

        Returns:
            Result of the successful attempt

        Raises:
            The last failure when it is not resumable or attempts are exhausted
        """
        resume_data = initial_resume_data

        for attempt in range(1, self.max_attempts + 1):
            try:
                result = await body(resume_data)

                if attempt > 1:
                    logger.info(f"{LOG_PROCESS} Retry succeeded on attempt {attempt}")

                return result

            except NetworkOrDownloadFailure as e:
                if not self.is_resumable_failure(e):
                    logger.error(f"Non-retryable transfer failure: {e}")
                    raise

                if attempt >= self.max_attempts:
                    logger.error(f"All retries exhausted after {attempt} attempts")
                    raise

                resume_data = e.resume_data
                delay = self.calculate_delay(attempt - 1)

                logger.warning(
                    f"{LOG_PROCESS} Attempt {attempt} failed: {e}. "
                    f"Resuming in {delay:.1f}s..."
                )

                await asyncio.sleep(delay)

        raise RuntimeError('retry_resumable called with max_attempts < 1')


__all__ = ['RetryManager']
