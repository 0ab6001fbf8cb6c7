# Path: release_installer/engine/catalog_client.py
"""
Catalog Client

Fetches the release catalog and keeps a local copy of the last good one.

Architecture:
- CatalogCache: JSON array of CatalogEntry, written atomically
- CatalogClient: async HTTP fetch with retry, cache fallback when offline
"""

import asyncio
import json
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import aiohttp
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from release_installer.core.logger import get_logger
from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.models.catalog import CatalogEntry
from release_installer.constants import (
    CATALOG_REFRESH_INTERVAL_HOURS,
    HTTP_OK,
    RETRYABLE_STATUS_CODES,
    LOG_INPUT,
    LOG_PROCESS,
    LOG_OUTPUT,
)
from release_installer.engine.constants import HEADER_USER_AGENT, DEFAULT_USER_AGENT

logger = get_logger(__name__, 'engine')


class CatalogCache:
    """
    Persisted copy of the last successfully fetched catalog.

    A missing or unreadable cache reads as an empty catalog.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> list[CatalogEntry]:
        if not self.path.exists():
            return []

        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
            entries = [CatalogEntry.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable catalog cache {self.path}: {e}")
            return []

        logger.info(f"{LOG_OUTPUT} Loaded {len(entries)} cached catalog entries")
        return entries

    def save(self, entries: list[CatalogEntry]) -> None:
        """Write entries, replacing the previous cache in one step."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_name(self.path.name + '.tmp')
        temp_path.write_text(
            json.dumps([entry.to_dict() for entry in entries], indent=2),
            encoding='utf-8'
        )
        os.replace(temp_path, self.path)

    def last_updated(self) -> Optional[datetime]:
        try:
            return datetime.fromtimestamp(self.path.stat().st_mtime)
        except FileNotFoundError:
            return None


class CatalogClient:
    """
    Release catalog source.

    Features:
    - Automatic retry with exponential backoff
    - Cache written after every successful refresh
    - Cached catalog returned when the network is unreachable

    Example:
        client = CatalogClient(config)
        entries = await client.refresh()
        await client.close()
    """

    def __init__(self, config: Optional[ConfigLoader] = None, cache: Optional[CatalogCache] = None):
        """
        Initialize catalog client.

        Args:
            config: Optional ConfigLoader instance
            cache: Catalog cache (defaults to the configured cache file)
        """
        self.config = config if config else get_config()
        self.cache = cache if cache else CatalogCache(self.config.get('catalog_cache_file'))
        self.url: str = self.config.get('catalog_url') or ''
        self.timeout = self.config.get('connect_timeout')

        self._session: Optional[aiohttp.ClientSession] = None

    @staticmethod
    def needs_refresh(last_updated: Optional[datetime], now: Optional[datetime] = None) -> bool:
        """Whether a catalog fetched at last_updated is stale."""
        if last_updated is None:
            return True
        now = now or datetime.now()
        return now - last_updated > timedelta(hours=CATALOG_REFRESH_INTERVAL_HOURS)

    async def fetch(self) -> list[CatalogEntry]:
        """
        Fetch and parse the catalog.

        Raises:
            aiohttp.ClientError: Network failure after retries
            asyncio.TimeoutError: Timed out after retries
            ValueError: No catalog URL configured, or malformed catalog
        """
        if not self.url:
            raise ValueError("No catalog URL configured")

        logger.info(f"{LOG_INPUT} Fetching catalog from {self.url}")
        data = await self._make_request_with_retry(self.url)

        if not isinstance(data, list):
            raise ValueError("Catalog must be a JSON array")

        try:
            entries = [CatalogEntry.from_dict(item) for item in data]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed catalog entry: {e}")

        logger.info(f"{LOG_OUTPUT} Fetched {len(entries)} catalog entries")
        return entries

    async def refresh(self) -> list[CatalogEntry]:
        """
        Fetch the catalog, caching it; fall back to the cache on failure.

        Returns:
            Fresh entries, or the cached ones when fetching failed
        """
        try:
            entries = await self.fetch()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning(f"Catalog refresh failed ({e}), using cached catalog")
            return self.cache.load()

        try:
            self.cache.save(entries)
        except OSError as e:
            logger.warning(f"Could not write catalog cache {self.cache.path}: {e}")

        return entries

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((aiohttp.ClientError, asyncio.TimeoutError)),
        reraise=True
    )
    async def _make_request_with_retry(self, url: str):
        session = await self._get_session()

        logger.debug(f"{LOG_PROCESS} Making request to {url}")
        async with session.get(
            url,
            headers={HEADER_USER_AGENT: DEFAULT_USER_AGENT},
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as response:
            if response.status in RETRYABLE_STATUS_CODES:
                logger.warning(f"Server error {response.status} - will retry")
                raise aiohttp.ClientError(f"Server error: {response.status}")

            if response.status != HTTP_OK:
                raise ValueError(f"Catalog request failed with HTTP {response.status}")

            return await response.json(content_type=None)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(force_close=True)
            self._session = aiohttp.ClientSession(connector=connector)
        return self._session

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()


__all__ = ['CatalogCache', 'CatalogClient']
