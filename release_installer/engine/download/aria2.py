# Path: release_installer/engine/download/aria2.py
"""
aria2 Downloader

Multi-connection strategy that shells out to aria2c.

Architecture:
- aria2c writes straight to the archive path, keeping its own
  <archive>.aria2 control file until the transfer completes
- Session cookies passed as a Cookie header
- Summary lines parsed into DownloadProgress
- Non-zero exit mapped through the aria2 exit code table
- Cancellation kills aria2c; the control file stays so the next run resumes
"""

import os
import re
from pathlib import Path
from typing import Optional

from release_installer.core.logger import get_logger
from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.engine.errors import Aria2Failure, NetworkOrDownloadFailure
from release_installer.engine.shell import ShellRunner
from release_installer.engine.stream_handler import ProgressCallback
from release_installer.models.progress import DownloadProgress
from release_installer.constants import DEFAULT_ARIA2_PATH, DOWNLOADER_ARIA2, LOG_INPUT, LOG_OUTPUT
from release_installer.engine.constants import (
    ARIA2_MAX_CONNECTIONS_PER_SERVER,
    ARIA2_SPLIT,
    ARIA2_SUMMARY_INTERVAL,
)

logger = get_logger(__name__, 'download')

_SIZE = r'[\d.]+(?:[KMGT]i)?B?'
_TRANSFERRED_PATTERN = re.compile(rf'\s(?P<completed>{_SIZE})/(?P<total>{_SIZE})\(')
_SPEED_PATTERN = re.compile(rf'DL:(?P<speed>{_SIZE})')
_ETA_PATTERN = re.compile(r'ETA:(?:(?P<hours>\d+)h)?(?:(?P<minutes>\d+)m)?(?:(?P<seconds>\d+)s)?')
_UNIT_FACTORS = {'': 1, 'Ki': 1024, 'Mi': 1024 ** 2, 'Gi': 1024 ** 3, 'Ti': 1024 ** 4}


def parse_size(value: str) -> Optional[int]:
    """Parse an aria2 size ('1048576B', '400.0KiB', '3.2GiB') into bytes."""
    match = re.fullmatch(r'(?P<number>[\d.]+)(?P<unit>[KMGT]i)?B?', value.strip())
    if not match:
        return None
    try:
        number = float(match.group('number'))
    except ValueError:
        return None
    return int(number * _UNIT_FACTORS[match.group('unit') or ''])


def parse_aria2_progress(
    line: str,
    previous: Optional[DownloadProgress] = None
) -> Optional[DownloadProgress]:
    """
    Parse an aria2 summary line.

    Example line:
        [#2089b0 1048576B/10485760B(10%) CN:16 DL:524288B ETA:17s]

    Fields missing from the line keep their previous values.

    Returns:
        Updated progress, or None when the line is not a summary line
    """
    transferred = _TRANSFERRED_PATTERN.search(line)
    if transferred is None:
        return None

    previous = previous or DownloadProgress()

    completed = parse_size(transferred.group('completed'))
    total = parse_size(transferred.group('total'))

    speed_match = _SPEED_PATTERN.search(line)
    throughput = parse_size(speed_match.group('speed')) if speed_match else previous.throughput

    eta = previous.eta_seconds
    eta_match = _ETA_PATTERN.search(line)
    if eta_match and any(eta_match.group(g) for g in ('hours', 'minutes', 'seconds')):
        eta = float(
            int(eta_match.group('hours') or 0) * 3600
            + int(eta_match.group('minutes') or 0) * 60
            + int(eta_match.group('seconds') or 0)
        )

    return DownloadProgress(
        completed_bytes=completed if completed is not None else previous.completed_bytes,
        total_bytes=total if total else previous.total_bytes,
        throughput=throughput,
        eta_seconds=eta,
    )


class Aria2Downloader:
    """
    Multi-connection download strategy (aria2c).

    Example:
        downloader = Aria2Downloader(config)
        path = await downloader.fetch(url, archive_path, cookies, on_progress=print)
    """

    name = DOWNLOADER_ARIA2

    def __init__(
        self,
        config: Optional[ConfigLoader] = None,
        runner: Optional[ShellRunner] = None,
        aria2_path: Optional[Path] = None
    ):
        """
        Initialize aria2 downloader.

        Args:
            config: Optional ConfigLoader instance
            runner: Process runner
            aria2_path: aria2c executable (from config if None)
        """
        self.config = config if config else get_config()
        self.runner = runner if runner else ShellRunner()
        self.aria2_path = Path(aria2_path or self.config.get('aria2_path', DEFAULT_ARIA2_PATH))

    def build_arguments(
        self,
        url: str,
        destination: Path,
        cookies: Optional[dict[str, str]] = None
    ) -> list[str]:
        """aria2c command line for one transfer."""
        arguments = [str(self.aria2_path)]
        if cookies:
            cookie_header = '; '.join(f"{name}={value}" for name, value in cookies.items())
            arguments.append(f"--header=Cookie: {cookie_header}")
        arguments.extend([
            f"--max-connection-per-server={ARIA2_MAX_CONNECTIONS_PER_SERVER}",
            f"--split={ARIA2_SPLIT}",
            f"--summary-interval={ARIA2_SUMMARY_INTERVAL}",
            '--human-readable=false',
            '--continue=true',
            f"--stop-with-process={os.getpid()}",
            f"--dir={destination.parent}",
            f"--out={destination.name}",
            url,
        ])
        return arguments

    async def fetch(
        self,
        url: str,
        destination: Path,
        cookies: Optional[dict[str, str]] = None,
        on_progress: Optional[ProgressCallback] = None
    ) -> Path:
        """
        Download url to destination with aria2c.

        Raises:
            Aria2Failure: aria2c exited with an error code
            NetworkOrDownloadFailure: aria2c could not be started
        """
        logger.info(f"{LOG_INPUT} aria2 fetching {url} -> {destination.name}")
        destination.parent.mkdir(parents=True, exist_ok=True)

        current = {'progress': None}

        def handle_line(line: str) -> None:
            progress = parse_aria2_progress(line, current['progress'])
            if progress is None:
                return
            current['progress'] = progress
            if on_progress is not None:
                on_progress(progress)

        try:
            output = await self.runner.stream(
                *self.build_arguments(url, destination, cookies),
                on_line=handle_line,
                check=False,
            )
        except FileNotFoundError as e:
            raise NetworkOrDownloadFailure(
                url, f"aria2c not found at {self.aria2_path}: {e}", retryable=False
            )

        if output.status != 0:
            logger.error(f"{LOG_OUTPUT} aria2c exited with {output.status}: {output.stderr.strip()}")
            raise Aria2Failure(url, output.status)

        logger.info(f"{LOG_OUTPUT} aria2 downloaded {destination}")
        return destination

    async def close(self) -> None:
        return None


__all__ = ['Aria2Downloader', 'parse_aria2_progress', 'parse_size']
