# Path: release_installer/tests/fixtures.py
"""
Test Fixtures for the Release Installer

Fake collaborators and on-disk bundle builders shared by the tests.
"""

import asyncio
import plistlib
import shutil
from pathlib import Path
from typing import Optional

from release_installer.core.config_loader import ConfigLoader
from release_installer.engine.errors import DamagedArchive
from release_installer.engine.extraction import expansion_dir
from release_installer.engine.shell import ProcessExecutionError, ProcessOutput
from release_installer.engine.constants import CODESIGN_PATH, SPCTL_PATH
from release_installer.models.catalog import CatalogEntry
from release_installer.models.progress import DownloadProgress
from release_installer.models.version import VersionID

APP_NAME = 'App'
BUNDLE_IDENTIFIER = 'com.example.App'
TEAM_IDENTIFIER = 'TEAM123456'
AUTHORITIES = ['Software Signing', 'Example Code Signing CA', 'Example Root CA']


def make_config(tmp_path: Path, **values) -> ConfigLoader:
    """Configuration rooted in tmp_path, no session required."""
    settings = dict(
        app_support_dir=tmp_path / 'support',
        install_dir=tmp_path / 'Applications',
        trash_dir=tmp_path / 'Trash',
        log_dir=None,
        log_console=False,
        app_name=APP_NAME,
        bundle_identifier=BUNDLE_IDENTIFIER,
        expected_team_identifier=TEAM_IDENTIFIER,
        expected_certificate_authority=list(AUTHORITIES),
        require_session=False,
        download_cookies={},
        resume_retry_attempts=3,
        resume_retry_delay=0,
        damaged_archive_retries=1,
    )
    settings.update(values)
    return ConfigLoader().override(**settings)


def make_entry(version: str, filename: Optional[str] = None) -> CatalogEntry:
    filename = filename or f"{APP_NAME}_{version}.xip"
    return CatalogEntry(
        version=VersionID.parse(version),
        download_url=f"https://downloads.example.com/{filename}",
        filename=filename,
    )


def write_bundle(
    path: Path,
    short_version: str,
    build: Optional[str] = 'ABC123',
    bundle_identifier: str = BUNDLE_IDENTIFIER,
    icon_name: str = 'App'
) -> Path:
    """Create a minimal bundle directory with Info.plist and version.plist."""
    contents = path / 'Contents'
    contents.mkdir(parents=True, exist_ok=True)
    with open(contents / 'Info.plist', 'wb') as f:
        plistlib.dump({
            'CFBundleIdentifier': bundle_identifier,
            'CFBundleShortVersionString': short_version,
            'CFBundleIconName': icon_name,
        }, f)
    version_info = {'ProductBuildVersion': build} if build else {}
    with open(contents / 'version.plist', 'wb') as f:
        plistlib.dump(version_info, f)
    return path


def codesign_report(team_identifier: str = TEAM_IDENTIFIER, authorities=None) -> str:
    lines = [
        'Executable=/Applications/App.app/Contents/MacOS/App',
        f"Identifier={BUNDLE_IDENTIFIER}",
        'Format=app bundle with Mach-O universal (x86_64 arm64)',
    ]
    lines.extend(f"Authority={a}" for a in (AUTHORITIES if authorities is None else authorities))
    lines.append(f"TeamIdentifier={team_identifier}")
    return '\n'.join(lines) + '\n'


# ============================================================================
# FAKE COLLABORATORS
# ============================================================================

class FakeRunner:
    """Answers spctl and codesign; records every command."""

    def __init__(self, codesign_stderr: Optional[str] = None, spctl_status: int = 0):
        self.codesign_stderr = codesign_report() if codesign_stderr is None else codesign_stderr
        self.spctl_status = spctl_status
        self.commands = []

    async def run(self, *args, cwd=None, timeout=None, check=True):
        command = [str(a) for a in args]
        self.commands.append(command)
        if command[0] == SPCTL_PATH:
            output = ProcessOutput(self.spctl_status, '', 'rejected' if self.spctl_status else 'accepted')
        elif command[0] == CODESIGN_PATH:
            output = ProcessOutput(0, '', self.codesign_stderr)
        else:
            output = ProcessOutput(0, '', '')

        if check and output.status != 0:
            raise ProcessExecutionError(command, output)
        return output


class FakeDownloader:
    name = 'fake'

    def __init__(self, payload: bytes = b'archive'):
        self.payload = payload
        self.calls = []

    async def fetch(self, url, destination, cookies=None, on_progress=None):
        self.calls.append((url, destination, cookies))
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(self.payload)
        if on_progress is not None:
            on_progress(DownloadProgress(len(self.payload), len(self.payload)))
        return destination

    async def close(self):
        return None


class FakeExtractor:
    """Expands into <archive>.expanding/<App>.app, or reports damage."""

    def __init__(self, short_version: str, damaged_times: int = 0, build: str = 'ABC123'):
        self.short_version = short_version
        self.damaged_times = damaged_times
        self.build = build
        self.calls = []

    async def expand(self, archive_path: Path, version=None) -> Path:
        self.calls.append(archive_path)
        if len(self.calls) <= self.damaged_times:
            raise DamagedArchive(archive_path)
        return write_bundle(expansion_dir(archive_path) / f"{APP_NAME}.app", self.short_version, self.build)

    def discard_output(self, archive_path: Path) -> None:
        shutil.rmtree(expansion_dir(archive_path), ignore_errors=True)


class BlockingExtractor:
    """Never finishes until cancelled."""

    def __init__(self):
        self.started = asyncio.Event()

    async def expand(self, archive_path: Path, version=None) -> Path:
        self.started.set()
        await asyncio.Event().wait()

    def discard_output(self, archive_path: Path) -> None:
        return None


class FakePostInstaller:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls = []

    async def run(self, bundle_path, version):
        self.calls.append((bundle_path, version))
        if self.error is not None:
            raise self.error


class FakeHelper:
    def __init__(self, installed: bool = False, fail_step: Optional[str] = None):
        self.installed = installed
        self.fail_step = fail_step
        self.calls = []

    async def _step(self, name):
        self.calls.append(name)
        if name == self.fail_step:
            raise RuntimeError(f"{name} failed")

    async def is_installed(self):
        return self.installed

    async def install(self):
        await self._step('install')
        self.installed = True

    async def enable_developer_mode(self):
        await self._step('enable_developer_mode')

    async def add_user_to_developers_group(self):
        await self._step('add_user_to_developers_group')

    async def accept_license(self, bundle_path):
        await self._step('accept_license')

    async def run_first_launch(self, bundle_path):
        await self._step('run_first_launch')


class FakeConsent:
    def __init__(self, answer: bool = True, delay: float = 0):
        self.answer = answer
        self.delay = delay
        self.requests = 0

    async def request_helper_consent(self):
        self.requests += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.answer


class FakeSession:
    def __init__(self, valid: bool = True, cookies=None):
        self.valid = valid
        self.cookies = cookies or {'session': 'abc'}

    async def is_session_valid(self):
        return self.valid

    async def sign_in(self, credentials):
        raise NotImplementedError

    async def download_cookies(self):
        return dict(self.cookies)


class RecordingObserver:
    def __init__(self):
        self.steps = []
        self.states = []

    def step_changed(self, version, step):
        self.steps.append(step)

    def state_changed(self, version, state):
        self.states.append(state)

    def step_kinds(self):
        """Step kinds in order, consecutive repeats collapsed."""
        kinds = []
        for step in self.steps:
            if not kinds or kinds[-1] is not step.kind:
                kinds.append(step.kind)
        return kinds
