# Path: release_installer/engine/collaborators.py
"""
Pipeline Collaborators

Interfaces of the external capabilities the installation pipeline
consumes, and the container passed to the coordinator at construction.

Architecture:
- SessionProvider: authenticated session + download cookies
- PrivilegedHelper: elevated operations for post-install steps
- ConsentPrompt: one-time user consent to install the helper
- InstallObserver: receives step and state transitions
- InstallerServices: explicit bundle of all collaborators (constructor injection)
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from release_installer.models.state import InstallState, InstallStep
from release_installer.models.version import VersionID


class SessionStatus(Enum):
    AUTHENTICATED = 'authenticated'
    TWO_FACTOR_REQUIRED = 'two_factor_required'
    FAILED = 'failed'


@dataclass(frozen=True)
class SessionResult:
    """Outcome of a sign-in attempt."""
    status: SessionStatus
    message: str = ''
    challenge: Optional[dict[str, Any]] = None


@runtime_checkable
class SessionProvider(Protocol):
    async def is_session_valid(self) -> bool:
        ...

    async def sign_in(self, credentials: dict[str, str]) -> SessionResult:
        ...

    async def download_cookies(self) -> dict[str, str]:
        ...


class HelperInstallState(Enum):
    UNKNOWN = 'unknown'
    NOT_INSTALLED = 'not installed'
    INSTALLING = 'installing'
    INSTALLED = 'installed'
    FAILED = 'install failed'


@runtime_checkable
class PrivilegedHelper(Protocol):
    async def is_installed(self) -> bool:
        ...

    async def install(self) -> None:
        ...

    async def enable_developer_mode(self) -> None:
        ...

    async def add_user_to_developers_group(self) -> None:
        ...

    async def accept_license(self, bundle_path: Path) -> None:
        ...

    async def run_first_launch(self, bundle_path: Path) -> None:
        ...


@runtime_checkable
class ConsentPrompt(Protocol):
    async def request_helper_consent(self) -> bool:
        """Ask the user to allow installing the privileged helper."""
        ...


class InstallObserver(Protocol):
    def step_changed(self, version: VersionID, step: InstallStep) -> None:
        ...

    def state_changed(self, version: VersionID, state: InstallState) -> None:
        ...


class NullObserver:
    """Observer that ignores every transition."""

    def step_changed(self, version: VersionID, step: InstallStep) -> None:
        return None

    def state_changed(self, version: VersionID, state: InstallState) -> None:
        return None


class AlwaysValidSession:
    """Session provider for catalogs that need no authentication."""

    async def is_session_valid(self) -> bool:
        return True

    async def sign_in(self, credentials: dict[str, str]) -> SessionResult:
        return SessionResult(SessionStatus.AUTHENTICATED)

    async def download_cookies(self) -> dict[str, str]:
        return {}


@dataclass
class InstallerServices:
    """
    Collaborators of the installation coordinator.

    Engine components left as None are built from the coordinator's
    configuration.
    """
    helper: PrivilegedHelper
    consent: ConsentPrompt
    session: SessionProvider = field(default_factory=AlwaysValidSession)
    observer: InstallObserver = field(default_factory=NullObserver)
    archive_store: Optional[Any] = None
    downloader: Optional[Any] = None
    extractor: Optional[Any] = None
    verifier: Optional[Any] = None
    post_installer: Optional[Any] = None
    runner: Optional[Any] = None


__all__ = [
    'SessionStatus',
    'SessionResult',
    'SessionProvider',
    'HelperInstallState',
    'PrivilegedHelper',
    'ConsentPrompt',
    'InstallObserver',
    'NullObserver',
    'AlwaysValidSession',
    'InstallerServices',
]
