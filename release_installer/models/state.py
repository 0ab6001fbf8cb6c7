# Path: release_installer/models/state.py
"""
Installation State

Per-release installation state machine values.

Architecture:
- InstallStepKind: ordered pipeline steps
- InstallStep: current step with step number/count derived from the kind
- InstallState: NotInstalled | Installing(step) | Installed(path)
- InstallationRecord: version + state, one per reconciled version
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from release_installer.models.progress import DownloadProgress
from release_installer.models.version import VersionID
from release_installer.constants import (
    STATE_NOT_INSTALLED,
    STATE_INSTALLING,
    STATE_INSTALLED,
    STEP_DOWNLOADING,
    STEP_UNARCHIVING,
    STEP_MOVING,
    STEP_TRASHING_ARCHIVE,
    STEP_CHECKING_SECURITY,
    STEP_FINISHING,
    INSTALL_STEP_ORDER,
)


class InstallStepKind(Enum):
    """Pipeline steps, in execution order."""
    DOWNLOADING = STEP_DOWNLOADING
    UNARCHIVING = STEP_UNARCHIVING
    MOVING = STEP_MOVING
    TRASHING_ARCHIVE = STEP_TRASHING_ARCHIVE
    CHECKING_SECURITY = STEP_CHECKING_SECURITY
    FINISHING = STEP_FINISHING

    @property
    def number(self) -> int:
        return INSTALL_STEP_ORDER.index(self.value) + 1


@dataclass(frozen=True)
class InstallStep:
    """
    One pipeline step.

    Attributes:
        kind: Which step
        progress: Transfer progress (Downloading only)
        destination: Target bundle path (Moving only)

    Example:
        step = InstallStep(InstallStepKind.MOVING, destination=Path('/Applications/Xcode-15.0.0.app'))
        str(step)   # '(3/6) Moving to /Applications/Xcode-15.0.0.app'
    """
    kind: InstallStepKind
    progress: Optional[DownloadProgress] = field(default=None, compare=False)
    destination: Optional[Path] = None

    @classmethod
    def downloading(cls, progress: Optional[DownloadProgress] = None) -> 'InstallStep':
        return cls(InstallStepKind.DOWNLOADING, progress=progress)

    @classmethod
    def moving(cls, destination: Path) -> 'InstallStep':
        return cls(InstallStepKind.MOVING, destination=destination)

    @property
    def step_number(self) -> int:
        return self.kind.number

    @property
    def step_count(self) -> int:
        return len(INSTALL_STEP_ORDER)

    @property
    def message(self) -> str:
        if self.kind is InstallStepKind.DOWNLOADING:
            return 'Downloading'
        if self.kind is InstallStepKind.UNARCHIVING:
            return 'Unarchiving (this can take a while)'
        if self.kind is InstallStepKind.MOVING:
            return f"Moving to {self.destination}"
        if self.kind is InstallStepKind.TRASHING_ARCHIVE:
            return 'Moving archive to the Trash'
        if self.kind is InstallStepKind.CHECKING_SECURITY:
            return 'Checking security assessment and code signing'
        return 'Finishing installation'

    def __str__(self) -> str:
        return f"({self.step_number}/{self.step_count}) {self.message}"


@dataclass(frozen=True)
class NotInstalled:
    name: str = field(default=STATE_NOT_INSTALLED, init=False, repr=False)


@dataclass(frozen=True)
class Installing:
    step: InstallStep
    name: str = field(default=STATE_INSTALLING, init=False, repr=False)


@dataclass(frozen=True)
class Installed:
    path: Path
    name: str = field(default=STATE_INSTALLED, init=False, repr=False)


InstallState = Union[NotInstalled, Installing, Installed]


@dataclass
class InstallationRecord:
    """
    Installation state of one reconciled version.

    Only the installation coordinator mutates state, and only one
    pipeline run per version at a time.
    """
    version: VersionID
    state: InstallState = field(default_factory=NotInstalled)

    @property
    def is_installed(self) -> bool:
        return isinstance(self.state, Installed)

    @property
    def is_installing(self) -> bool:
        return isinstance(self.state, Installing)

    @property
    def installed_path(self) -> Optional[Path]:
        return self.state.path if isinstance(self.state, Installed) else None

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/display."""
        data = {
            'version': str(self.version),
            'display_name': self.version.display_name,
            'state': self.state.name,
        }
        if isinstance(self.state, Installing):
            data['step'] = str(self.state.step)
        if isinstance(self.state, Installed):
            data['path'] = str(self.state.path)
        return data


__all__ = [
    'InstallStepKind',
    'InstallStep',
    'InstallState',
    'NotInstalled',
    'Installing',
    'Installed',
    'InstallationRecord',
]
