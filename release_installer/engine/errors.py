# Path: release_installer/engine/errors.py
"""
Installation Errors

Closed error hierarchy for the installation pipeline. Every error
carries the structured fields a caller needs to recover or to render
an actionable message.

Architecture:
- InstallationError: base class, never raised directly
- One subclass per failure kind, switched on with isinstance
- NetworkOrDownloadFailure distinguishes retryable-with-resume-data from fatal
"""

from pathlib import Path
from typing import Optional, Sequence

from release_installer.engine.constants import ARIA2_EXIT_CODES, ARIA2_RETRYABLE_EXIT_CODES


class InstallationError(Exception):
    """Base class for pipeline failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AlreadyInstalled(InstallationError):
    def __init__(self, bundle):
        self.bundle = bundle
        super().__init__(
            f"{bundle.version.display_name} is already installed at {bundle.path}"
        )

    @property
    def path(self) -> Path:
        return self.bundle.path


class InstallationInProgress(InstallationError):
    def __init__(self, version):
        self.version = version
        super().__init__(f"{version.display_name} is already being installed")


class AuthenticationRequired(InstallationError):
    def __init__(self, version):
        self.version = version
        super().__init__(
            f"Sign in before downloading {version.display_name}"
        )


class UnsupportedArchiveFormat(InstallationError):
    def __init__(self, extension: str):
        self.extension = extension
        super().__init__(
            f"Installing from the '{extension}' archive format is not supported"
        )


class DamagedArchive(InstallationError):
    def __init__(self, archive_path: Path):
        self.archive_path = archive_path
        super().__init__(
            f"The archive \"{archive_path.name}\" is damaged and can't be expanded."
        )


class InsufficientDiskSpace(InstallationError):
    def __init__(self, archive_path: Path, version=None):
        self.archive_path = archive_path
        self.version = version
        release = f" {version.display_name}" if version is not None else ''
        super().__init__(
            f"Not enough free space to expand \"{archive_path.name}\". "
            f"Free up space and try installing{release} again."
        )


class ExtractionFailed(InstallationError):
    def __init__(self, archive_path: Path, stdout: str, stderr: str):
        self.archive_path = archive_path
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"Failed to expand \"{archive_path.name}\":\n{stderr or stdout}".rstrip()
        )


class BundleNotFoundAfterExtraction(InstallationError):
    def __init__(self, archive_path: Path, candidates: Sequence[Path]):
        self.archive_path = archive_path
        self.candidates = list(candidates)
        names = ', '.join(c.name for c in self.candidates)
        super().__init__(
            f"Expanded \"{archive_path.name}\" but found none of: {names}"
        )


class FailedToMoveBundle(InstallationError):
    def __init__(self, source: Path, destination: Path, reason: str = ''):
        self.source = source
        self.destination = destination
        self.reason = reason
        detail = f": {reason}" if reason else ''
        super().__init__(f"Failed to move {source} to {destination}{detail}")


class FailedSecurityAssessment(InstallationError):
    def __init__(self, bundle, output: str):
        self.bundle = bundle
        self.output = output
        super().__init__(
            f"{bundle.version.display_name} failed its security assessment "
            f"with the following output:\n{output}\n"
            f"It remains installed at {bundle.path} if you wish to use it anyways."
        )


class CodesignVerifyFailed(InstallationError):
    def __init__(self, output: str):
        self.output = output
        super().__init__(
            f"The downloaded bundle failed code signing verification "
            f"with the following output:\n{output}"
        )


class UnexpectedSigningIdentity(InstallationError):
    def __init__(
        self,
        team_identifier: str,
        authority: Sequence[str],
        expected_team_identifier: str,
        expected_authority: Sequence[str],
        bundle_path: Optional[Path] = None
    ):
        self.team_identifier = team_identifier
        self.authority = list(authority)
        self.expected_team_identifier = expected_team_identifier
        self.expected_authority = list(expected_authority)
        self.bundle_path = bundle_path
        super().__init__(
            "The downloaded bundle doesn't have the expected code signing identity.\n"
            f"Got:\n  {team_identifier}\n  {self.authority}\n"
            f"Expected:\n  {expected_team_identifier}\n  {self.expected_authority}"
        )


class MissingHelperConsent(InstallationError):
    def __init__(self, helper_state: str):
        self.helper_state = helper_state
        super().__init__(
            "Finishing the installation needs the privileged helper, "
            f"but permission to install it was declined (helper state: {helper_state})"
        )


class PostInstallStepsNotPerformed(InstallationError):
    def __init__(self, version, step: str, cause: BaseException):
        self.version = version
        self.step = step
        self.cause = cause
        super().__init__(
            f"Installed {version.display_name}, but the post-install step "
            f"'{step}' failed: {cause}. Finish it by launching the app once."
        )


class NetworkOrDownloadFailure(InstallationError):
    """
    Transfer failure.

    Attributes:
        url: Source URL
        retryable: Whether another attempt can succeed
        resume_data: Serialized resume state, when the transfer can continue
        status_code: HTTP status code, when there was a response
    """

    def __init__(
        self,
        url: str,
        message: str,
        retryable: bool = True,
        resume_data: Optional[dict] = None,
        status_code: Optional[int] = None
    ):
        self.url = url
        self.retryable = retryable
        self.resume_data = resume_data
        self.status_code = status_code
        super().__init__(f"Download failed ({url}): {message}")


class Aria2Failure(NetworkOrDownloadFailure):
    def __init__(self, url: str, exit_code: int):
        self.exit_code = exit_code
        self.description = ARIA2_EXIT_CODES.get(exit_code, 'Undefined')
        super().__init__(
            url,
            f"aria2c error: {self.description}",
            retryable=exit_code in ARIA2_RETRYABLE_EXIT_CODES,
        )


__all__ = [
    'InstallationError',
    'AlreadyInstalled',
    'InstallationInProgress',
    'AuthenticationRequired',
    'UnsupportedArchiveFormat',
    'DamagedArchive',
    'InsufficientDiskSpace',
    'ExtractionFailed',
    'BundleNotFoundAfterExtraction',
    'FailedToMoveBundle',
    'FailedSecurityAssessment',
    'CodesignVerifyFailed',
    'UnexpectedSigningIdentity',
    'MissingHelperConsent',
    'PostInstallStepsNotPerformed',
    'NetworkOrDownloadFailure',
    'Aria2Failure',
]
