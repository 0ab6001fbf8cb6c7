# Path: release_installer/tests/test_state.py
"""Install steps and record serialization."""

from pathlib import Path

from release_installer.models.progress import DownloadProgress
from release_installer.models.state import (
    InstallationRecord,
    Installed,
    Installing,
    InstallStep,
    InstallStepKind,
    NotInstalled,
)
from release_installer.models.version import VersionID


def test_step_numbers_follow_pipeline_order():
    assert [kind.number for kind in InstallStepKind] == [1, 2, 3, 4, 5, 6]
    assert str(InstallStep(InstallStepKind.UNARCHIVING)) == '(2/6) Unarchiving (this can take a while)'


def test_download_progress_does_not_change_step_identity():
    assert InstallStep.downloading(DownloadProgress(1, 10)) == InstallStep.downloading()


def test_record_to_dict():
    version = VersionID.parse('2.0.0-beta.1')
    destination = Path('/Applications/App-2.0.0-beta.1.app')

    installing = InstallationRecord(version, Installing(InstallStep.moving(destination)))
    installed = InstallationRecord(version, Installed(destination))

    assert installing.is_installing and not installing.is_installed
    assert installing.to_dict()['step'] == f"(3/6) Moving to {destination}"
    assert installed.to_dict()['path'] == str(destination)
    assert installed.installed_path == destination
    assert InstallationRecord(version).state == NotInstalled()
