# Path: release_installer/tests/test_coordinator.py
"""
Installation Coordinator Tests

Drives the full pipeline with fake download, expansion and post-install
collaborators and a real Verifier fed by a fake process runner.
"""

import asyncio
import shutil
import threading
from pathlib import Path

import pytest

from release_installer.engine.collaborators import InstallerServices
from release_installer.engine import coordinator as coordinator_module
from release_installer.engine.coordinator import InstallationCoordinator
from release_installer.engine.constants import XIP_PATH
from release_installer.engine.errors import (
    AlreadyInstalled,
    AuthenticationRequired,
    DamagedArchive,
    ExtractionFailed,
    FailedSecurityAssessment,
    FailedToMoveBundle,
    InstallationInProgress,
    NetworkOrDownloadFailure,
    PostInstallStepsNotPerformed,
    UnexpectedSigningIdentity,
)
from release_installer.engine.shell import ProcessOutput
from release_installer.models.installed import read_installed_bundle
from release_installer.models.state import InstallStepKind, Installed, NotInstalled
from release_installer.tests.fixtures import (
    APP_NAME,
    BlockingExtractor,
    FakeConsent,
    FakeDownloader,
    FakeExtractor,
    FakeHelper,
    FakePostInstaller,
    FakeRunner,
    FakeSession,
    RecordingObserver,
    codesign_report,
    make_config,
    make_entry,
    write_bundle,
)


def build_coordinator(tmp_path, config=None, **overrides):
    config = config or make_config(tmp_path)
    parts = dict(
        downloader=FakeDownloader(),
        extractor=FakeExtractor('2.0.0'),
        post_installer=FakePostInstaller(),
        runner=FakeRunner(),
        observer=RecordingObserver(),
        session=FakeSession(),
    )
    parts.update(overrides)
    services = InstallerServices(
        helper=FakeHelper(),
        consent=FakeConsent(),
        session=parts['session'],
        observer=parts['observer'],
        downloader=parts['downloader'],
        extractor=parts['extractor'],
        post_installer=parts['post_installer'],
        runner=parts['runner'],
    )
    return InstallationCoordinator(services, config), parts


class FailingDownloader(FakeDownloader):
    async def fetch(self, url, destination, cookies=None, on_progress=None):
        self.calls.append((url, destination, cookies))
        raise NetworkOrDownloadFailure(url, 'connection reset', retryable=False)


class FailingExtractor(FakeExtractor):
    async def expand(self, archive_path, version=None):
        self.calls.append(archive_path)
        raise ExtractionFailed(archive_path, '', 'xip: error: something went wrong')


def test_fresh_install_happy_path(tmp_path):
    (tmp_path / 'Trash').mkdir()
    coordinator, parts = build_coordinator(tmp_path)
    entry = make_entry('2.0.0')

    result = asyncio.run(coordinator.install(entry))

    expected = tmp_path / 'Applications' / 'App-2.0.0.app'
    assert result.bundle_path == expected
    assert expected.is_dir()
    assert coordinator.record_for(entry.version).state == Installed(expected)
    assert parts['observer'].step_kinds() == [
        InstallStepKind.DOWNLOADING,
        InstallStepKind.UNARCHIVING,
        InstallStepKind.MOVING,
        InstallStepKind.TRASHING_ARCHIVE,
        InstallStepKind.CHECKING_SECURITY,
        InstallStepKind.FINISHING,
    ]
    assert result.archive_downloaded
    assert result.attempts == 1
    assert not result.has_warnings
    assert parts['post_installer'].calls == [(expected, entry.version)]
    # archive moved to the trash
    assert not (tmp_path / 'support' / 'Release-2.0.0.xip').exists()
    assert (tmp_path / 'Trash' / 'Release-2.0.0.xip').exists()


def test_moving_step_names_destination(tmp_path):
    coordinator, parts = build_coordinator(tmp_path)
    asyncio.run(coordinator.install(make_entry('2.0.0')))

    moving = [s for s in parts['observer'].steps if s.kind is InstallStepKind.MOVING]
    assert moving[0].destination == tmp_path / 'Applications' / 'App-2.0.0.app'
    assert str(moving[0]).startswith('(3/6) Moving to ')


def test_already_installed_fails_without_download(tmp_path):
    installed = write_bundle(tmp_path / 'Applications' / 'App-2.0.0.app', '2.0.0')
    coordinator, parts = build_coordinator(tmp_path)
    entry = make_entry('2.0.0')

    with pytest.raises(AlreadyInstalled) as excinfo:
        asyncio.run(coordinator.install(entry))

    assert excinfo.value.path == installed
    assert parts['downloader'].calls == []
    assert coordinator.record_for(entry.version).state == Installed(installed)


def test_signing_mismatch_leaves_bundle_and_reverts_state(tmp_path):
    runner = FakeRunner(codesign_stderr=codesign_report(team_identifier='WRONGID'))
    coordinator, parts = build_coordinator(tmp_path, runner=runner)
    entry = make_entry('2.0.0')

    with pytest.raises(UnexpectedSigningIdentity) as excinfo:
        asyncio.run(coordinator.install(entry))

    assert excinfo.value.team_identifier == 'WRONGID'
    assert (tmp_path / 'Applications' / 'App-2.0.0.app').is_dir()
    assert isinstance(coordinator.record_for(entry.version).state, NotInstalled)


def test_damaged_archive_is_downloaded_again_once(tmp_path):
    extractor = FakeExtractor('2.0.0', damaged_times=1)
    coordinator, parts = build_coordinator(tmp_path, extractor=extractor)

    result = asyncio.run(coordinator.install(make_entry('2.0.0')))

    assert len(parts['downloader'].calls) == 2
    assert result.attempts == 2
    assert result.bundle_path.is_dir()


def test_damaged_archive_retry_is_bounded(tmp_path):
    extractor = FakeExtractor('2.0.0', damaged_times=10)
    coordinator, parts = build_coordinator(tmp_path, extractor=extractor)
    entry = make_entry('2.0.0')

    with pytest.raises(DamagedArchive):
        asyncio.run(coordinator.install(entry))

    assert len(parts['downloader'].calls) == 2
    assert len(extractor.calls) == 2
    assert isinstance(coordinator.record_for(entry.version).state, NotInstalled)


def test_damaged_cached_archive_is_replaced(tmp_path):
    archive = tmp_path / 'support' / 'Release-2.0.0.xip'
    archive.parent.mkdir(parents=True)
    archive.write_bytes(b'left by an earlier run')
    coordinator, parts = build_coordinator(tmp_path, extractor=FakeExtractor('2.0.0', damaged_times=1))

    result = asyncio.run(coordinator.install(make_entry('2.0.0')))

    assert len(parts['downloader'].calls) == 1
    assert result.archive_downloaded
    assert result.attempts == 2


def test_damaged_user_archive_is_not_retried_or_deleted(tmp_path):
    archive = tmp_path / 'Downloads' / 'App_2.0.0.xip'
    archive.parent.mkdir()
    archive.write_bytes(b'user archive')
    extractor = FakeExtractor('2.0.0', damaged_times=10)
    coordinator, parts = build_coordinator(tmp_path, extractor=extractor)

    with pytest.raises(DamagedArchive):
        asyncio.run(coordinator.install_archive(make_entry('2.0.0'), archive))

    assert parts['downloader'].calls == []
    assert len(extractor.calls) == 1
    assert archive.exists()


def test_existing_archive_is_reused(tmp_path):
    config = make_config(tmp_path)
    archive = tmp_path / 'support' / 'Release-2.0.0.xip'
    archive.parent.mkdir(parents=True)
    archive.write_bytes(b'complete archive')
    coordinator, parts = build_coordinator(tmp_path, config=config)

    result = asyncio.run(coordinator.install(make_entry('2.0.0')))

    assert parts['downloader'].calls == []
    assert not result.archive_downloaded
    assert InstallStepKind.DOWNLOADING not in parts['observer'].step_kinds()


def test_archive_with_aria2_marker_is_downloaded_again(tmp_path):
    archive = tmp_path / 'support' / 'Release-2.0.0.xip'
    archive.parent.mkdir(parents=True)
    archive.write_bytes(b'partial')
    (tmp_path / 'support' / 'Release-2.0.0.xip.aria2').write_bytes(b'control')
    coordinator, parts = build_coordinator(tmp_path)

    asyncio.run(coordinator.install(make_entry('2.0.0')))

    assert len(parts['downloader'].calls) == 1


def test_download_requires_valid_session(tmp_path):
    config = make_config(tmp_path, require_session=True)
    coordinator, parts = build_coordinator(tmp_path, config=config, session=FakeSession(valid=False))
    entry = make_entry('2.0.0')

    with pytest.raises(AuthenticationRequired):
        asyncio.run(coordinator.install(entry))

    assert parts['downloader'].calls == []
    assert isinstance(coordinator.record_for(entry.version).state, NotInstalled)


def test_session_cookies_are_passed_to_downloader(tmp_path):
    config = make_config(tmp_path, require_session=True, download_cookies={'region': 'eu'})
    session = FakeSession(cookies={'session': 'token'})
    coordinator, parts = build_coordinator(tmp_path, config=config, session=session)

    asyncio.run(coordinator.install(make_entry('2.0.0')))

    _, _, cookies = parts['downloader'].calls[0]
    assert cookies == {'region': 'eu', 'session': 'token'}


def test_post_install_failure_is_a_warning(tmp_path):
    entry = make_entry('2.0.0')
    error = PostInstallStepsNotPerformed(entry.version, 'accept license', RuntimeError('denied'))
    coordinator, parts = build_coordinator(tmp_path, post_installer=FakePostInstaller(error))

    result = asyncio.run(coordinator.install(entry))

    assert result.warnings == [error]
    assert coordinator.record_for(entry.version).is_installed


@pytest.mark.parametrize('failure', ['download', 'extract', 'assess', 'move'])
def test_state_is_never_left_installing(tmp_path, failure):
    overrides = {}
    if failure == 'download':
        overrides['downloader'] = FailingDownloader()
        expected = NetworkOrDownloadFailure
    elif failure == 'extract':
        overrides['extractor'] = FailingExtractor('2.0.0')
        expected = ExtractionFailed
    elif failure == 'assess':
        overrides['runner'] = FakeRunner(spctl_status=3)
        expected = FailedSecurityAssessment
    else:
        # a plain file squatting on the destination name
        (tmp_path / 'Applications').mkdir()
        (tmp_path / 'Applications' / 'App-2.0.0.app').write_text('not a bundle')
        expected = FailedToMoveBundle

    coordinator, parts = build_coordinator(tmp_path, **overrides)
    entry = make_entry('2.0.0')

    with pytest.raises(expected):
        asyncio.run(coordinator.install(entry))

    assert isinstance(coordinator.record_for(entry.version).state, NotInstalled)
    assert isinstance(parts['observer'].states[-1], NotInstalled)


def test_second_install_of_same_version_is_rejected(tmp_path):
    async def scenario():
        extractor = BlockingExtractor()
        coordinator, _ = build_coordinator(tmp_path, extractor=extractor)
        entry = make_entry('2.0.0')

        first = asyncio.ensure_future(coordinator.install(entry))
        await extractor.started.wait()

        with pytest.raises(InstallationInProgress):
            await coordinator.install(entry)

        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first
        return coordinator, entry

    coordinator, entry = asyncio.run(scenario())

    assert isinstance(coordinator.record_for(entry.version).state, NotInstalled)
    assert coordinator._in_flight == set()


def test_cancel_after_move_removes_bundle_and_archive(tmp_path):
    class BlockingPostInstaller:
        def __init__(self):
            self.started = asyncio.Event()

        async def run(self, bundle_path, version):
            self.started.set()
            await asyncio.Event().wait()

    async def scenario():
        post_installer = BlockingPostInstaller()
        coordinator, _ = build_coordinator(tmp_path, post_installer=post_installer)
        entry = make_entry('2.0.0')

        task = asyncio.ensure_future(coordinator.install(entry))
        await post_installer.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return coordinator, entry

    coordinator, entry = asyncio.run(scenario())

    assert not (tmp_path / 'Applications' / 'App-2.0.0.app').exists()
    assert not (tmp_path / 'support' / 'Release-2.0.0.xip').exists()
    assert isinstance(coordinator.record_for(entry.version).state, NotInstalled)


def test_refresh_records_marks_installed_versions(tmp_path):
    installed = write_bundle(tmp_path / 'Applications' / 'App-1.0.0.app', '1.0.0', build='ABC123')
    coordinator, _ = build_coordinator(tmp_path)

    records = coordinator.refresh_records([make_entry('1.0.0'), make_entry('2.0.0')])

    assert [str(r.version) for r in records] == ['2.0.0', '1.0.0+ABC123']
    assert records[1].state == Installed(installed)
    assert isinstance(records[0].state, NotInstalled)


class XipFakeRunner(FakeRunner):
    """Also answers xip: expands Release-<v>.xip into <cwd>/App.app after a pause."""

    async def run(self, *args, cwd=None, timeout=None, check=True):
        if str(args[0]) != XIP_PATH:
            return await super().run(*args, cwd=cwd, timeout=timeout, check=check)
        archive = Path(args[-1])
        await asyncio.sleep(0.02)
        write_bundle(cwd / 'App.app', archive.stem.replace('Release-', '', 1))
        return ProcessOutput(0, '', '')


def test_different_versions_expand_independently(tmp_path):
    coordinator, parts = build_coordinator(tmp_path, extractor=None, runner=XipFakeRunner())

    async def scenario():
        return await asyncio.gather(
            coordinator.install(make_entry('1.0.0')),
            coordinator.install(make_entry('2.0.0')),
        )

    first, second = asyncio.run(scenario())

    assert first.bundle_path == tmp_path / 'Applications' / 'App-1.0.0.app'
    assert second.bundle_path == tmp_path / 'Applications' / 'App-2.0.0.app'
    assert read_installed_bundle(first.bundle_path, APP_NAME).version.description_without_build_metadata == '1.0.0'
    assert read_installed_bundle(second.bundle_path, APP_NAME).version.description_without_build_metadata == '2.0.0'
    assert list((tmp_path / 'support').glob('*.expanding')) == []


def test_cancel_during_move_removes_moved_bundle(tmp_path, monkeypatch):
    move_started = threading.Event()
    release_move = threading.Event()
    real_move = shutil.move

    def slow_move(source, destination):
        move_started.set()
        release_move.wait(5)
        return real_move(source, destination)

    monkeypatch.setattr(coordinator_module.shutil, 'move', slow_move)
    entry = make_entry('2.0.0')

    async def scenario():
        coordinator, _ = build_coordinator(tmp_path)
        task = asyncio.ensure_future(coordinator.install(entry))
        await asyncio.to_thread(move_started.wait, 5)
        task.cancel()
        await asyncio.sleep(0)
        release_move.set()
        with pytest.raises(asyncio.CancelledError):
            await task
        return coordinator

    coordinator = asyncio.run(scenario())

    assert not (tmp_path / 'Applications' / 'App-2.0.0.app').exists()
    assert not (tmp_path / 'support' / 'Release-2.0.0.xip.expanding').exists()
    assert coordinator.find_installed(entry.version) is None
    assert isinstance(coordinator.record_for(entry.version).state, NotInstalled)
