# Path: release_installer/tests/test_installed.py
"""Installed bundle metadata: plist version, filename prerelease, beta icon."""

from release_installer.constants import DEFAULT_BETA_ICON_NAME
from release_installer.models.installed import read_installed_bundle, scan_installed_bundles
from release_installer.tests.fixtures import APP_NAME, BUNDLE_IDENTIFIER, write_bundle


def read(path):
    return read_installed_bundle(path, APP_NAME, DEFAULT_BETA_ICON_NAME)


def test_release_bundle_version_has_build(tmp_path):
    bundle = read(write_bundle(tmp_path / 'App-2.0.0.app', '2.0.0', build='ABC123'))

    assert bundle.version.description_without_build_metadata == '2.0.0'
    assert bundle.version.build_metadata_identifiers == ('ABC123',)
    assert not bundle.version.is_prerelease


def test_prerelease_comes_from_filename(tmp_path):
    path = write_bundle(tmp_path / 'App-2.0.0-beta.3.app', '2.0.0', build='ABC123')

    bundle = read(path)

    assert bundle.path == path
    assert bundle.version.prerelease_identifiers == ('beta', '3')
    assert bundle.version.build_metadata_identifiers == ('ABC123',)
    assert bundle.version.description_without_build_metadata == '2.0.0-beta.3'


def test_filename_prerelease_wins_over_beta_icon(tmp_path):
    path = write_bundle(tmp_path / 'App-2.0.0-beta.3.app', '2.0.0', icon_name=DEFAULT_BETA_ICON_NAME)

    assert read(path).version.prerelease_identifiers == ('beta', '3')


def test_beta_icon_marks_prerelease_when_filename_does_not_parse(tmp_path):
    path = write_bundle(tmp_path / 'App.app', '2.0.0', icon_name=DEFAULT_BETA_ICON_NAME)

    bundle = read(path)

    assert bundle.version.prerelease_identifiers == ('beta',)
    assert bundle.version.description_without_build_metadata == '2.0.0-beta'


def test_release_icon_without_parsable_filename_is_a_release(tmp_path):
    path = write_bundle(tmp_path / 'App.app', '2.0.0')

    assert read(path).version.prerelease_identifiers == ()


def test_filename_needs_all_three_components(tmp_path):
    path = write_bundle(tmp_path / 'App-15.app', '15.1', icon_name=DEFAULT_BETA_ICON_NAME)

    bundle = read(path)

    assert bundle.version.description_without_build_metadata == '15.1.0-beta'


def test_short_filename_falls_back_to_plist_version(tmp_path):
    path = write_bundle(tmp_path / 'App-15.app', '15.1')

    assert read(path).version.description_without_build_metadata == '15.1.0'


def test_missing_build_number_leaves_no_metadata(tmp_path):
    bundle = read(write_bundle(tmp_path / 'App-2.0.0.app', '2.0.0', build=None))

    assert bundle.version.build_metadata_identifiers == ()


def test_unreadable_metadata_is_skipped(tmp_path):
    unparsable = write_bundle(tmp_path / 'App-2.0.0.app', 'not a version')
    missing = tmp_path / 'App-3.0.0.app'
    (missing / 'Contents').mkdir(parents=True)

    assert read(unparsable) is None
    assert read(missing) is None


def test_scan_keeps_matching_bundles_only(tmp_path):
    write_bundle(tmp_path / 'App-1.0.0.app', '1.0.0')
    write_bundle(tmp_path / 'App-2.0.0-beta.1.app', '2.0.0')
    write_bundle(tmp_path / 'Other.app', '9.0.0', bundle_identifier='com.example.other')
    write_bundle(tmp_path / 'App-3.0.0.app', 'broken')
    (tmp_path / 'notes.txt').write_text('x')

    bundles = scan_installed_bundles(tmp_path, BUNDLE_IDENTIFIER, APP_NAME, DEFAULT_BETA_ICON_NAME)

    assert [b.path.name for b in bundles] == ['App-1.0.0.app', 'App-2.0.0-beta.1.app']
    assert bundles[1].version.description_without_build_metadata == '2.0.0-beta.1'


def test_scan_of_missing_directory_is_empty(tmp_path):
    assert scan_installed_bundles(tmp_path / 'missing', BUNDLE_IDENTIFIER) == []
