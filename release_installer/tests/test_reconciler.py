# Path: release_installer/tests/test_reconciler.py
"""Catalog reconciliation against installed bundles."""

from pathlib import Path

from release_installer.engine.reconciler import CatalogReconciler, reconcile_releases
from release_installer.models.installed import InstalledBundle
from release_installer.models.state import Installed, NotInstalled
from release_installer.models.version import VersionID
from release_installer.tests.fixtures import make_config, make_entry, write_bundle


def bundle(path: str, version: str) -> InstalledBundle:
    return InstalledBundle(Path(path), VersionID.parse(version))


def test_installed_build_metadata_is_preferred():
    installed = bundle('/Applications/App-1.0.0.app', '1.0.0+ABC123')

    records = reconcile_releases([make_entry('1.0.0')], [installed])

    assert len(records) == 1
    assert records[0].version == VersionID.parse('1.0.0+ABC123')
    assert records[0].state == Installed(installed.path)


def test_delisted_installed_release_is_appended():
    installed = bundle('/Applications/App-0.9.0.app', '0.9.0+OLD1')

    records = reconcile_releases([make_entry('2.0.0'), make_entry('1.0.0')], [installed])

    assert [str(r.version) for r in records] == ['2.0.0', '1.0.0', '0.9.0+OLD1']
    assert records[-1].is_installed
    assert not records[0].is_installed


def test_empty_catalog_yields_installed_only():
    installed = [
        bundle('/Applications/App-1.0.0.app', '1.0.0+A'),
        bundle('/Applications/App-2.0.0-beta.app', '2.0.0-beta+B'),
    ]

    records = reconcile_releases([], installed)

    assert [str(r.version) for r in records] == ['2.0.0-beta+B', '1.0.0+A']
    assert all(r.is_installed for r in records)


def test_reconciliation_is_idempotent():
    catalog = [make_entry('1.0.0'), make_entry('2.0.0-beta.1'), make_entry('1.0.0')]
    installed = [bundle('/Applications/App-1.0.0.app', '1.0.0+ABC123')]

    first = reconcile_releases(catalog, installed)
    second = reconcile_releases(catalog, installed)

    assert [r.to_dict() for r in first] == [r.to_dict() for r in second]
    # duplicate catalog entries collapse into one record
    assert len(first) == 2


def test_catalog_build_metadata_is_kept():
    entry = make_entry('2.0.0-beta.1+CAT1')
    installed = bundle('/Applications/App-2.0.0-beta.1.app', '2.0.0-beta.1')

    records = reconcile_releases([entry], [installed])

    assert str(records[0].version) == '2.0.0-beta.1+CAT1'
    assert records[0].state == Installed(installed.path)


def test_not_installed_when_nothing_matches():
    records = reconcile_releases([make_entry('3.0.0')], [bundle('/Applications/App-3.0.0-rc.app', '3.0.0-rc')])

    states = {str(r.version): r.state for r in records}
    assert states['3.0.0'] == NotInstalled()
    assert isinstance(states['3.0.0-rc'], Installed)


def test_reconciler_scans_install_directory(tmp_path):
    write_bundle(tmp_path / 'Applications' / 'App-1.0.0.app', '1.0.0', build='ABC123')
    write_bundle(tmp_path / 'Applications' / 'Other.app', '9.9.9', bundle_identifier='com.example.Other')
    (tmp_path / 'Applications' / 'Broken.app').mkdir()

    reconciler = CatalogReconciler(make_config(tmp_path))
    records = reconciler.reconcile([make_entry('1.0.0')])

    assert len(records) == 1
    assert str(records[0].version) == '1.0.0+ABC123'
    assert records[0].installed_path == tmp_path / 'Applications' / 'App-1.0.0.app'
