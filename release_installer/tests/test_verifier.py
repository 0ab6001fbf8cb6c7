# Path: release_installer/tests/test_verifier.py
"""Gatekeeper assessment and signing identity checks."""

import asyncio
from pathlib import Path

import pytest

from release_installer.engine.errors import (
    CodesignVerifyFailed,
    FailedSecurityAssessment,
    UnexpectedSigningIdentity,
)
from release_installer.engine.shell import ProcessExecutionError, ProcessOutput
from release_installer.engine.verifier import CertificateInfo, Verifier, parse_certificate_info
from release_installer.engine.constants import CODESIGN_PATH
from release_installer.models.installed import InstalledBundle
from release_installer.models.version import VersionID
from release_installer.tests.fixtures import (
    AUTHORITIES,
    BUNDLE_IDENTIFIER,
    TEAM_IDENTIFIER,
    FakeRunner,
    codesign_report,
    make_config,
)

BUNDLE = InstalledBundle(Path('/Applications/App-2.0.0.app'), VersionID.parse('2.0.0'))


class BrokenCodesignRunner(FakeRunner):
    async def run(self, *args, cwd=None, timeout=None, check=True):
        if str(args[0]) == CODESIGN_PATH:
            raise ProcessExecutionError([str(a) for a in args], ProcessOutput(1, '', 'code object is not signed at all'))
        return await super().run(*args, cwd=cwd, timeout=timeout, check=check)


def test_parse_certificate_info():
    output = codesign_report() + 'TeamIdentifier=SECOND\nIdentifier=com.example.Other\n'

    info = parse_certificate_info(output)

    assert info.authority == tuple(AUTHORITIES)
    assert info.team_identifier == TEAM_IDENTIFIER
    assert info.bundle_identifier == BUNDLE_IDENTIFIER


def test_parse_certificate_info_without_signature():
    assert parse_certificate_info('Executable=/tmp/x\n') == CertificateInfo()


def test_verify_accepts_expected_identity(tmp_path):
    runner = FakeRunner()

    info = asyncio.run(Verifier(make_config(tmp_path), runner).verify(BUNDLE))

    assert info.team_identifier == TEAM_IDENTIFIER
    assert len(runner.commands) == 2


def test_identity_mismatch(tmp_path):
    verifier = Verifier(make_config(tmp_path), FakeRunner())

    with pytest.raises(UnexpectedSigningIdentity) as excinfo:
        verifier.check_identity(CertificateInfo(tuple(AUTHORITIES[:2]), TEAM_IDENTIFIER))

    assert excinfo.value.expected_authority == AUTHORITIES
    assert excinfo.value.authority == AUTHORITIES[:2]


def test_team_mismatch_is_raised_by_verify(tmp_path):
    runner = FakeRunner(codesign_stderr=codesign_report(team_identifier='OTHERTEAM'))

    with pytest.raises(UnexpectedSigningIdentity) as excinfo:
        asyncio.run(Verifier(make_config(tmp_path), runner).verify(BUNDLE))

    assert excinfo.value.team_identifier == 'OTHERTEAM'
    assert excinfo.value.bundle_path == BUNDLE.path


def test_assessment_failure(tmp_path):
    with pytest.raises(FailedSecurityAssessment) as excinfo:
        asyncio.run(Verifier(make_config(tmp_path), FakeRunner(spctl_status=3)).verify(BUNDLE))

    assert 'rejected' in excinfo.value.output
    assert str(BUNDLE.path) in excinfo.value.message


def test_codesign_failure(tmp_path):
    with pytest.raises(CodesignVerifyFailed) as excinfo:
        asyncio.run(Verifier(make_config(tmp_path), BrokenCodesignRunner()).verify(BUNDLE))

    assert 'not signed' in excinfo.value.output
