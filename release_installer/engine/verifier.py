# Path: release_installer/engine/verifier.py
"""
Bundle Verifier

Security checks on an expanded release bundle.

Architecture:
- assess(): Gatekeeper assessment (spctl)
- codesign_identity(): signing details from codesign, parsed into CertificateInfo
- verify(): both checks concurrently, identity compared with the expected team
  and certificate authority chain
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from release_installer.core.logger import get_logger
from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.engine.shell import ShellRunner, ProcessExecutionError
from release_installer.engine.errors import (
    CodesignVerifyFailed,
    FailedSecurityAssessment,
    UnexpectedSigningIdentity,
)
from release_installer.models.installed import InstalledBundle
from release_installer.constants import (
    DEFAULT_EXPECTED_AUTHORITIES,
    DEFAULT_EXPECTED_TEAM_IDENTIFIER,
    LOG_INPUT,
    LOG_OUTPUT,
)
from release_installer.engine.constants import (
    SPCTL_PATH,
    SPCTL_ASSESS_ARGS,
    CODESIGN_PATH,
    CODESIGN_DISPLAY_ARGS,
    CODESIGN_AUTHORITY_PREFIX,
    CODESIGN_TEAM_PREFIX,
    CODESIGN_IDENTIFIER_PREFIX,
)

logger = get_logger(__name__, 'engine')


@dataclass(frozen=True)
class CertificateInfo:
    """
    Code signing identity of a bundle.

    Attributes:
        authority: Certificate chain, leaf first
        team_identifier: Signing team
        bundle_identifier: Signed bundle identifier
    """
    authority: tuple[str, ...] = field(default_factory=tuple)
    team_identifier: Optional[str] = None
    bundle_identifier: Optional[str] = None


def parse_certificate_info(output: str) -> CertificateInfo:
    """
    Parse codesign -d output.

    First match wins for TeamIdentifier and Identifier; every
    Authority line is collected in order.
    """
    authority = []
    team_identifier = None
    bundle_identifier = None

    for raw_line in output.splitlines():
        line = raw_line.strip()
        if line.startswith(CODESIGN_AUTHORITY_PREFIX):
            authority.append(line[len(CODESIGN_AUTHORITY_PREFIX):])
        elif line.startswith(CODESIGN_TEAM_PREFIX):
            if team_identifier is None:
                team_identifier = line[len(CODESIGN_TEAM_PREFIX):]
        elif line.startswith(CODESIGN_IDENTIFIER_PREFIX):
            if bundle_identifier is None:
                bundle_identifier = line[len(CODESIGN_IDENTIFIER_PREFIX):]

    return CertificateInfo(
        authority=tuple(authority),
        team_identifier=team_identifier,
        bundle_identifier=bundle_identifier,
    )


class Verifier:
    """
    Runs security assessment and signing identity checks.

    Example:
        verifier = Verifier(config)
        await verifier.verify(InstalledBundle(path, version))
    """

    def __init__(
        self,
        config: Optional[ConfigLoader] = None,
        runner: Optional[ShellRunner] = None
    ):
        """
        Initialize verifier.

        Args:
            config: Optional ConfigLoader instance
            runner: Process runner
        """
        self.config = config if config else get_config()
        self.runner = runner if runner else ShellRunner()
        self.expected_team_identifier = self.config.get(
            'expected_team_identifier', DEFAULT_EXPECTED_TEAM_IDENTIFIER
        )
        self.expected_authority = list(self.config.get(
            'expected_certificate_authority', DEFAULT_EXPECTED_AUTHORITIES
        ))

    async def assess(self, bundle: InstalledBundle) -> None:
        """
        Gatekeeper assessment.

        Raises:
            FailedSecurityAssessment: Assessment rejected the bundle
        """
        try:
            await self.runner.run(SPCTL_PATH, *SPCTL_ASSESS_ARGS, bundle.path)
        except ProcessExecutionError as e:
            raise FailedSecurityAssessment(bundle, e.output.combined)

    async def codesign_identity(self, bundle_path: Path) -> CertificateInfo:
        """
        Read the signing identity.

        Raises:
            CodesignVerifyFailed: codesign could not read a valid signature
        """
        try:
            output = await self.runner.run(CODESIGN_PATH, *CODESIGN_DISPLAY_ARGS, bundle_path)
        except ProcessExecutionError as e:
            raise CodesignVerifyFailed(e.output.combined)

        # codesign -d writes its report to stderr
        return parse_certificate_info(output.stderr + '\n' + output.stdout)

    def check_identity(self, info: CertificateInfo, bundle_path: Optional[Path] = None) -> None:
        """
        Compare an identity with the expected one.

        Raises:
            UnexpectedSigningIdentity: Team or authority chain differs
        """
        if info.team_identifier != self.expected_team_identifier or \
                list(info.authority) != self.expected_authority:
            raise UnexpectedSigningIdentity(
                info.team_identifier or '',
                info.authority,
                self.expected_team_identifier,
                self.expected_authority,
                bundle_path,
            )

    async def verify_signing(self, bundle_path: Path) -> CertificateInfo:
        info = await self.codesign_identity(bundle_path)
        self.check_identity(info, bundle_path)
        return info

    async def verify(self, bundle: InstalledBundle) -> CertificateInfo:
        """
        Run both checks concurrently.

        The first failure cancels the other check and is raised.

        Returns:
            Verified signing identity
        """
        logger.info(f"{LOG_INPUT} Verifying {bundle.path}")

        assess_task = asyncio.ensure_future(self.assess(bundle))
        signing_task = asyncio.ensure_future(self.verify_signing(bundle.path))
        tasks = [assess_task, signing_task]

        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                if task.exception() is not None:
                    raise task.exception()
            if pending:
                await asyncio.gather(*pending)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        info = signing_task.result()
        logger.info(f"{LOG_OUTPUT} Verified: team {info.team_identifier}")
        return info


__all__ = ['Verifier', 'CertificateInfo', 'parse_certificate_info']
