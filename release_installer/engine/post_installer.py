# Path: release_installer/engine/post_installer.py
"""
Post Installer

Privileged finalization of an installed bundle.

Architecture:
- Consent gate: the privileged helper is installed only after the user
  agrees, asked at most once at a time across all pipelines
- Sequential helper steps: developer mode, developers group, license,
  first launch
- Install-check marker keyed by user cache dir, OS build and tools build
"""

import asyncio
from pathlib import Path
from typing import Optional

from release_installer.core.logger import get_logger
from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.engine.collaborators import (
    ConsentPrompt,
    HelperInstallState,
    PrivilegedHelper,
)
from release_installer.engine.errors import MissingHelperConsent, PostInstallStepsNotPerformed
from release_installer.engine.shell import ShellRunner
from release_installer.models.installed import read_product_build_version
from release_installer.models.version import VersionID
from release_installer.constants import INSTALL_CHECK_MARKER_PREFIX, LOG_INPUT, LOG_PROCESS, LOG_OUTPUT
from release_installer.engine.constants import (
    GETCONF_PATH,
    GETCONF_USER_CACHE_DIR,
    SW_VERS_PATH,
    SW_VERS_BUILD_FLAG,
)

logger = get_logger(__name__, 'engine')

STEP_ENABLE_DEVELOPER_MODE = 'enable developer mode'
STEP_ADD_TO_DEVELOPERS_GROUP = 'add user to developers group'
STEP_ACCEPT_LICENSE = 'accept license'
STEP_RUN_FIRST_LAUNCH = 'run first launch'
STEP_WRITE_INSTALL_CHECK_MARKER = 'write install check marker'


class PostInstaller:
    """
    Runs the privileged post-install sequence.

    Example:
        post_installer = PostInstaller(helper, consent, config)
        await post_installer.run(bundle_path, version)
    """

    def __init__(
        self,
        helper: PrivilegedHelper,
        consent: ConsentPrompt,
        config: Optional[ConfigLoader] = None,
        runner: Optional[ShellRunner] = None
    ):
        """
        Initialize post installer.

        Args:
            helper: Privileged helper capability
            consent: User consent prompt
            config: Optional ConfigLoader instance
            runner: Process runner for unprivileged queries
        """
        self.helper = helper
        self.consent = consent
        self.config = config if config else get_config()
        self.runner = runner if runner else ShellRunner()

        self.helper_state = HelperInstallState.UNKNOWN
        self._consent_lock = asyncio.Lock()

    async def ensure_helper(self) -> None:
        """
        Make sure the privileged helper is installed.

        Only one pipeline at a time asks for consent; the others wait
        for the outcome instead of prompting again. Pipelines that are
        not finishing are unaffected.

        Raises:
            MissingHelperConsent: User declined
        """
        async with self._consent_lock:
            if self.helper_state is HelperInstallState.INSTALLED:
                return

            if await self.helper.is_installed():
                self.helper_state = HelperInstallState.INSTALLED
                return

            if self.helper_state is HelperInstallState.UNKNOWN:
                self.helper_state = HelperInstallState.NOT_INSTALLED

            logger.info(f"{LOG_PROCESS} Privileged helper {self.helper_state.value}, asking for consent")
            if not await self.consent.request_helper_consent():
                raise MissingHelperConsent(self.helper_state.value)

            self.helper_state = HelperInstallState.INSTALLING
            try:
                await self.helper.install()
            except Exception:
                self.helper_state = HelperInstallState.FAILED
                raise
            self.helper_state = HelperInstallState.INSTALLED
            logger.info(f"{LOG_OUTPUT} Privileged helper installed")

    async def run(self, bundle_path: Path, version: VersionID) -> None:
        """
        Run every post-install step.

        Raises:
            MissingHelperConsent: User declined installing the helper
            PostInstallStepsNotPerformed: A step failed (names the step)
        """
        logger.info(f"{LOG_INPUT} Finishing installation of {bundle_path}")

        try:
            await self.ensure_helper()
        except MissingHelperConsent:
            raise
        except Exception as e:
            raise PostInstallStepsNotPerformed(version, 'install privileged helper', e)

        steps = [
            (STEP_ENABLE_DEVELOPER_MODE, self.helper.enable_developer_mode),
            (STEP_ADD_TO_DEVELOPERS_GROUP, self.helper.add_user_to_developers_group),
            (STEP_ACCEPT_LICENSE, lambda: self.helper.accept_license(bundle_path)),
            (STEP_RUN_FIRST_LAUNCH, lambda: self.helper.run_first_launch(bundle_path)),
            (STEP_WRITE_INSTALL_CHECK_MARKER, lambda: self.write_install_check_marker(bundle_path)),
        ]

        for name, step in steps:
            logger.info(f"{LOG_PROCESS} Post-install: {name}")
            try:
                await step()
            except Exception as e:
                logger.error(f"{LOG_OUTPUT} Post-install step '{name}' failed: {e}")
                raise PostInstallStepsNotPerformed(version, name, e)

        logger.info(f"{LOG_OUTPUT} Post-install complete for {bundle_path.name}")

    async def write_install_check_marker(self, bundle_path: Path) -> Path:
        """
        Touch the install-check marker so the first launch is not repeated.

        Returns:
            Marker path

        Raises:
            ProcessExecutionError: A query command failed (from the runner)
            ValueError: Build versions could not be determined
        """
        cache_output = await self.runner.run(GETCONF_PATH, GETCONF_USER_CACHE_DIR)
        os_output = await self.runner.run(SW_VERS_PATH, SW_VERS_BUILD_FLAG)

        cache_dir = Path(cache_output.stdout.strip())
        os_build = os_output.stdout.strip()
        tools_build = read_product_build_version(bundle_path)

        if not cache_output.stdout.strip() or not os_build or not tools_build:
            raise ValueError(
                f"Missing install check inputs (cache dir {cache_dir}, "
                f"OS build {os_build!r}, tools build {tools_build!r})"
            )

        marker = cache_dir / f"{INSTALL_CHECK_MARKER_PREFIX}_{os_build}_{tools_build}"
        marker.parent.mkdir(parents=True, exist_ok=True)
        marker.touch()
        logger.info(f"{LOG_OUTPUT} Wrote install check marker {marker}")
        return marker


__all__ = ['PostInstaller']
