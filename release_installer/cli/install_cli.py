# Path: release_installer/cli/install_cli.py
"""
Install CLI Interface

Interactive command-line interface for installing releases.
Lists reconciled releases (catalog + installed) and runs the
installation pipeline for the selected ones.

Architecture:
- Refresh catalog (cached copy when offline)
- Reconcile with installed bundles
- Display releases in a rich table, user selects by number
- Trigger InstallationCoordinator, one pipeline per selected release
- Terminal implementations of the pipeline's external capabilities
- IPO logging throughout

Usage:
    python install.py
    python install.py --list
    python install.py --install 15.0
    python install.py --install 15.0 --archive ~/Downloads/Xcode_15.xip
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskID
from rich.prompt import Confirm
from rich.table import Table

from release_installer.core.config_loader import ConfigLoader, get_config
from release_installer.core.data_paths import DataPathsManager
from release_installer.core.logger import get_logger, configure_logging
from release_installer.engine.catalog_client import CatalogClient
from release_installer.engine.collaborators import InstallerServices, SessionResult, SessionStatus
from release_installer.engine.coordinator import InstallationCoordinator
from release_installer.engine.errors import InstallationError
from release_installer.engine.shell import ShellRunner
from release_installer.models.catalog import CatalogEntry
from release_installer.models.state import InstallationRecord, InstallState, InstallStep, Installed
from release_installer.models.version import VersionID
from release_installer.constants import DOWNLOADER_ARIA2, DOWNLOADER_HTTP, LOG_INPUT, LOG_PROCESS, LOG_OUTPUT
from release_installer.engine.constants import (
    SUDO_PATH,
    DEVTOOLS_SECURITY_PATH,
    DSEDITGROUP_PATH,
    DEVELOPER_GROUP,
    STAFF_GROUP,
    XCODEBUILD_RELATIVE_PATH,
)

logger = get_logger(__name__, 'cli')
console = Console()


# ============================================================================
# TERMINAL CAPABILITIES
# ============================================================================

class StaticSessionProvider:
    """
    Session backed by cookies from configuration.

    The session is valid when cookies are present; sign_in accepts a
    Cookie-header style string under the 'cookie' key.
    """

    def __init__(self, cookies: Optional[dict[str, str]] = None):
        self.cookies = dict(cookies or {})

    async def is_session_valid(self) -> bool:
        return bool(self.cookies)

    async def sign_in(self, credentials: dict[str, str]) -> SessionResult:
        header = credentials.get('cookie', '')
        cookies = {}
        for part in header.split(';'):
            if '=' in part:
                name, value = part.split('=', 1)
                cookies[name.strip()] = value.strip()

        if not cookies:
            return SessionResult(SessionStatus.FAILED, 'No cookies supplied')

        self.cookies = cookies
        return SessionResult(SessionStatus.AUTHENTICATED)

    async def download_cookies(self) -> dict[str, str]:
        return dict(self.cookies)


class SudoPrivilegedHelper:
    """
    Privileged operations through sudo.

    "Installing" the helper means obtaining sudo credentials once, so
    the following steps run without prompting.
    """

    def __init__(self, runner: Optional[ShellRunner] = None):
        self.runner = runner if runner else ShellRunner()

    async def is_installed(self) -> bool:
        output = await self.runner.run(SUDO_PATH, '-n', 'true', check=False)
        return output.status == 0

    async def install(self) -> None:
        await self.runner.run(SUDO_PATH, '-v')

    async def enable_developer_mode(self) -> None:
        await self.runner.run(SUDO_PATH, DEVTOOLS_SECURITY_PATH, '-enable')

    async def add_user_to_developers_group(self) -> None:
        await self.runner.run(
            SUDO_PATH, DSEDITGROUP_PATH, '-o', 'edit', '-t', 'group', '-a', STAFF_GROUP, DEVELOPER_GROUP
        )

    async def accept_license(self, bundle_path: Path) -> None:
        await self.runner.run(SUDO_PATH, bundle_path / XCODEBUILD_RELATIVE_PATH, '-license', 'accept')

    async def run_first_launch(self, bundle_path: Path) -> None:
        await self.runner.run(SUDO_PATH, bundle_path / XCODEBUILD_RELATIVE_PATH, '-runFirstLaunch')


class TerminalConsentPrompt:
    """Asks for helper consent on the terminal without blocking the event loop."""

    async def request_helper_consent(self) -> bool:
        return await asyncio.to_thread(
            Confirm.ask,
            "Finishing the installation needs administrator rights "
            "(developer mode, license, first launch). Continue?",
            console=console,
            default=True,
        )


class ProgressObserver:
    """Renders pipeline steps as rich progress bars, one per release."""

    def __init__(self, progress: Progress):
        self.progress = progress
        self._tasks: dict[VersionID, TaskID] = {}

    def _task(self, version: VersionID) -> TaskID:
        if version not in self._tasks:
            self._tasks[version] = self.progress.add_task(version.display_name, total=None)
        return self._tasks[version]

    def step_changed(self, version: VersionID, step: InstallStep) -> None:
        task = self._task(version)
        description = f"{version.display_name}: {step}"
        if step.progress is not None and step.progress.total_bytes:
            self.progress.update(
                task,
                description=description,
                completed=step.progress.completed_bytes,
                total=step.progress.total_bytes,
            )
        else:
            self.progress.update(task, description=description)

    def state_changed(self, version: VersionID, state: InstallState) -> None:
        if isinstance(state, Installed) and version in self._tasks:
            self.progress.update(
                self._tasks[version],
                description=f"{version.display_name}: installed",
                completed=1,
                total=1,
            )


# ============================================================================
# CLI
# ============================================================================

class InstallCLI:
    """
    Interactive CLI for installing releases.

    Workflow:
    1. Refresh the catalog (cached copy when offline)
    2. Reconcile with installed bundles and display the list
    3. User selects release(s) by number
    4. Install the selection concurrently via the coordinator
    5. Display results

    Example:
        cli = InstallCLI()
        await cli.run()
    """

    def __init__(self, config: Optional[ConfigLoader] = None):
        """
        Initialize install CLI.

        Args:
            config: Optional ConfigLoader instance
        """
        self.config = config if config else get_config()
        self.catalog_client = CatalogClient(self.config)
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            console=console,
        )

        runner = ShellRunner()
        services = InstallerServices(
            helper=SudoPrivilegedHelper(runner),
            consent=TerminalConsentPrompt(),
            session=StaticSessionProvider(self.config.get('download_cookies')),
            observer=ProgressObserver(self.progress),
            runner=runner,
        )
        self.coordinator = InstallationCoordinator(services, self.config)
        self.entries: dict[VersionID, CatalogEntry] = {}

    async def load_records(self) -> list[InstallationRecord]:
        logger.info(f"{LOG_PROCESS} Loading releases")
        catalog = await self.catalog_client.refresh()
        self.entries = {entry.version: entry for entry in catalog}
        return self.coordinator.refresh_records(catalog)

    def entry_for(self, version: VersionID) -> Optional[CatalogEntry]:
        """Catalog entry for a reconciled version (build metadata may differ)."""
        entry = self.entries.get(version)
        if entry is not None:
            return entry
        for candidate in self.entries.values():
            if candidate.version.is_equivalent_for_install_matching(version):
                return candidate
        return None

    async def run(self, args: argparse.Namespace) -> int:
        """
        Run CLI session.

        Returns:
            Process exit code
        """
        logger.info(f"{LOG_INPUT} Starting Install CLI")

        try:
            records = await self.load_records()

            if args.list:
                self.display_records(records)
                return 0

            if args.install:
                return await self._install_named(args.install, args.archive)

            if not records:
                console.print("\n[yellow]No releases found.[/yellow]")
                console.print("Set RELEASE_INSTALLER_CATALOG_URL to a release catalog.")
                return 0

            self.display_records(records)
            selection = self._get_user_selection(len(records))
            if selection is None:
                console.print("\nInstallation cancelled.")
                return 0

            return await self._install_records([records[i] for i in selection])

        finally:
            await self.coordinator.close()
            await self.catalog_client.close()

    def display_records(self, records: list[InstallationRecord]) -> None:
        table = Table(title="Releases", show_header=True)
        table.add_column("#", justify="right")
        table.add_column("Release", style="cyan")
        table.add_column("Build")
        table.add_column("Date")
        table.add_column("Status")

        for i, record in enumerate(records, 1):
            entry = self.entry_for(record.version)
            date_str = entry.release_date.isoformat() if entry and entry.release_date else ''
            if record.is_installed:
                status = f"[green]Installed[/green] {record.installed_path}"
            elif entry is None:
                status = "[yellow]Not in catalog[/yellow]"
            else:
                status = "Not installed"
            table.add_row(
                str(i),
                record.version.display_name,
                record.version.build_metadata_display,
                date_str,
                status,
            )

        console.print(table)

    def _get_user_selection(self, max_options: int) -> Optional[list[int]]:
        """
        Get user selection from displayed options.

        Returns:
            List of selected indices (0-based) or None if cancelled
        """
        console.print("\nEnter selection:")
        console.print(f"  - Single number (1-{max_options})")
        console.print("  - Multiple (e.g., 1,3)")
        console.print("  - 'q' to quit")

        while True:
            try:
                choice = input("\nSelection: ").strip().lower()
            except (KeyboardInterrupt, EOFError):
                return None

            if choice in ('q', 'quit', 'exit'):
                return None

            try:
                numbers = [int(n.strip()) for n in choice.split(',') if n.strip()]
            except ValueError:
                console.print("Invalid input. Please enter numbers or 'q' to quit.")
                continue

            if numbers and all(1 <= n <= max_options for n in numbers):
                return [n - 1 for n in numbers]

            console.print(f"Invalid selection. Numbers must be between 1 and {max_options}")

    async def _install_named(self, name: str, archive: Optional[Path]) -> int:
        version = VersionID.try_parse(name) or VersionID.from_release_name(name)
        if version is None:
            console.print(f"[red]Error:[/red] Not a release version: {name}")
            return 1

        entry = None
        for candidate in self.entries.values():
            if candidate.version.is_equivalent(version):
                entry = candidate
                break

        if archive is not None:
            if entry is None:
                entry = CatalogEntry(version=version, download_url='', filename=archive.name)
            return await self._install_entries([(entry, archive)])

        if entry is None:
            console.print(f"[red]Error:[/red] {version.display_name} is not in the catalog")
            return 1

        return await self._install_entries([(entry, None)])

    async def _install_records(self, records: list[InstallationRecord]) -> int:
        work = []
        for record in records:
            if record.is_installed:
                console.print(f"{record.version.display_name} is already installed at {record.installed_path}")
                continue
            entry = self.entry_for(record.version)
            if entry is None:
                console.print(f"[yellow]{record.version.display_name} is not in the catalog, skipping[/yellow]")
                continue
            work.append((entry, None))

        if not work:
            return 0
        return await self._install_entries(work)

    async def _install_entries(self, work: list[tuple[CatalogEntry, Optional[Path]]]) -> int:
        """
        Install releases concurrently.

        Returns:
            0 when every installation succeeded, else 1
        """
        logger.info(f"{LOG_INPUT} Installing {len(work)} release(s)")

        async def install_one(entry: CatalogEntry, archive: Optional[Path]):
            if archive is not None:
                return await self.coordinator.install_archive(entry, archive)
            return await self.coordinator.install(entry)

        with self.progress:
            results = await asyncio.gather(
                *(install_one(entry, archive) for entry, archive in work),
                return_exceptions=True,
            )

        failed = 0
        for (entry, _), result in zip(work, results):
            name = entry.version.display_name
            if isinstance(result, InstallationError):
                failed += 1
                console.print(f"\n[red bold]{name} failed:[/red bold] {result.message}")
            elif isinstance(result, BaseException):
                failed += 1
                console.print(f"\n[red bold]{name} failed:[/red bold] {result}")
                logger.error(f"Installation of {name} failed", exc_info=result)
            else:
                console.print(f"\n[green]{name} installed at {result.bundle_path}[/green]")
                for warning in result.warnings:
                    console.print(f"[yellow]Warning:[/yellow] {warning}")

        logger.info(f"{LOG_OUTPUT} {len(work) - failed}/{len(work)} installation(s) succeeded")
        return 1 if failed else 0


# ============================================================================
# ENTRY POINTS
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='release-installer',
        description='Download, verify and install releases'
    )

    parser.add_argument(
        '-l', '--list',
        action='store_true',
        help='List releases and exit'
    )

    parser.add_argument(
        '-i', '--install',
        metavar='VERSION',
        help="Install a release by version ('15.0', '15.1.0-beta.2', 'Xcode 15.1 Beta 2')"
    )

    parser.add_argument(
        '-a', '--archive',
        type=Path,
        help='Install from a local archive instead of downloading (with --install)'
    )

    parser.add_argument(
        '-d', '--downloader',
        choices=[DOWNLOADER_HTTP, DOWNLOADER_ARIA2],
        help='Download strategy (default from configuration)'
    )

    return parser


async def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for install CLI."""
    args = build_parser().parse_args(argv)

    if args.archive is not None and not args.install:
        console.print("[red]Error:[/red] --archive needs --install VERSION")
        return 1

    if args.archive is not None:
        args.archive = args.archive.expanduser()
        if not args.archive.is_file():
            console.print(f"[red]Error:[/red] Archive not found: {args.archive}")
            return 1

    config = get_config()
    if args.downloader:
        config = config.override(downloader=args.downloader)

    configure_logging(config)
    DataPathsManager(config).ensure_all_directories()

    cli = InstallCLI(config)
    return await cli.run(args)


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        console.print("\n\n[yellow]Installation cancelled by user.[/yellow]")
        sys.exit(130)


__all__ = [
    'InstallCLI',
    'StaticSessionProvider',
    'SudoPrivilegedHelper',
    'TerminalConsentPrompt',
    'ProgressObserver',
    'build_parser',
    'main',
    'run',
]
