# Path: release_installer/engine/shell.py
"""
Shell Runner

Async subprocess execution for the external tools the pipeline drives
(archive expansion, security assessment, code signing, aria2, helpers).

Architecture:
- asyncio subprocesses, never blocking the event loop
- Captured stdout/stderr as text
- Optional per-line streaming for long-running tools
- Timeout and cancellation kill the child before propagating
"""

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence, Union

from release_installer.core.logger import get_logger
from release_installer.constants import LOG_PROCESS

logger = get_logger(__name__, 'engine')

LineCallback = Callable[[str], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class ProcessOutput:
    """Exit status and captured output of a finished process."""
    status: int
    stdout: str
    stderr: str

    @property
    def combined(self) -> str:
        return '\n'.join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


class ProcessExecutionError(Exception):
    """Process exited with a non-zero status."""

    def __init__(self, command: Sequence[str], output: ProcessOutput):
        self.command = list(command)
        self.output = output
        super().__init__(
            f"{self.command[0]} exited with status {output.status}: "
            f"{output.stderr.strip() or output.stdout.strip()}"
        )

    @property
    def status(self) -> int:
        return self.output.status

    @property
    def stdout(self) -> str:
        return self.output.stdout

    @property
    def stderr(self) -> str:
        return self.output.stderr


async def _terminate(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        return
    await process.wait()


class ShellRunner:
    """
    Runs external commands.

    Components receive a runner instead of calling asyncio directly, so
    tests substitute a fake that records commands and returns canned output.

    Example:
        runner = ShellRunner()
        output = await runner.run('/usr/bin/xip', '--expand', str(path), cwd=path.parent)
    """

    async def run(
        self,
        *args: Union[str, Path],
        cwd: Optional[Path] = None,
        timeout: Optional[float] = None,
        check: bool = True
    ) -> ProcessOutput:
        """
        Run a command to completion.

        Args:
            *args: Executable and arguments
            cwd: Working directory
            timeout: Seconds before the process is killed
            check: Raise ProcessExecutionError on non-zero exit

        Returns:
            ProcessOutput

        Raises:
            ProcessExecutionError: Non-zero exit with check set
            asyncio.TimeoutError: Timeout elapsed (process killed)
        """
        command = [str(arg) for arg in args]
        logger.debug(f"{LOG_PROCESS} Running: {' '.join(command)}")

        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
        )

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            await _terminate(process)
            raise

        output = ProcessOutput(
            status=process.returncode or 0,
            stdout=stdout.decode('utf-8', errors='replace'),
            stderr=stderr.decode('utf-8', errors='replace'),
        )

        if check and output.status != 0:
            raise ProcessExecutionError(command, output)

        return output

    async def stream(
        self,
        *args: Union[str, Path],
        on_line: LineCallback,
        cwd: Optional[Path] = None,
        check: bool = True
    ) -> ProcessOutput:
        """
        Run a command, passing each stdout line to on_line as it arrives.

        stderr is captured whole; stdout lines are also collected.

        Raises:
            ProcessExecutionError: Non-zero exit with check set
        """
        command = [str(arg) for arg in args]
        logger.debug(f"{LOG_PROCESS} Streaming: {' '.join(command)}")

        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
        )

        lines = []

        async def read_stdout() -> None:
            while True:
                raw = await process.stdout.readline()
                if not raw:
                    break
                line = raw.decode('utf-8', errors='replace').rstrip()
                lines.append(line)
                result = on_line(line)
                if asyncio.iscoroutine(result):
                    await result

        try:
            _, stderr = await asyncio.gather(read_stdout(), process.stderr.read())
            await process.wait()
        except (asyncio.CancelledError, Exception):
            await _terminate(process)
            raise

        output = ProcessOutput(
            status=process.returncode or 0,
            stdout='\n'.join(lines),
            stderr=stderr.decode('utf-8', errors='replace'),
        )

        if check and output.status != 0:
            raise ProcessExecutionError(command, output)

        return output


__all__ = ['ShellRunner', 'ProcessOutput', 'ProcessExecutionError', 'LineCallback']
