"""Command runner - Runs external tools and streams their output to the log."""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class DeployError(Exception):
    """A deployment step failed and the run must stop."""


class PrerequisiteError(DeployError):
    """A required system component is missing."""


class CommandError(DeployError):
    """An external command exited with a non-zero status."""

    def __init__(self, args: List[str], returncode: int, output: str = ""):
        self.cmd = list(args)
        self.returncode = returncode
        self.output = output
        super().__init__(f"Command failed with exit code {returncode}: {' '.join(self.cmd)}")


@dataclass
class CommandResult:
    """Exit status and merged stdout/stderr of a finished command."""

    args: List[str]
    returncode: int
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Runs external processes one at a time, blocking until each exits."""

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)

    def run(
        self,
        cmd: List[str],
        cwd: Optional[str] = None,
        env: Optional[dict] = None,
        log_callback: Optional[Callable[[str], None]] = None,
        check: bool = True,
    ) -> CommandResult:
        """
        Run a command, forwarding each output line as it arrives.

        Args:
            cmd: Program and arguments
            cwd: Working directory for the process
            env: Full environment for the process (defaults to ours)
            log_callback: Receives every output line; defaults to logger.info
            check: Raise CommandError on a non-zero exit code

        Returns:
            CommandResult with the exit code and collected output
        """
        cmd = [str(part) for part in cmd]
        emit = log_callback or logger.info
        logger.debug("Running: %s", " ".join(cmd))

        try:
            process = subprocess.Popen(
                cmd,
                cwd=str(cwd) if cwd else None,
                env=env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                bufsize=1,
            )
        except FileNotFoundError as e:
            raise CommandError(cmd, 127, str(e)) from e

        output_lines = []
        for line in process.stdout:
            line = line.rstrip()
            output_lines.append(line)
            if line:
                emit(line)

        process.wait()
        result = CommandResult(cmd, process.returncode, "\n".join(output_lines))

        if check and not result.ok:
            raise CommandError(cmd, result.returncode, result.output)
        return result
