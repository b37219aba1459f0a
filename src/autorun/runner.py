"""Synchronous external command execution."""

import logging
import shlex
import subprocess
from typing import Optional, Sequence

from src.autorun.models import CommandResult

logger = logging.getLogger(__name__)

# Conventional shell statuses for "timed out" and "command not found"
TIMEOUT_RETURNCODE = 124
NOT_FOUND_RETURNCODE = 127


class CommandRunner:
    """Run one external command at a time, echoing it before execution.

    A failing command never raises: callers inspect the returned
    CommandResult and decide whether the failure is fatal.
    """

    def __init__(self, timeout: Optional[float] = None, echo: bool = True):
        self.timeout = timeout
        self.echo = echo

    def run(
        self,
        argv: Sequence[str],
        capture: bool = True,
        input: Optional[str] = None,
    ) -> CommandResult:
        """Run a command and return its result.

        Args:
            argv: Program and arguments (no shell involved)
            capture: Capture stdout/stderr instead of streaming to the terminal
            input: Text fed to the command's stdin

        Returns:
            CommandResult with the exit status and any captured output
        """
        argv = tuple(str(arg) for arg in argv)
        command_line = shlex.join(argv)
        if self.echo:
            print(command_line + (" < -" if input is not None else ""), flush=True)
        logger.debug("Running: %s", command_line)

        try:
            completed = subprocess.run(
                argv,
                capture_output=capture,
                input=input,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError:
            logger.error("Command not found: %s", argv[0])
            return CommandResult(argv, NOT_FOUND_RETURNCODE, "", f"{argv[0]}: command not found")
        except subprocess.TimeoutExpired:
            logger.error("Command timed out after %ss: %s", self.timeout, command_line)
            return CommandResult(argv, TIMEOUT_RETURNCODE, "", "Timeout")

        result = CommandResult(
            argv,
            completed.returncode,
            completed.stdout or "",
            completed.stderr or "",
        )
        if not result.ok:
            logger.debug("Command failed: %s", result.describe())
        return result
