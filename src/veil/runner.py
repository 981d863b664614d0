"""
Command runner for Veil.

Runs a command line after Veil has checked it:

    - Blocked commands are never executed
    - Rewritten commands are executed in their rewritten form
    - Execution has a timeout (30 seconds by default)
    - Failures come back as a CommandOutcome carrying a CommandError;
      run_command itself does not raise

The command line is handed to the shell as a single string, since the
rules are written against the full command line the caller typed.
"""

import logging
import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from veil.errors import (
    CommandBlockedError,
    CommandError,
    CommandExecutionError,
    CommandTimeoutError,
)
from veil.policy.engine import Veil
from veil.schema import VeilBlocked

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0

_TRUTHY = {"1", "true"}


@dataclass
class CommandOutcome:
    """
    Result of running a command through Veil.

    Attributes:
        command: The command line as requested
        executed: The command line that ran (rewritten form if any), None if blocked
        return_code: Exit status, None if the command did not run to completion
        stdout: Captured standard output
        stderr: Captured standard error
        blocked: The VeilBlocked result when the command was denied
        error: What went wrong, if anything
    """

    command: str
    executed: str | None = None
    return_code: int | None = None
    stdout: str = ""
    stderr: str = ""
    blocked: VeilBlocked | None = None
    error: CommandError | None = None

    @property
    def ok(self) -> bool:
        """True if the command ran and exited with status 0."""
        return self.error is None and self.return_code == 0

    @property
    def rewritten(self) -> bool:
        """True if a rewrite rule changed the command line."""
        return self.executed is not None and self.executed != self.command

    def raise_for_error(self) -> None:
        """Raise the recorded CommandError, if any."""
        if self.error is not None:
            raise self.error


def run_command(
    veil: Veil,
    command: str,
    cwd: Path | str | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    capture: bool = True,
) -> CommandOutcome:
    """
    Check a command with Veil and run it if allowed.

    Args:
        veil: Policy instance to consult
        command: Full command line
        cwd: Working directory (defaults to the current one)
        timeout: Seconds before the command is killed
        capture: Capture stdout/stderr; when False they are inherited

    Returns:
        CommandOutcome describing what happened
    """
    result = veil.check_command(command)
    if not result.ok:
        logger.info("Blocked command %r: %s", command, result.reason)
        return CommandOutcome(
            command=command,
            blocked=result,
            error=CommandBlockedError(
                command=command,
                reason=result.reason,
                safe_alternatives=list(result.safe_alternatives or []),
            ),
        )

    executed = result.command or command
    if executed != command:
        logger.info("Rewrote command %r -> %r", command, executed)

    try:
        # Rules match the whole command line, so it runs through the shell as written
        completed = subprocess.run(
            executed,
            cwd=str(cwd) if cwd is not None else None,
            shell=True,
            capture_output=capture,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        return CommandOutcome(
            command=command,
            executed=executed,
            error=CommandTimeoutError(command=executed, timeout_seconds=timeout),
        )
    except OSError as e:
        return CommandOutcome(
            command=command,
            executed=executed,
            error=CommandExecutionError(command=executed, underlying_error=str(e)),
        )

    return CommandOutcome(
        command=command,
        executed=executed,
        return_code=completed.returncode,
        stdout=_decode(completed.stdout),
        stderr=_decode(completed.stderr),
    )


def _decode(output: bytes | None) -> str:
    if not output:
        return ""
    return output.decode("utf-8", errors="replace")


def is_veil_active(environ: Mapping[str, str] | None = None) -> bool:
    """
    Whether command checking is switched on.

    VEIL_FORCE always activates; otherwise VEIL_ENABLED must be set
    (typically only in terminals driven by an agent).
    """
    environ = environ if environ is not None else os.environ
    if environ.get("VEIL_FORCE", "").lower() in _TRUTHY:
        return True
    return environ.get("VEIL_ENABLED", "").lower() in _TRUTHY
