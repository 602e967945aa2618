"""
Process execution utilities for secret providers.

Runs the external credential tools (security, op) without blocking the
event loop. Every call carries its own timeout; on expiry the child is
killed and CommandTimeoutError is raised.
"""

import asyncio
import logging
import shutil
import time
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .errors import ProviderError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class CommandTimeoutError(ProviderError, TimeoutError):
    """External command did not finish within its timeout."""

    def __init__(self, command: str, timeout: float):
        super().__init__(f"Command '{command}' timed out after {timeout}s")
        self.command = command
        self.timeout = timeout


@dataclass
class ProcessResult:
    """Outcome of an external command."""
    exit_code: int
    stdout: str
    stderr: str
    duration: float  # seconds

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


async def run_command(
    command: str,
    args: Sequence[str] = (),
    timeout: float = DEFAULT_TIMEOUT,
    input_text: Optional[str] = None,
) -> ProcessResult:
    """
    Execute an external command without a shell.

    Args:
        command: Executable name
        args: Arguments
        timeout: Timeout in seconds
        input_text: Optional text written to stdin

    Returns:
        ProcessResult with decoded output

    Raises:
        CommandTimeoutError: If the command exceeds the timeout
        FileNotFoundError: If the executable does not exist
    """
    start = time.monotonic()
    process = await asyncio.create_subprocess_exec(
        command,
        *args,
        stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(input_text.encode() if input_text is not None else None),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.warning(f"⚠️ Command '{command}' killed after {timeout}s")
        raise CommandTimeoutError(command, timeout)

    return ProcessResult(
        exit_code=process.returncode,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
        duration=time.monotonic() - start,
    )


def is_command_available(command: str) -> bool:
    """Check if an executable is on PATH."""
    return shutil.which(command) is not None


async def get_command_version(
    command: str,
    args: Optional[List[str]] = None,
    timeout: float = 3.0,
) -> Optional[str]:
    """
    Get the version output of a command.

    Returns:
        Trimmed output (stdout, or stderr for tools that print help there),
        or None if the command failed
    """
    try:
        result = await run_command(command, args or ["--version"], timeout=timeout)
    except (OSError, CommandTimeoutError) as e:
        logger.debug(f"Version probe for {command} failed: {e}")
        return None

    output = (result.stdout or result.stderr).strip()
    return output or None
