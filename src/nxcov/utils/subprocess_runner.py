"""Async subprocess execution for the external CLI tools (nx, jest).

Every external tool invocation goes through :func:`run_subprocess`, which
captures output, enforces a timeout and reports the outcome as a
:class:`SubprocessResult` instead of leaking ``asyncio`` process details.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300.0


@dataclass
class SubprocessResult:
    """Result of subprocess execution."""

    returncode: int
    """Exit code of the process."""

    stdout: str
    """Standard output captured from the process."""

    stderr: str
    """Standard error captured from the process."""

    success: bool
    """True if returncode is 0 and the process did not time out."""

    timed_out: bool = False
    """True if the process was killed after exceeding its timeout."""

    duration_ms: float = 0.0
    """Wall-clock duration in milliseconds."""


class SubprocessError(Exception):
    """Exception raised when a subprocess cannot be started."""

    def __init__(self, message: str, result: SubprocessResult) -> None:
        super().__init__(message)
        self.result = result


def _failed(stderr: str) -> SubprocessResult:
    return SubprocessResult(returncode=-1, stdout="", stderr=stderr, success=False)


async def run_subprocess(
    command: Sequence[str],
    *,
    cwd: Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> SubprocessResult:
    """Run ``command`` and capture its output.

    Args:
        command: Program and arguments, e.g. ``["npx", "jest", "--showConfig"]``.
        cwd: Working directory. Defaults to the current directory.
        timeout: Seconds to wait before the process is killed.

    Returns:
        The captured result. A timeout is reported as an unsuccessful result,
        not an exception.

    Raises:
        SubprocessError: If the program cannot be started.
        ValueError: If the command is empty, the timeout is not positive or
            the working directory does not exist.
    """
    if not command:
        raise ValueError("Command cannot be empty")

    if timeout <= 0:
        raise ValueError(f"Timeout must be positive, got {timeout}")

    work_dir = cwd.resolve() if cwd else Path.cwd()
    if not work_dir.is_dir():
        raise ValueError(f"Working directory does not exist: {work_dir}")

    display = " ".join(str(part) for part in command)

    logger.debug("Running subprocess: %s (cwd=%s, timeout=%s)", display, work_dir, timeout)

    start_time = time.perf_counter()
    timed_out = False

    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=work_dir,
        )
    except FileNotFoundError as exc:
        logger.error("Command not found: %s", command[0])
        raise SubprocessError(f"Command not found: {command[0]}", result=_failed(str(exc))) from exc
    except OSError as exc:
        raise SubprocessError(f"Failed to start {display}: {exc}", result=_failed(str(exc))) from exc

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        logger.warning("Subprocess timed out after %s seconds: %s", timeout, display)
        timed_out = True
        try:
            process.kill()
            await process.wait()
        except ProcessLookupError:
            pass
        stdout_bytes = b""
        stderr_bytes = b"Process timed out and was killed"

    duration_ms = (time.perf_counter() - start_time) * 1000
    returncode = process.returncode if process.returncode is not None else -1
    if timed_out and returncode == 0:
        returncode = -1

    result = SubprocessResult(
        returncode=returncode,
        stdout=stdout_bytes.decode("utf-8", errors="replace"),
        stderr=stderr_bytes.decode("utf-8", errors="replace"),
        success=returncode == 0 and not timed_out,
        timed_out=timed_out,
        duration_ms=duration_ms,
    )

    logger.debug(
        "Subprocess completed: returncode=%d, duration=%.2fms, success=%s",
        result.returncode,
        duration_ms,
        result.success,
    )
    if result.stderr.strip():
        logger.debug("stderr: %s", result.stderr.strip())

    return result
