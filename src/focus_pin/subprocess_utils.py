"""Subprocess helpers.

- run_command: one-shot command with timeout and a sanitized environment
- read_lines: decode a subprocess stdout stream line by line
- log_task_exception: done-callback that surfaces background task failures
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from focus_pin._logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Sequence

logger = get_logger(__name__)

# Child processes run in the C locale so their output is parseable and stable
_SANITIZED_ENV_KEYS = ("PATH", "HOME", "DISPLAY", "XAUTHORITY")


def sanitized_env() -> dict[str, str]:
    """Minimal environment for child processes.

    Only the variables the hypervisor and X tools need survive; locale is
    forced to C.
    """
    env = {key: os.environ[key] for key in _SANITIZED_ENV_KEYS if key in os.environ}
    env["LC_ALL"] = "C"
    env["LANG"] = "C"
    return env


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of a finished command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_command(argv: Sequence[str], *, timeout: float) -> CommandResult:
    """Run a command to completion and capture its output.

    Args:
        argv: Program and arguments (no shell involved)
        timeout: Seconds before the process is killed

    Returns:
        CommandResult with decoded stdout/stderr

    Raises:
        FileNotFoundError / PermissionError: Program cannot be executed
        TimeoutError: Command did not finish within timeout (process is killed)
    """
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=sanitized_env(),
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise
    return CommandResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


async def read_lines(stream: asyncio.StreamReader) -> AsyncIterator[str]:
    """Yield decoded, right-stripped lines from a stream until EOF.

    Undecodable lines are skipped.
    """
    async for raw in stream:
        try:
            yield raw.decode().rstrip("\r\n")
        except UnicodeDecodeError:
            logger.debug("Skipping undecodable line", extra={"raw": raw[:80]})


def log_task_exception(task: asyncio.Task[None]) -> None:
    """Log exceptions from background tasks.

    Callback for asyncio.Task.add_done_callback() so a failing boost task
    is reported instead of disappearing with its task object.

    Args:
        task: The completed asyncio task to check for exceptions
    """
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(
            "Background task failed",
            extra={"task_name": task.get_name()},
            exc_info=exc,
        )
