"""Process utilities built on psutil.

Provides a PID-reuse safe wrapper around asyncio subprocesses and the
scan used to detect another running daemon instance.
"""

import asyncio
import contextlib
import os
from pathlib import Path

import psutil


class ProcessWrapper:
    """PID-reuse safe process wrapper using psutil.

    Wraps asyncio.subprocess.Process with psutil.Process for safer PID monitoring.
    Used for the long-running window watcher, which may outlive a supervisor run.
    """

    def __init__(self, async_proc: asyncio.subprocess.Process) -> None:
        self.async_proc = async_proc
        self.psutil_proc: psutil.Process | None = None

        if async_proc.pid:
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                # Process already died or inaccessible
                self.psutil_proc = psutil.Process(async_proc.pid)

    async def is_running(self) -> bool:
        """Check if process is still running (PID-reuse safe)."""
        if not self.psutil_proc:
            return self.async_proc.returncode is None

        try:
            return await asyncio.to_thread(self.psutil_proc.is_running)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return False

    @property
    def pid(self) -> int | None:
        """Process ID."""
        return self.async_proc.pid

    @property
    def returncode(self) -> int | None:
        """Process return code (None if still running)."""
        return self.async_proc.returncode

    @property
    def stdout(self):
        """Process stdout stream."""
        return self.async_proc.stdout

    @property
    def stderr(self):
        """Process stderr stream."""
        return self.async_proc.stderr

    async def wait(self) -> int:
        """Wait for process to complete."""
        return await self.async_proc.wait()

    async def terminate(self) -> None:
        """Terminate process (SIGTERM) without blocking the event loop."""
        if self.psutil_proc and await self.is_running():
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                await asyncio.to_thread(self.psutil_proc.terminate)
        else:
            self.async_proc.terminate()

    async def kill(self) -> None:
        """Kill process (SIGKILL) without blocking the event loop."""
        if self.psutil_proc and await self.is_running():
            with contextlib.suppress(psutil.NoSuchProcess, psutil.AccessDenied):
                await asyncio.to_thread(self.psutil_proc.kill)
        else:
            self.async_proc.kill()

    async def wait_with_timeout(self, timeout: float) -> int:
        """Wait for process exit, raising TimeoutError after timeout seconds.

        stdout is consumed by the watcher's reader, so this only waits.
        """
        await asyncio.wait_for(self.wait(), timeout=timeout)
        return self.returncode  # type: ignore[return-value]


def _matches_program(cmdline: list[str], program: str) -> bool:
    """Whether a process command line runs program (directly or via an interpreter)."""
    return any(Path(arg).name == program for arg in cmdline[:2])


def find_other_instances(program: str) -> list[int]:
    """PIDs of other processes running the given program name.

    Checks argv[0] and argv[1] so both `focus-pin` and
    `python /usr/bin/focus-pin` launches are detected. The current process and
    its ancestors (e.g. a wrapper shell named like the program) are excluded.

    Args:
        program: Executable name, e.g. "focus-pin"

    Returns:
        Sorted list of PIDs, empty if none found
    """
    own_pid = os.getpid()
    excluded = {own_pid}
    with contextlib.suppress(psutil.Error):
        excluded.update(p.pid for p in psutil.Process(own_pid).parents())

    pids: list[int] = []
    for proc in psutil.process_iter(["pid", "cmdline"]):
        if proc.info["pid"] in excluded:
            continue
        cmdline = proc.info.get("cmdline") or []
        if _matches_program(cmdline, program):
            pids.append(proc.info["pid"])
    return sorted(pids)
