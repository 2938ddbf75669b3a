"""Window focus events from the X server, resolved to Qubes VM names.

Spies on the root window's _NET_ACTIVE_WINDOW property:

    $ xprop -spy -root -notype _NET_ACTIVE_WINDOW
    _NET_ACTIVE_WINDOW: window id # 0x1e00007
    _NET_ACTIVE_WINDOW: window id # 0x0

and resolves each window id through the _QUBES_VMNAME property that the
Qubes GUI daemon sets on every VM window:

    $ xprop -notype _QUBES_VMNAME -id 0x1e00007
    _QUBES_VMNAME = "work"
    $ xprop -notype _QUBES_VMNAME -id 0x2a00003
    _QUBES_VMNAME:  not found.

Windows without the property belong to dom0, as does the null window.
A window that disappears before it can be resolved is skipped.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import TYPE_CHECKING, Self

from focus_pin._logging import get_logger
from focus_pin.constants import (
    PRIVILEGED_DOMAIN,
    XPROP_LOOKUP_TIMEOUT_SECONDS,
    XPROP_NULL_WINDOW,
    XPROP_WINDOW_ID_FIELD,
)
from focus_pin.exceptions import DependencyError, EventSourceError
from focus_pin.platform_utils import ProcessWrapper
from focus_pin.resource_cleanup import cleanup_process
from focus_pin.subprocess_utils import read_lines, run_command, sanitized_env

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from types import TracebackType

logger = get_logger(__name__)

_WINDOW_ID_RE = re.compile(r"^0x[0-9a-fA-F]+$")
_VMNAME_RE = re.compile(r'"([^"]+)"')
_VMNAME_MISSING_RE = re.compile(r"_QUBES_VMNAME:\s+not\s+found")
_NULL_WINDOW_ERROR_RE = re.compile(r"0x0\.?$")


def parse_active_window(line: str) -> str | None:
    """Window id from one `xprop -spy` line, or None if the line has none."""
    fields = line.split(" ")
    if len(fields) <= XPROP_WINDOW_ID_FIELD:
        return None
    window_id = fields[XPROP_WINDOW_ID_FIELD].rstrip(",")
    if not _WINDOW_ID_RE.match(window_id):
        return None
    return window_id


def parse_vm_name(output: str, privileged_domain: str = PRIVILEGED_DOMAIN) -> str | None:
    """VM name from `xprop -notype _QUBES_VMNAME -id ...` output (stdout + stderr).

    Returns:
        The quoted VM name, privileged_domain for dom0 windows, or None when
        the output carries no answer (e.g. BadWindow for a closed window)
    """
    for line in output.splitlines():
        if match := _VMNAME_RE.search(line):
            return match.group(1)
        if _VMNAME_MISSING_RE.search(line) or _NULL_WINDOW_ERROR_RE.search(line.strip()):
            return privileged_domain
    return None


class WindowFocusSource:
    """Async stream of VM names, one per active-window change.

    Usage:
        async with WindowFocusSource() as source:
            async for vm in source:
                ...

    The stream ends when the xprop spy process exits. Names are passed
    through unvalidated; FocusTracker filters noise.
    """

    def __init__(
        self,
        xprop_bin: Path | str = "xprop",
        privileged_domain: str = PRIVILEGED_DOMAIN,
        lookup_timeout: float = XPROP_LOOKUP_TIMEOUT_SECONDS,
    ) -> None:
        self.xprop_bin = str(xprop_bin)
        self.privileged_domain = privileged_domain
        self.lookup_timeout = lookup_timeout
        self._proc: ProcessWrapper | None = None

    async def __aenter__(self) -> Self:
        try:
            async_proc = await asyncio.create_subprocess_exec(
                self.xprop_bin,
                "-spy",
                "-root",
                "-notype",
                "_NET_ACTIVE_WINDOW",
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                env=sanitized_env(),
            )
        except (FileNotFoundError, PermissionError) as e:
            raise DependencyError(f"Cannot execute {self.xprop_bin}: {e}", context={"xprop_bin": self.xprop_bin}) from e
        self._proc = ProcessWrapper(async_proc)
        logger.debug("Window watcher started", extra={"pid": self._proc.pid})
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await cleanup_process(self._proc, "xprop")
        self._proc = None

    def __aiter__(self) -> AsyncIterator[str]:
        return self.events()

    async def events(self) -> AsyncIterator[str]:
        """Yield the VM name of every newly active window."""
        if self._proc is None or self._proc.stdout is None:
            raise EventSourceError("Window watcher is not running")
        async for line in read_lines(self._proc.stdout):
            window_id = parse_active_window(line)
            if window_id is None:
                logger.debug("Ignoring watcher line", extra={"line": line})
                continue
            vm = await self.resolve(window_id)
            if vm is not None:
                yield vm
        logger.warning("Window watcher exited", extra={"returncode": self._proc.returncode})

    async def resolve(self, window_id: str) -> str | None:
        """VM owning window_id, or None if the window can't be queried."""
        if window_id == XPROP_NULL_WINDOW:
            return self.privileged_domain
        try:
            result = await run_command(
                [self.xprop_bin, "-notype", "_QUBES_VMNAME", "-id", window_id],
                timeout=self.lookup_timeout,
            )
        except TimeoutError:
            logger.debug("Window lookup timed out", extra={"window_id": window_id})
            return None
        except (FileNotFoundError, PermissionError) as e:
            raise DependencyError(f"Cannot execute {self.xprop_bin}: {e}") from e

        vm = parse_vm_name(result.stdout + result.stderr, self.privileged_domain)
        if vm is None:
            logger.debug(
                "Skipping window without VM name",
                extra={"window_id": window_id, "returncode": result.returncode},
            )
        return vm
