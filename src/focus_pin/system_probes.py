"""Startup checks for the host environment.

Failures here are configuration errors: the daemon can't do anything
useful, so the CLI exits with code 2 instead of entering the loop.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from focus_pin._logging import get_logger
from focus_pin.exceptions import DependencyError, DuplicateInstanceError
from focus_pin.platform_utils import find_other_instances

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ResolvedBinaries:
    """Absolute paths of the external tools the daemon runs."""

    xl: Path
    xprop: Path


def resolve_binary(binary: Path | str) -> Path:
    """Absolute path of an executable, looked up in PATH when given a bare name.

    Raises:
        DependencyError: Not found or not executable
    """
    found = shutil.which(str(binary))
    if found is None:
        raise DependencyError(
            f"This program requires {binary} to be installed and in PATH!",
            context={"binary": str(binary)},
        )
    return Path(found)


def check_single_instance(program: str) -> None:
    """Raise if another daemon instance is already running.

    Raises:
        DuplicateInstanceError: Another process runs the same program
    """
    pids = find_other_instances(program)
    if pids:
        raise DuplicateInstanceError(
            "Another instance of focus-pin is already running!",
            context={"program": program},
            pids=pids,
        )


def check_environment(xl_bin: Path | str, xprop_bin: Path | str, program: str | None) -> ResolvedBinaries:
    """Verify the daemon can run here.

    Args:
        xl_bin: xl binary (name or path)
        xprop_bin: xprop binary (name or path)
        program: Executable name used to detect duplicate instances (None skips the check)

    Returns:
        Resolved absolute binary paths

    Raises:
        DuplicateInstanceError: Another instance is running
        DependencyError: A required binary is missing
    """
    if program:
        check_single_instance(program)
    binaries = ResolvedBinaries(xl=resolve_binary(xl_bin), xprop=resolve_binary(xprop_bin))
    logger.debug("Environment OK", extra={"xl": str(binaries.xl), "xprop": str(binaries.xprop)})
    return binaries
