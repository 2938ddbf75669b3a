"""Exception hierarchy for focus-pin.

All exceptions inherit from FocusPinError base class.

Hierarchy:
    FocusPinError (base)
    ├── TransientError (per-event / per-VM, loop keeps running)
    │   ├── HypervisorError
    │   │   ├── PinQueryError          ← xl vcpu-list failed
    │   │   │   └── MixedPinningError  ← vCPUs pinned differently
    │   │   └── PinApplyError          ← xl vcpu-pin failed
    │   └── EventSourceError
    │       └── EventSourceClosedError ← window watcher exited
    ├── PermanentError (fatal, exit code 2)
    │   └── EnvironmentConfigError
    │       ├── DependencyError            ← required binary missing
    │       ├── HypervisorUnavailableError ← xl cannot be executed
    │       └── DuplicateInstanceError     ← another daemon is running
    └── JobAlreadyActiveError          ← registry precondition violated
"""

from __future__ import annotations

from typing import Any


class FocusPinError(Exception):
    """Base exception for all focus-pin errors with structured context.

    Attributes:
        message: Human-readable error message
        context: Dictionary of structured error context for logging/debugging
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


# =============================================================================
# Transient vs Permanent Error Base Classes
# =============================================================================


class TransientError(FocusPinError):
    """Base for errors confined to one event, one VM or one supervisor run.

    The daemon logs these and keeps running (abandoning the event, the
    boost task, or restarting the supervisor loop).
    """


class PermanentError(FocusPinError):
    """Base for errors that won't go away by restarting the loop.

    Configuration and environment problems. The CLI exits with code 2.
    """


# =============================================================================
# Hypervisor
# =============================================================================


class HypervisorError(TransientError):
    """A hypervisor command failed for one VM.

    Attributes:
        vm: VM the command was issued for
        returncode: Exit code of the command (None on timeout)
        stderr: Standard error output of the command
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        *,
        vm: str = "",
        returncode: int | None = None,
        stderr: str = "",
    ):
        super().__init__(message, context)
        self.vm = vm
        self.returncode = returncode
        self.stderr = stderr


class PinQueryError(HypervisorError):
    """Reading a VM's pin mask failed (VM vanished, xl error, unparseable output)."""


class MixedPinningError(PinQueryError):
    """vCPUs of one VM are pinned to different masks (per-vCPU layouts are not managed)."""


class PinApplyError(HypervisorError):
    """Applying a pin mask to a VM failed."""


# =============================================================================
# Window-manager event source
# =============================================================================


class EventSourceError(TransientError):
    """The window focus watcher misbehaved."""


class EventSourceClosedError(EventSourceError):
    """The window focus watcher stopped producing events (EOF).

    Raised by the supervisor loop; the daemon restarts with a fresh watcher.
    """


# =============================================================================
# Environment / configuration (fatal)
# =============================================================================


class EnvironmentConfigError(PermanentError):
    """The host environment cannot run the daemon."""


class DependencyError(EnvironmentConfigError):
    """A required external binary is not installed or not in PATH."""


class HypervisorUnavailableError(EnvironmentConfigError):
    """The hypervisor control binary could not be executed at all."""


class DuplicateInstanceError(EnvironmentConfigError):
    """Another instance of the daemon is already running.

    Attributes:
        pids: PIDs of the other instances
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None, pids: list[int] | None = None):
        super().__init__(message, context)
        self.pids = pids or []


# =============================================================================
# Registry
# =============================================================================


class JobAlreadyActiveError(FocusPinError):
    """A boost job was started for a VM that already has a live one.

    The supervisor always releases a VM's job before starting a new one,
    so this indicates a bug in the caller.
    """
