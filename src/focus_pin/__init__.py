"""focus-pin: CPU pinning that follows window focus on QubesOS.

Pins the VM that owns the focused window to more physical cores (typically
all of them, with every VM otherwise confined to E-cores) and restores its
original pinning when focus moves elsewhere, on SIGUSR1, or on shutdown.

Command line:
    ```
    focus-pin                        # boost to all cores
    focus-pin --boost-mask 0-7       # boost to P-cores only
    kill -USR1 <pid>                 # restore every VM, keep running
    ```

Library use (custom event source):
    ```python
    import asyncio
    from focus_pin import BoostConfig, Daemon, PinController

    daemon = Daemon(BoostConfig(boost_mask="0-7"), PinController("/usr/sbin/xl"))
    asyncio.run(daemon.run())
    ```

Requirements:
    - QubesOS dom0 (Xen `xl` toolstack, X11 `xprop`)
    - Python 3.12+
"""

from focus_pin.boost_task import BoostTask
from focus_pin.config import BoostConfig
from focus_pin.daemon import Daemon
from focus_pin.event_source import WindowFocusSource
from focus_pin.exceptions import (
    DependencyError,
    DuplicateInstanceError,
    EnvironmentConfigError,
    EventSourceClosedError,
    EventSourceError,
    FocusPinError,
    HypervisorError,
    HypervisorUnavailableError,
    JobAlreadyActiveError,
    MixedPinningError,
    PermanentError,
    PinApplyError,
    PinQueryError,
    TransientError,
)
from focus_pin.focus_tracker import FocusTracker
from focus_pin.job_registry import BoostJob, JobRegistry
from focus_pin.models import BoostState, ControlSignal, PinSnapshot
from focus_pin.pin_controller import PinController
from focus_pin.supervisor import Supervisor

__all__ = [
    "BoostConfig",
    "BoostJob",
    "BoostState",
    "BoostTask",
    "ControlSignal",
    "Daemon",
    "DependencyError",
    "DuplicateInstanceError",
    "EnvironmentConfigError",
    "EventSourceClosedError",
    "EventSourceError",
    "FocusPinError",
    "FocusTracker",
    "HypervisorError",
    "HypervisorUnavailableError",
    "JobAlreadyActiveError",
    "JobRegistry",
    "MixedPinningError",
    "PermanentError",
    "PinApplyError",
    "PinController",
    "PinQueryError",
    "PinSnapshot",
    "Supervisor",
    "TransientError",
    "WindowFocusSource",
]

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("focus-pin")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"
