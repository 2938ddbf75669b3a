"""Supervisor - the focus-to-pin control loop.

One Supervisor instance is one run of the loop. It owns the job registry
and the "previous VM" pointer; the daemon builds a fresh instance after an
unexpected error, which is all a clean restart needs.

Per focus change (handle_focus):
    1. same VM as before          → ignore
    2. pin mask unreadable        → ignore, keep the previous VM
    3. release the previous VM's boost (unless it is dom0 and dom0 is not pinned)
    4. remember the new VM
    5. dom0 and dom0 not pinned   → stop
    6. mask equals ignore mask    → stop
    7. start a boost job

Control messages (run) take priority over focus events:
    RESET    → release every boost, forget focus history, keep running
    SHUTDOWN → return
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from focus_pin._logging import get_logger
from focus_pin.exceptions import EventSourceClosedError
from focus_pin.job_registry import JobRegistry
from focus_pin.models import ControlSignal

if TYPE_CHECKING:
    from focus_pin.config import BoostConfig
    from focus_pin.focus_tracker import FocusTracker
    from focus_pin.pin_controller import PinController

logger = get_logger(__name__)


class Supervisor:
    """Reacts to focus changes by moving the boost from VM to VM.

    Attributes:
        config: Boost policy
        registry: Active boost jobs (owned exclusively by this supervisor)
        previous_vm: Last VM that was accepted as focused
    """

    def __init__(
        self,
        config: BoostConfig,
        controller: PinController,
        registry: JobRegistry | None = None,
    ) -> None:
        self.config = config
        self._controller = controller
        self.registry = registry or JobRegistry(controller, config.boost_mask)
        self.previous_vm: str | None = None

    async def handle_focus(self, vm: str) -> None:
        """Apply one focus change."""
        if vm == self.previous_vm:
            logger.debug(f"Ignoring multi-focus event for: {vm}", extra={"vm": vm})
            return

        mask = await self._controller.get_pin_mask(vm)
        if mask is None:
            logger.debug(f"Ignoring invalid domain: {vm}", extra={"vm": vm})
            return

        previous = self.previous_vm
        if previous is not None and self.config.should_boost_privileged(previous):
            await self.registry.release(previous)

        self.previous_vm = vm

        if not self.config.should_boost_privileged(vm):
            logger.debug(
                f"Skipping pinning cores for {vm} as privileged domain pinning is disabled",
                extra={"vm": vm},
            )
            return

        if mask == self.config.ignore_mask:
            logger.debug(f"Skipping {vm} as its pin mask is {mask}", extra={"vm": vm, "mask": mask})
            return

        self.registry.start(vm, mask)

    async def reset(self) -> None:
        """Restore every boosted VM and start over with no focus history."""
        logger.info("Resetting all pins", extra={"vms": list(self.registry)})
        await self.registry.release_all()
        self.previous_vm = None

    async def shutdown(self) -> None:
        """Restore every boosted VM."""
        await self.registry.release_all()

    async def run(self, tracker: FocusTracker, control: asyncio.Queue[ControlSignal]) -> ControlSignal:
        """Drive the loop until a shutdown message arrives.

        All boosts are released before returning or raising.

        Args:
            tracker: Deduplicated focus changes for this run
            control: Channel of messages from process signal handlers

        Returns:
            ControlSignal.SHUTDOWN

        Raises:
            EventSourceClosedError: The focus stream ended
            Exception: Anything handle_focus raised; the daemon decides
                whether to restart
        """
        next_focus: asyncio.Future[str] = asyncio.ensure_future(anext(tracker))
        next_control: asyncio.Future[ControlSignal] = asyncio.ensure_future(control.get())
        stopping = False
        try:
            while True:
                done, _ = await asyncio.wait({next_focus, next_control}, return_when=asyncio.FIRST_COMPLETED)

                if next_control in done:
                    signal = next_control.result()
                    if signal is ControlSignal.SHUTDOWN:
                        logger.info("Shutdown requested")
                        stopping = True
                        return signal
                    await self.reset()
                    tracker.reset()
                    next_control = asyncio.ensure_future(control.get())
                    continue

                try:
                    vm = next_focus.result()
                except StopAsyncIteration as e:
                    raise EventSourceClosedError("Focus event stream ended") from e
                await self.handle_focus(vm)
                next_focus = asyncio.ensure_future(anext(tracker))
        finally:
            if next_control.done() and not next_control.cancelled() and not stopping:
                # Message arrived while a focus event was failing; leave it for the next run
                control.put_nowait(next_control.result())
            for pending in (next_focus, next_control):
                if not pending.done():
                    pending.cancel()
                    with contextlib.suppress(asyncio.CancelledError, StopAsyncIteration):
                        await pending
            await self.shutdown()
