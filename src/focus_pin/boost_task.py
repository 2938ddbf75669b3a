"""BoostTask - one "VM is boosted" lifetime.

    INITIALIZING ──apply boost mask──> BOOSTED ──release()──> RELEASED
          │                                                     ▲
          └──────────── boost failed / cancelled ───────────────┘

The original mask is always restored in a finally block, so it runs on
explicit release, on cancellation of the task handle, and after a failed
boost attempt. Process signals never reach a task directly: the daemon
turns them into control messages and the supervisor calls release() on
each job, so a reset broadcast restores every VM exactly once.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from focus_pin._logging import get_logger
from focus_pin.exceptions import HypervisorError
from focus_pin.models import BoostState

if TYPE_CHECKING:
    from focus_pin.pin_controller import PinController

logger = get_logger(__name__)


class BoostTask:
    """Holds a VM on the boost mask until released, then restores its original mask.

    Attributes:
        vm: VM being boosted
        original_mask: Mask captured before boosting, restored on release
        boost_mask: Mask applied while the VM holds focus
        state: Current BoostState
    """

    def __init__(self, vm: str, original_mask: str, boost_mask: str, controller: PinController) -> None:
        self.vm = vm
        self.original_mask = original_mask
        self.boost_mask = boost_mask
        self.state = BoostState.INITIALIZING
        self._controller = controller
        self._release_event = asyncio.Event()
        self._boosted_event = asyncio.Event()

    def release(self) -> None:
        """Ask the task to restore the original mask and finish.

        Safe to call any number of times; only the first call has an effect.
        """
        if self.state is BoostState.RELEASED or self._release_event.is_set():
            return
        logger.debug("Release requested", extra={"vm": self.vm})
        self._release_event.set()

    async def wait_boosted(self) -> None:
        """Wait until the boost mask has been applied (or the task gave up).

        For callers that need to sequence on the boost, e.g. to report the VM
        as boosted. The registry and supervisor never wait on it.
        """
        await self._boosted_event.wait()

    async def run(self) -> None:
        """Apply the boost mask, wait for release, restore the original mask.

        Raises:
            PinApplyError: The boost mask could not be applied (restoration
                was still attempted)
        """
        try:
            logger.info(f"Pinning {self.vm} to {self.boost_mask}", extra={"vm": self.vm, "mask": self.boost_mask})
            await self._controller.set_pin_mask(self.vm, self.boost_mask)
            self.state = BoostState.BOOSTED
            self._boosted_event.set()

            logger.debug("Waiting to reset pins", extra={"vm": self.vm})
            await self._release_event.wait()
        finally:
            self._boosted_event.set()
            await self._restore()

    async def _restore(self) -> None:
        logger.info(
            f"Re-pinning {self.vm} from {self.boost_mask} to {self.original_mask}",
            extra={"vm": self.vm, "mask": self.original_mask},
        )
        try:
            await self._controller.set_pin_mask(self.vm, self.original_mask)
        except HypervisorError as e:
            # VM may have shut down while focused; nothing left to restore
            logger.error(
                f"Could not restore pin mask of {self.vm}",
                extra={"vm": self.vm, "mask": self.original_mask, "error": e.message},
            )
        finally:
            self.state = BoostState.RELEASED

    def __repr__(self) -> str:
        return f"BoostTask(vm={self.vm!r}, original_mask={self.original_mask!r}, state={self.state.value})"
