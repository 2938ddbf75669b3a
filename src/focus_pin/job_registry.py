"""Registry of active boost jobs, at most one per VM.

Only the supervisor coroutine mutates the registry. Boost tasks never
touch it; they only finish after restoring their VM, which release()
awaits before dropping the entry. A task that finished on its own (failed
boost) is dropped the next time the registry is looked at.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from focus_pin._logging import get_logger
from focus_pin.boost_task import BoostTask
from focus_pin.constants import RELEASE_CANCEL_GRACE_SECONDS, RELEASE_TIMEOUT_SECONDS
from focus_pin.exceptions import JobAlreadyActiveError
from focus_pin.subprocess_utils import log_task_exception

if TYPE_CHECKING:
    from collections.abc import Iterator

    from focus_pin.pin_controller import PinController

logger = get_logger(__name__)


@dataclass(slots=True)
class BoostJob:
    """A running boost: the task state machine plus the asyncio handle driving it."""

    vm: str
    original_mask: str
    task: BoostTask
    handle: asyncio.Task[None]

    @property
    def live(self) -> bool:
        return not self.handle.done()


class JobRegistry:
    """Maps VM name to its active BoostJob.

    Invariant: every entry is a live job, at most one per VM.
    """

    def __init__(
        self,
        controller: PinController,
        boost_mask: str,
        release_timeout: float = RELEASE_TIMEOUT_SECONDS,
    ) -> None:
        self._controller = controller
        self._boost_mask = boost_mask
        self._release_timeout = release_timeout
        self._jobs: dict[str, BoostJob] = {}

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def _prune(self) -> None:
        """Drop jobs whose task already finished (boost failed, mask restored)."""
        for vm in [vm for vm, job in self._jobs.items() if not job.live]:
            logger.debug("Pruning finished job", extra={"vm": vm, "state": self._jobs[vm].task.state.value})
            del self._jobs[vm]

    @property
    def active_vms(self) -> list[str]:
        """VMs with a live boost job."""
        self._prune()
        return list(self._jobs)

    def get(self, vm: str) -> BoostJob | None:
        self._prune()
        return self._jobs.get(vm)

    def __contains__(self, vm: object) -> bool:
        self._prune()
        return vm in self._jobs

    def __len__(self) -> int:
        self._prune()
        return len(self._jobs)

    def __iter__(self) -> Iterator[str]:
        self._prune()
        return iter(list(self._jobs))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self, vm: str, original_mask: str) -> BoostJob:
        """Spawn a boost task for vm.

        Args:
            vm: VM that just gained focus
            original_mask: Its current pin mask, restored on release

        Raises:
            JobAlreadyActiveError: vm already has a live job (the caller must
                release it first)
        """
        self._prune()
        existing = self._jobs.get(vm)
        if existing is not None:
            raise JobAlreadyActiveError(
                f"Boost job for {vm} is already active",
                context={"vm": vm, "state": existing.task.state.value},
            )

        task = BoostTask(vm, original_mask, self._boost_mask, self._controller)
        handle = asyncio.create_task(task.run(), name=f"boost-{vm}")
        handle.add_done_callback(log_task_exception)
        job = BoostJob(vm=vm, original_mask=original_mask, task=task, handle=handle)
        self._jobs[vm] = job
        logger.debug("Boost job started", extra={"vm": vm, "original_mask": original_mask})
        return job

    async def release(self, vm: str) -> None:
        """Release vm's boost job if it has one, waiting for its mask to be restored.

        No-op when vm has no job.
        """
        job = self._jobs.get(vm)
        if job is None:
            logger.debug(f"Key {vm} not found in jobs list", extra={"vm": vm})
            return

        logger.info(f"Resetting pinning for {vm}", extra={"vm": vm})
        job.task.release()
        try:
            # asyncio.wait never cancels the handle, so a slow restore keeps running
            done, _ = await asyncio.wait({job.handle}, timeout=self._release_timeout)
            if not done:
                logger.error(
                    "Boost task did not finish restoring in time, cancelling",
                    extra={"vm": vm, "timeout": self._release_timeout},
                )
                job.handle.cancel()
                # The cancelled restore must be off the hypervisor before the VM can be boosted again
                done, _ = await asyncio.wait({job.handle}, timeout=RELEASE_CANCEL_GRACE_SECONDS)
                if not done:
                    logger.error(
                        "Boost task did not finish cancelling",
                        extra={"vm": vm, "grace": RELEASE_CANCEL_GRACE_SECONDS},
                    )
        finally:
            self._jobs.pop(vm, None)

    async def release_all(self) -> None:
        """Release every job (in registration order)."""
        self._prune()
        if not self._jobs:
            return
        logger.debug("Resetting all pins", extra={"vms": list(self._jobs)})
        for vm in list(self._jobs):
            await self.release(vm)

