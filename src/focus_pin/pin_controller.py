"""Hypervisor pin control via the xl toolstack.

Two operations, both per VM and always for all vCPUs:

    xl vcpu-list -- <vm>            read current hard affinity
    xl vcpu-pin -- <vm> all <mask>  apply a mask to every vCPU

`xl vcpu-list` output (one header row, one row per vCPU):

    Name          ID  VCPU   CPU State   Time(s) Affinity (Hard / Soft)
    work           3     0     5   -b-      12.0 4-15 / all
    work           3     1     7   -b-       9.1 4-15 / all

Only the hard affinity column is consumed. PinController holds no state
beyond the binary path, so it is safe to call concurrently for different VMs.
"""

from __future__ import annotations

from pathlib import Path

from focus_pin._logging import get_logger
from focus_pin.constants import HYPERVISOR_COMMAND_TIMEOUT_SECONDS, PIN_MASK_PATTERN, XL_AFFINITY_COLUMN
from focus_pin.exceptions import HypervisorUnavailableError, MixedPinningError, PinApplyError, PinQueryError
from focus_pin.models import PinSnapshot
from focus_pin.subprocess_utils import CommandResult, run_command

logger = get_logger(__name__)


def parse_vcpu_list(vm: str, output: str) -> PinSnapshot:
    """Extract the hard affinity shared by all vCPUs from `xl vcpu-list` output.

    Adjacent duplicate masks are collapsed and values that don't look like a
    mask are dropped.

    Raises:
        PinQueryError: No vCPU rows with a valid mask, or vCPUs pinned to
            different masks (per-vCPU pinning is left alone)
    """
    rows = output.splitlines()[1:]
    masks: list[str] = []
    vcpus = 0
    for row in rows:
        fields = row.split()
        if len(fields) <= XL_AFFINITY_COLUMN:
            continue
        vcpus += 1
        mask = fields[XL_AFFINITY_COLUMN]
        if not PIN_MASK_PATTERN.match(mask):
            continue
        if not masks or masks[-1] != mask:
            masks.append(mask)

    if not masks:
        raise PinQueryError(f"No pin mask found for {vm}", vm=vm)
    if len(set(masks)) > 1:
        raise MixedPinningError(
            f"{vm} has per-vCPU pinning, leaving it alone",
            context={"masks": masks},
            vm=vm,
        )
    return PinSnapshot(vm=vm, mask=masks[0], vcpus=vcpus)


class PinController:
    """Reads and sets VM pin masks through `xl`.

    Attributes:
        xl_bin: Path (or PATH-resolvable name) of the xl binary
        timeout: Seconds allowed for a single xl invocation
    """

    def __init__(self, xl_bin: Path | str = "xl", timeout: float = HYPERVISOR_COMMAND_TIMEOUT_SECONDS) -> None:
        self.xl_bin = str(xl_bin)
        self.timeout = timeout

    async def _xl(self, *args: str) -> CommandResult:
        try:
            return await run_command([self.xl_bin, *args], timeout=self.timeout)
        except (FileNotFoundError, PermissionError) as e:
            raise HypervisorUnavailableError(
                f"Cannot execute {self.xl_bin}: {e}",
                context={"xl_bin": self.xl_bin},
            ) from e

    async def read_pin_snapshot(self, vm: str) -> PinSnapshot:
        """Read a VM's current pin mask.

        Raises:
            PinQueryError: xl failed, timed out or returned no usable mask
            HypervisorUnavailableError: xl cannot be executed
        """
        try:
            result = await self._xl("vcpu-list", "--", vm)
        except TimeoutError as e:
            raise PinQueryError(f"xl vcpu-list timed out for {vm}", vm=vm) from e
        if not result.ok:
            raise PinQueryError(
                f"xl vcpu-list failed for {vm}",
                vm=vm,
                returncode=result.returncode,
                stderr=result.stderr.strip(),
            )
        return parse_vcpu_list(vm, result.stdout)

    async def get_pin_mask(self, vm: str) -> str | None:
        """Current pin mask of vm, or None if it can't be determined.

        None means "treat the VM as invalid for this event"; the cause is
        logged at debug level since vanished VMs are routine.
        """
        try:
            snapshot = await self.read_pin_snapshot(vm)
        except PinQueryError as e:
            level_log = logger.warning if isinstance(e, MixedPinningError) else logger.debug
            level_log(
                e.message,
                extra={"vm": vm, "returncode": e.returncode, "stderr": e.stderr, **e.context},
            )
            return None
        logger.debug("Read pin mask", extra={"vm": vm, "mask": snapshot.mask, "vcpus": snapshot.vcpus})
        return snapshot.mask

    async def set_pin_mask(self, vm: str, mask: str) -> None:
        """Pin all vCPUs of vm to mask.

        Raises:
            PinApplyError: xl failed or timed out (logged here as well)
            HypervisorUnavailableError: xl cannot be executed
        """
        logger.debug(f"xl vcpu-pin -- {vm} all {mask}")
        try:
            result = await self._xl("vcpu-pin", "--", vm, "all", mask)
        except TimeoutError as e:
            logger.error("xl vcpu-pin timed out", extra={"vm": vm, "mask": mask, "timeout": self.timeout})
            raise PinApplyError(f"xl vcpu-pin timed out for {vm}", vm=vm) from e
        if not result.ok:
            logger.error(
                "xl vcpu-pin failed",
                extra={"vm": vm, "mask": mask, "returncode": result.returncode, "stderr": result.stderr.strip()},
            )
            raise PinApplyError(
                f"Failed to pin {vm} to {mask}",
                vm=vm,
                returncode=result.returncode,
                stderr=result.stderr.strip(),
            )
