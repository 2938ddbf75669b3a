"""Shared pytest fixtures for focus-pin tests.

The hypervisor is replaced by FakePinController, an in-memory table of
pin masks that records every xl-equivalent call. Nothing here needs dom0.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable

import pytest

from focus_pin.config import BoostConfig
from focus_pin.exceptions import PinApplyError
from focus_pin.job_registry import JobRegistry
from focus_pin.supervisor import Supervisor

# ============================================================================
# Fakes
# ============================================================================


class FakePinController:
    """In-memory stand-in for PinController.

    Attributes:
        masks: Current pin mask per VM; VMs not in here "don't exist"
        set_calls: Every (vm, mask) passed to set_pin_mask, in order
        get_calls: Every vm passed to get_pin_mask, in order
        fail_set: VMs for which set_pin_mask raises PinApplyError
        set_delay: Seconds each set_pin_mask call takes
    """

    def __init__(self, masks: dict[str, str] | None = None) -> None:
        self.masks: dict[str, str] = dict(masks or {})
        self.set_calls: list[tuple[str, str]] = []
        self.get_calls: list[str] = []
        self.fail_set: set[str] = set()
        self.set_delay = 0.0

    async def get_pin_mask(self, vm: str) -> str | None:
        self.get_calls.append(vm)
        await asyncio.sleep(0)
        return self.masks.get(vm)

    async def set_pin_mask(self, vm: str, mask: str) -> None:
        self.set_calls.append((vm, mask))
        if self.set_delay:
            await asyncio.sleep(self.set_delay)
        else:
            await asyncio.sleep(0)
        if vm in self.fail_set or vm not in self.masks:
            raise PinApplyError(f"Failed to pin {vm} to {mask}", vm=vm, returncode=1)
        self.masks[vm] = mask

    def pins_for(self, vm: str) -> list[str]:
        """Masks applied to vm, in order."""
        return [mask for called_vm, mask in self.set_calls if called_vm == vm]


async def lines_from(items: Iterable[str]) -> AsyncIterator[str]:
    """Async line source yielding items, then ending."""
    for item in items:
        await asyncio.sleep(0)
        yield item


class QueueSource:
    """Async line source fed by the test; ends when None is pushed."""

    def __init__(self) -> None:
        self.queue: asyncio.Queue[str | None] = asyncio.Queue()
        self.entered = 0
        self.exited = 0

    def push(self, *lines: str | None) -> None:
        for line in lines:
            self.queue.put_nowait(line)

    async def __aenter__(self) -> QueueSource:
        self.entered += 1
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.exited += 1

    def __aiter__(self) -> AsyncIterator[str]:
        return self._lines()

    async def _lines(self) -> AsyncIterator[str]:
        while (line := await self.queue.get()) is not None:
            yield line


async def settle(rounds: int = 20) -> None:
    """Let pending tasks run a few loop iterations."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ============================================================================
# Fixtures
# ============================================================================

E_CORES = "8-15"


@pytest.fixture
def controller() -> FakePinController:
    """Hypervisor with two E-core-pinned VMs, one unpinned VM and dom0."""
    return FakePinController(
        {
            "work": E_CORES,
            "personal": E_CORES,
            "vault": "all",
            "Domain-0": E_CORES,
        }
    )


@pytest.fixture
def config() -> BoostConfig:
    return BoostConfig()


@pytest.fixture
def registry(controller: FakePinController) -> JobRegistry:
    return JobRegistry(controller, "all", release_timeout=2.0)  # type: ignore[arg-type]


@pytest.fixture
def supervisor(config: BoostConfig, controller: FakePinController) -> Supervisor:
    return Supervisor(config, controller)  # type: ignore[arg-type]
