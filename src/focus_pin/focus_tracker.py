"""Validated, deduplicated stream of focused VM names."""

from __future__ import annotations

from typing import TYPE_CHECKING

from focus_pin._logging import get_logger
from focus_pin.constants import VM_NAME_PATTERN

if TYPE_CHECKING:
    from collections.abc import AsyncIterable

logger = get_logger(__name__)


class FocusTracker:
    """Turns raw focus lines into focus changes.

    Lines that aren't a valid VM name are dropped. Consecutive repeats of the
    same VM (focus moving between windows of one VM) are suppressed, so each
    yielded name differs from the one before it. Single pass: once the
    underlying source ends, so does the tracker.
    """

    def __init__(self, source: AsyncIterable[str]) -> None:
        self._lines = aiter(source)
        self._last: str | None = None

    @property
    def last(self) -> str | None:
        """Last forwarded VM name."""
        return self._last

    def reset(self) -> None:
        """Forget the last forwarded VM so the next event is always forwarded."""
        self._last = None

    def __aiter__(self) -> FocusTracker:
        return self

    async def __anext__(self) -> str:
        while True:
            line = await anext(self._lines)
            vm = line.strip()
            if not VM_NAME_PATTERN.match(vm):
                logger.debug("Dropping invalid focus event", extra={"line": line[:120]})
                continue
            if vm == self._last:
                logger.debug(f"Ignoring multi-focus event for: {vm}", extra={"vm": vm})
                continue
            logger.debug(f"Detected focus change: {vm}", extra={"vm": vm, "previous": self._last})
            self._last = vm
            return vm
