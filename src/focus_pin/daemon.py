"""Daemon - process lifetime of focus-pin.

Turns process signals into control messages and keeps the supervisor
loop alive:

    SIGTERM / SIGINT / SIGQUIT  → SHUTDOWN (release everything, exit 0)
    SIGUSR1                     → RESET (release everything, keep running)
    SIGPIPE                     → ignored (log consumer went away)

Each supervisor run gets a fresh window watcher, tracker and job
registry. When a run fails with anything but a configuration error, its
boosts have already been released by the supervisor; the daemon waits
(randomized exponential backoff) and starts a new run.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import TYPE_CHECKING

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_not_exception_type,
    wait_random_exponential,
)

from focus_pin import constants
from focus_pin._logging import get_logger
from focus_pin.event_source import WindowFocusSource
from focus_pin.exceptions import PermanentError
from focus_pin.focus_tracker import FocusTracker
from focus_pin.models import ControlSignal
from focus_pin.supervisor import Supervisor

if TYPE_CHECKING:
    from collections.abc import AsyncIterable, Callable
    from contextlib import AbstractAsyncContextManager

    from focus_pin.config import BoostConfig
    from focus_pin.pin_controller import PinController

    SourceFactory = Callable[[], AbstractAsyncContextManager[AsyncIterable[str]]]

logger = get_logger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT, signal.SIGQUIT)
RESET_SIGNALS = (signal.SIGUSR1,)


class Daemon:
    """Runs supervisor loops until shutdown.

    Attributes:
        config: Boost policy shared by every run
        control: Control channel consumed by the current supervisor
        runs: Number of supervisor runs started so far
    """

    def __init__(
        self,
        config: BoostConfig,
        controller: PinController,
        source_factory: SourceFactory | None = None,
        *,
        backoff_min: float = constants.RESTART_BACKOFF_MIN_SECONDS,
        backoff_max: float = constants.RESTART_BACKOFF_MAX_SECONDS,
    ) -> None:
        self.config = config
        self._controller = controller
        self._source_factory = source_factory or (
            lambda: WindowFocusSource(privileged_domain=config.privileged_domain)
        )
        self._backoff_min = backoff_min
        self._backoff_max = backoff_max
        self.control: asyncio.Queue[ControlSignal] = asyncio.Queue()
        self._shutdown = asyncio.Event()
        self.runs = 0

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    def request_shutdown(self) -> None:
        """Ask the daemon to release all boosts and exit."""
        if not self._shutdown.is_set():
            logger.info("Cleaning up and exiting...")
        self._shutdown.set()
        self.control.put_nowait(ControlSignal.SHUTDOWN)

    def request_reset(self) -> None:
        """Ask the current run to release all boosts and continue."""
        self.control.put_nowait(ControlSignal.RESET)

    def install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self.request_shutdown)
        for sig in RESET_SIGNALS:
            loop.add_signal_handler(sig, self.request_reset)
        signal.signal(signal.SIGPIPE, signal.SIG_IGN)

    def remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (*SHUTDOWN_SIGNALS, *RESET_SIGNALS):
            loop.remove_signal_handler(sig)

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    async def _sleep(self, seconds: float) -> None:
        """Backoff sleep that ends early on shutdown."""
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(self._shutdown.wait(), timeout=seconds)

    async def run_once(self) -> None:
        """One supervisor run over a fresh event source."""
        if self._shutdown.is_set():
            return
        self.runs += 1
        supervisor = Supervisor(self.config, self._controller)
        logger.debug("Starting supervisor", extra={"run": self.runs})
        async with self._source_factory() as source:
            await supervisor.run(FocusTracker(source), self.control)

    async def run(self, *, handle_signals: bool = True) -> int:
        """Run until shutdown.

        Returns:
            Exit code (0)

        Raises:
            PermanentError: Environment/configuration problem, not retried
        """
        if handle_signals:
            self.install_signal_handlers()
        try:
            async for attempt in AsyncRetrying(
                # Restart on anything but configuration errors; CancelledError is not an Exception
                retry=retry_if_exception_type(Exception) & retry_if_not_exception_type(PermanentError),
                wait=wait_random_exponential(
                    multiplier=constants.RESTART_BACKOFF_MULTIPLIER,
                    min=self._backoff_min,
                    max=self._backoff_max,
                ),
                sleep=self._sleep,
                before_sleep=before_sleep_log(logger, logging.ERROR, exc_info=True),
                reraise=True,
            ):
                with attempt:
                    await self.run_once()
        finally:
            if handle_signals:
                self.remove_signal_handlers()
        return constants.EXIT_SUCCESS
