"""Cleanup for the long-running window watcher process.

Cleanup logs errors but never raises, so it is safe in finally blocks.
"""

import asyncio

from focus_pin._logging import get_logger
from focus_pin.constants import WATCHER_KILL_TIMEOUT_SECONDS, WATCHER_TERM_TIMEOUT_SECONDS
from focus_pin.platform_utils import ProcessWrapper

logger = get_logger(__name__)


async def cleanup_process(
    proc: ProcessWrapper | None,
    name: str,
    term_timeout: float = WATCHER_TERM_TIMEOUT_SECONDS,
    kill_timeout: float = WATCHER_KILL_TIMEOUT_SECONDS,
) -> bool:
    """Stop a subprocess (SIGTERM, then SIGKILL) and reap it.

    Args:
        proc: ProcessWrapper to stop (None safe - returns immediately)
        name: Process name for logging (e.g., "xprop")
        term_timeout: Seconds to wait after SIGTERM before SIGKILL
        kill_timeout: Seconds to wait after SIGKILL before giving up

    Returns:
        True if the process is gone, False if it could not be reaped
    """
    if proc is None:
        return True

    try:
        if proc.returncode is not None:
            logger.debug(f"{name} already terminated", extra={"returncode": proc.returncode})
            return True

        logger.debug(f"Sending SIGTERM to {name}", extra={"pid": proc.pid})
        await proc.terminate()
        try:
            await proc.wait_with_timeout(timeout=term_timeout)
            logger.debug(f"{name} stopped (SIGTERM)", extra={"returncode": proc.returncode})
            return True
        except TimeoutError:
            logger.warning(
                f"{name} didn't respond to SIGTERM, force killing",
                extra={"pid": proc.pid, "term_timeout": term_timeout},
            )

        await proc.kill()
        try:
            await proc.wait_with_timeout(timeout=kill_timeout)
            logger.warning(f"{name} force killed (SIGKILL)", extra={"returncode": proc.returncode})
            return True
        except TimeoutError:
            logger.error(
                f"{name} didn't respond to SIGKILL within timeout",
                extra={"pid": proc.pid, "kill_timeout": kill_timeout},
            )
            return False

    except ProcessLookupError:
        logger.debug(f"{name} already dead (ProcessLookupError)")
        return True

    except asyncio.CancelledError:
        raise

    except Exception as e:
        logger.error(
            f"{name} cleanup error",
            extra={"error": str(e), "error_type": type(e).__name__},
            exc_info=True,
        )
        return False
