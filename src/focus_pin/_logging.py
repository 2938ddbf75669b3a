"""Centralized logging for focus-pin.

- Library root logger carries a NullHandler; handlers are added only by
  configure_logging() from the CLI entry point
- FOCUS_PIN_LOG_LEVEL env var controls the level
- Optional syslog mirroring (user facility, tagged with the program name),
  matching what desktop-session daemons on Qubes dom0 are expected to do

CLI output format:
    INFO [2026-02-25 10:02:54] focus_pin.supervisor - message

Non-blocking logging:
    Uses QueueHandler + QueueListener (stdlib) to decouple log emission
    from stderr I/O.  A bounded FIFO queue absorbs bursts; a daemon
    thread drains records to click.echo(err=True).  When the queue is
    full or stderr is gone (terminal detached), records are dropped
    instead of raising into the event loop.
"""

import contextlib
import logging
import logging.handlers
import os
import queue
from pathlib import Path

import click

LIBRARY_LOGGER_NAME: str = "focus_pin"

logging.getLogger(LIBRARY_LOGGER_NAME).addHandler(logging.NullHandler())

# Honor FOCUS_PIN_LOG_LEVEL env var (e.g. "DEBUG", "WARNING", "ERROR")
_env_level = os.environ.get("FOCUS_PIN_LOG_LEVEL", "").strip().upper()
_env_level_value = logging.getLevelNamesMapping().get(_env_level)
if _env_level_value:  # excludes NOTSET (0) and missing keys (None)
    logging.getLogger(LIBRARY_LOGGER_NAME).setLevel(_env_level_value)

_FMT = "%(levelname)s [%(asctime)s] %(name)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"
_SYSLOG_FMT = "%(name)s: %(message)s"
_SYSLOG_ADDRESS = "/dev/log"

_QUEUE_CAPACITY = 1024


class _ClickHandler(logging.Handler):
    """Target handler: writes to stderr via click.echo.

    Runs on the QueueListener's daemon thread, never on the event loop.
    """

    def __init__(self) -> None:
        super().__init__()
        self.formatter = logging.Formatter(fmt=_FMT, datefmt=_DATEFMT)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            click.echo(click.style(msg, dim=record.levelno < logging.WARNING), err=True)
        except (BlockingIOError, BrokenPipeError):
            pass  # stderr full or detached -- drop
        except Exception:  # noqa: BLE001
            self.handleError(record)


class _NonBlockingHandler(logging.handlers.QueueHandler):
    """Queue-backed handler that never blocks the caller.

    Records are enqueued via put_nowait() into a bounded FIFO.  A
    QueueListener daemon thread drains them to the target handlers.
    """

    def __init__(self, *targets: logging.Handler) -> None:
        q: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=_QUEUE_CAPACITY)
        super().__init__(q)
        self._listener = logging.handlers.QueueListener(q, *targets, respect_handler_level=False)
        self._listener.start()

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        """Skip serialization -- same-process queue, no pickle needed."""
        return record

    def enqueue(self, record: logging.LogRecord) -> None:
        with contextlib.suppress(queue.Full):
            self.queue.put_nowait(record)

    def close(self) -> None:
        self._listener.stop()
        super().close()


def _make_syslog_handler() -> logging.Handler | None:
    """Build a SysLogHandler on the local socket, or None if there is no syslog."""
    if not Path(_SYSLOG_ADDRESS).exists():
        return None
    try:
        handler = logging.handlers.SysLogHandler(
            address=_SYSLOG_ADDRESS,
            facility=logging.handlers.SysLogHandler.LOG_USER,
        )
    except OSError:
        return None
    handler.setFormatter(logging.Formatter(fmt=_SYSLOG_FMT))
    return handler


def get_logger(name: str) -> logging.Logger:
    """Get a logger for the given module name.

    All focus_pin modules should use this instead of logging.getLogger()
    directly for consistent logger hierarchy.
    """
    return logging.getLogger(name)


def configure_logging(
    *,
    level: int | str | None = None,
    quiet: bool = False,
    syslog: bool = False,
) -> None:
    """Configure logging for the CLI entry point.

    Adds a _NonBlockingHandler if none exists (idempotent), then sets the
    log level.

    Args:
        level: Log level (e.g. logging.DEBUG, "WARNING"). Overrides env var.
        quiet: If True, set level to ERROR. Takes precedence over level.
        syslog: Also forward records to the local syslog daemon.
    """
    lib_logger = logging.getLogger(LIBRARY_LOGGER_NAME)

    if not any(isinstance(h, _NonBlockingHandler) for h in lib_logger.handlers):
        targets: list[logging.Handler] = [_ClickHandler()]
        if syslog:
            syslog_handler = _make_syslog_handler()
            if syslog_handler is not None:
                targets.append(syslog_handler)
        lib_logger.addHandler(_NonBlockingHandler(*targets))

    if quiet:
        lib_logger.setLevel(logging.ERROR)
    elif level is not None:
        lib_logger.setLevel(level)
    elif lib_logger.level == logging.NOTSET:
        lib_logger.setLevel(logging.INFO)
