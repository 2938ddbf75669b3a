"""Command-line interface for focus-pin.

Usage:
    focus-pin                          # Boost focused VMs to all cores
    focus-pin --boost-mask 0-7         # Boost to P-cores only
    focus-pin --pin-privileged-domain  # Boost dom0 too
    kill -USR1 $(pgrep focus-pin)      # Restore all pins, keep running
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import NoReturn

import click
from pydantic import ValidationError

from focus_pin import __version__
from focus_pin._logging import configure_logging, get_logger
from focus_pin.constants import EXIT_ENVIRONMENT_ERROR, EXIT_RUNTIME_ERROR
from focus_pin.daemon import Daemon
from focus_pin.event_source import WindowFocusSource
from focus_pin.exceptions import FocusPinError, PermanentError
from focus_pin.pin_controller import PinController
from focus_pin.settings import Settings
from focus_pin.system_probes import check_environment

logger = get_logger(__name__)

PROGRAM_NAME = "focus-pin"


def format_error(title: str, message: str, suggestions: list[str] | None = None) -> str:
    """Format an error message following What → Why → Fix pattern."""
    lines = [
        click.style(f"Error: {title}", fg="red", bold=True),
        "",
        f"  {message}",
    ]

    if suggestions:
        lines.extend(["", "  Suggestions:"])
        lines.extend(f"    • {suggestion}" for suggestion in suggestions)

    return "\n".join(lines)


def build_settings(**overrides: object) -> Settings:
    """Environment settings with CLI overrides applied (None means "not given")."""
    return Settings(**{key: value for key, value in overrides.items() if value is not None})


async def run_daemon(settings: Settings, *, check_instance: bool) -> int:
    """Check the environment, then run the daemon until shutdown."""
    config = settings.boost_config()
    binaries = check_environment(
        settings.xl_bin,
        settings.xprop_bin,
        PROGRAM_NAME if check_instance else None,
    )
    controller = PinController(binaries.xl)
    daemon = Daemon(
        config,
        controller,
        source_factory=lambda: WindowFocusSource(binaries.xprop, privileged_domain=config.privileged_domain),
    )
    logger.info(
        "Watching window focus",
        extra={
            "boost_mask": config.boost_mask,
            "ignore_mask": config.ignore_mask,
            "pin_privileged_domain": config.pin_privileged_domain,
        },
    )
    return await daemon.run()


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-b", "--boost-mask", help="Cores to pin the focused VM to (default: all)")
@click.option("-i", "--ignore-mask", help="Leave VMs pinned to exactly this mask alone (default: all)")
@click.option(
    "--pin-privileged-domain/--no-pin-privileged-domain",
    default=None,
    help="Also boost dom0 when it has focus",
)
@click.option("--privileged-domain", help="Name of the privileged domain (default: Domain-0)")
@click.option("--xl", "xl_bin", type=click.Path(path_type=Path), help="xl binary")
@click.option("--xprop", "xprop_bin", type=click.Path(path_type=Path), help="xprop binary")
@click.option("--syslog/--no-syslog", default=None, help="Mirror log output to syslog")
@click.option("--no-instance-check", is_flag=True, help="Don't refuse to start next to another instance")
@click.option("-v", "--verbose", is_flag=True, help="Debug output")
@click.option("-q", "--quiet", is_flag=True, help="Errors only")
@click.version_option(__version__, "-V", "--version", prog_name=PROGRAM_NAME)
def main(
    boost_mask: str | None,
    ignore_mask: str | None,
    pin_privileged_domain: bool | None,
    privileged_domain: str | None,
    xl_bin: Path | None,
    xprop_bin: Path | None,
    syslog: bool | None,
    no_instance_check: bool,
    verbose: bool,
    quiet: bool,
) -> NoReturn:
    """Pin the VM owning the focused window to more CPU cores.

    When another VM gets focus, the previous one goes back to its original
    pinning. Send SIGUSR1 to restore all VMs without exiting; SIGTERM,
    SIGINT or SIGQUIT restore all VMs and exit.

    Settings can also come from FOCUS_PIN_* environment variables, e.g.
    FOCUS_PIN_BOOST_MASK=0-7.

    \b
    Exit codes:
      0  clean shutdown
      1  unexpected error
      2  environment or configuration error
    """
    try:
        settings = build_settings(
            boost_mask=boost_mask,
            ignore_mask=ignore_mask,
            pin_privileged_domain=pin_privileged_domain,
            privileged_domain=privileged_domain,
            xl_bin=xl_bin,
            xprop_bin=xprop_bin,
            syslog=syslog,
        )
        settings.boost_config()
    except ValidationError as e:
        click.echo(format_error("Invalid configuration", str(e)), err=True)
        sys.exit(EXIT_ENVIRONMENT_ERROR)

    configure_logging(level="DEBUG" if verbose else settings.log_level, quiet=quiet, syslog=settings.syslog)

    try:
        exit_code = asyncio.run(run_daemon(settings, check_instance=not no_instance_check))
    except PermanentError as e:
        logger.error(e.message, extra=e.context)
        click.echo(
            format_error(
                "Environment error",
                e.message,
                ["Run in dom0 with xl and xprop installed", "Stop other running instances first"],
            ),
            err=True,
        )
        sys.exit(EXIT_ENVIRONMENT_ERROR)
    except FocusPinError as e:
        logger.error(e.message, extra=e.context, exc_info=True)
        sys.exit(EXIT_RUNTIME_ERROR)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
