"""Tests for the X11 window focus source.

Parsing is tested on captured xprop output; the stream itself runs
against a shell script standing in for xprop.
"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from focus_pin.event_source import WindowFocusSource, parse_active_window, parse_vm_name
from focus_pin.exceptions import DependencyError, EventSourceError
from focus_pin.subprocess_utils import CommandResult

FAKE_XPROP = """#!/bin/sh
if [ "$1" = "-spy" ]; then
    echo "_NET_ACTIVE_WINDOW: window id # 0x1e00007"
    echo "_NET_ACTIVE_WINDOW: window id # 0x0"
    echo "_NET_ACTIVE_WINDOW:  not found."
    echo "_NET_ACTIVE_WINDOW: window id # 0x2a00003"
    echo "_NET_ACTIVE_WINDOW: window id # 0xdead"
    echo "_NET_ACTIVE_WINDOW: window id # 0x1e00007"
    exit 0
fi
case "$4" in
    0x1e00007) echo '_QUBES_VMNAME = "work"' ;;
    0x2a00003) echo '_QUBES_VMNAME:  not found.' ;;
    *) echo "X Error of failed request:  BadWindow (invalid Window parameter)" >&2; exit 1 ;;
esac
"""


@pytest.fixture
def fake_xprop(tmp_path: Path) -> Path:
    script = tmp_path / "xprop"
    script.write_text(FAKE_XPROP)
    script.chmod(0o755)
    return script


# ============================================================================
# Parsing
# ============================================================================


class TestParseActiveWindow:
    def test_window_id(self) -> None:
        assert parse_active_window("_NET_ACTIVE_WINDOW: window id # 0x1e00007") == "0x1e00007"

    def test_null_window(self) -> None:
        assert parse_active_window("_NET_ACTIVE_WINDOW: window id # 0x0") == "0x0"

    def test_trailing_comma(self) -> None:
        assert parse_active_window("_NET_ACTIVE_WINDOW: window id # 0x3c00004, 0x0") == "0x3c00004"

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "_NET_ACTIVE_WINDOW:  not found.",
            "_NET_ACTIVE_WINDOW: window id # garbage",
            "xprop: unable to open display ''",
        ],
    )
    def test_no_window(self, line: str) -> None:
        assert parse_active_window(line) is None


class TestParseVmName:
    def test_quoted_name(self) -> None:
        assert parse_vm_name('_QUBES_VMNAME = "work"\n') == "work"

    def test_property_missing_is_dom0(self) -> None:
        assert parse_vm_name("_QUBES_VMNAME:  not found.\n") == "Domain-0"

    def test_custom_privileged_domain(self) -> None:
        assert parse_vm_name("_QUBES_VMNAME:  not found.\n", "dom0") == "dom0"

    def test_bad_window_is_unknown(self) -> None:
        output = "X Error of failed request:  BadWindow (invalid Window parameter)\n"
        assert parse_vm_name(output) is None

    def test_empty_output(self) -> None:
        assert parse_vm_name("") is None


# ============================================================================
# resolve()
# ============================================================================


class TestResolve:
    async def test_null_window_is_privileged_without_lookup(self) -> None:
        source = WindowFocusSource(privileged_domain="dom0")
        with patch("focus_pin.event_source.run_command", new=AsyncMock()) as run:
            assert await source.resolve("0x0") == "dom0"
        run.assert_not_awaited()

    async def test_lookup_by_window_id(self) -> None:
        source = WindowFocusSource("/usr/bin/xprop", lookup_timeout=2.0)
        result = CommandResult(returncode=0, stdout='_QUBES_VMNAME = "personal"\n', stderr="")
        with patch("focus_pin.event_source.run_command", new=AsyncMock(return_value=result)) as run:
            assert await source.resolve("0x2a00003") == "personal"
        run.assert_awaited_once_with(["/usr/bin/xprop", "-notype", "_QUBES_VMNAME", "-id", "0x2a00003"], timeout=2.0)

    async def test_lookup_timeout_skips_window(self) -> None:
        source = WindowFocusSource()
        with patch("focus_pin.event_source.run_command", new=AsyncMock(side_effect=TimeoutError)):
            assert await source.resolve("0x2a00003") is None

    async def test_missing_binary_is_fatal(self) -> None:
        source = WindowFocusSource()
        with patch("focus_pin.event_source.run_command", new=AsyncMock(side_effect=FileNotFoundError("xprop"))):
            with pytest.raises(DependencyError):
                await source.resolve("0x2a00003")


# ============================================================================
# Event stream
# ============================================================================


class TestWindowFocusSource:
    async def test_stream_resolves_and_ends(self, fake_xprop: Path) -> None:
        async with WindowFocusSource(fake_xprop, lookup_timeout=5.0) as source:
            events = [vm async for vm in source]

        assert events == ["work", "Domain-0", "Domain-0", "work"]

    async def test_watcher_reaped_on_exit(self, fake_xprop: Path) -> None:
        source = WindowFocusSource(fake_xprop)
        async with source:
            proc = source._proc
            assert proc is not None

        assert source._proc is None
        assert proc.returncode is not None

    async def test_missing_xprop(self, tmp_path: Path) -> None:
        with pytest.raises(DependencyError):
            async with WindowFocusSource(tmp_path / "xprop"):
                pass

    async def test_iterating_without_entering_fails(self) -> None:
        with pytest.raises(EventSourceError):
            async for _ in WindowFocusSource():
                pass
