"""Tests for startup environment checks and the duplicate-instance scan."""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from focus_pin.exceptions import DependencyError, DuplicateInstanceError
from focus_pin.platform_utils import _matches_program, find_other_instances
from focus_pin.system_probes import check_environment, check_single_instance, resolve_binary


def _which(mapping: dict[str, str]):  # type: ignore[no-untyped-def]
    return lambda name: mapping.get(name)


# ============================================================================
# Binaries
# ============================================================================


class TestResolveBinary:
    def test_found_in_path(self) -> None:
        with patch("focus_pin.system_probes.shutil.which", _which({"xl": "/usr/sbin/xl"})):
            assert resolve_binary("xl") == Path("/usr/sbin/xl")

    def test_missing(self) -> None:
        with patch("focus_pin.system_probes.shutil.which", _which({})):
            with pytest.raises(DependencyError, match="requires xl"):
                resolve_binary("xl")

    def test_absolute_path(self, tmp_path: Path) -> None:
        binary = tmp_path / "xprop"
        binary.write_text("#!/bin/sh\n")
        binary.chmod(0o755)
        assert resolve_binary(binary) == binary


class TestCheckEnvironment:
    def test_all_present(self) -> None:
        which = _which({"xl": "/usr/sbin/xl", "xprop": "/usr/bin/xprop"})
        with (
            patch("focus_pin.system_probes.shutil.which", which),
            patch("focus_pin.system_probes.find_other_instances", return_value=[]),
        ):
            binaries = check_environment("xl", "xprop", "focus-pin")

        assert binaries.xl == Path("/usr/sbin/xl")
        assert binaries.xprop == Path("/usr/bin/xprop")

    def test_missing_xprop(self) -> None:
        with (
            patch("focus_pin.system_probes.shutil.which", _which({"xl": "/usr/sbin/xl"})),
            patch("focus_pin.system_probes.find_other_instances", return_value=[]),
        ):
            with pytest.raises(DependencyError, match="xprop"):
                check_environment("xl", "xprop", "focus-pin")

    def test_duplicate_instance_checked_first(self) -> None:
        with (
            patch("focus_pin.system_probes.shutil.which", _which({})),
            patch("focus_pin.system_probes.find_other_instances", return_value=[4242]),
        ):
            with pytest.raises(DuplicateInstanceError) as exc_info:
                check_environment("xl", "xprop", "focus-pin")

        assert exc_info.value.pids == [4242]

    def test_instance_check_skipped(self) -> None:
        which = _which({"xl": "/usr/sbin/xl", "xprop": "/usr/bin/xprop"})
        with (
            patch("focus_pin.system_probes.shutil.which", which),
            patch("focus_pin.system_probes.find_other_instances") as scan,
        ):
            check_environment("xl", "xprop", None)

        scan.assert_not_called()


# ============================================================================
# Duplicate instances
# ============================================================================


def _proc(pid: int, cmdline: list[str] | None) -> MagicMock:
    proc = MagicMock()
    proc.info = {"pid": pid, "cmdline": cmdline}
    return proc


class TestFindOtherInstances:
    @pytest.mark.parametrize(
        ("cmdline", "expected"),
        [
            (["focus-pin"], True),
            (["/usr/bin/focus-pin", "-v"], True),
            (["/usr/bin/python3", "/usr/local/bin/focus-pin"], True),
            (["vim", "focus-pin.conf"], False),
            (["grep", "focus-pin-old"], False),
            (["bash", "-c", "focus-pin"], False),
            ([], False),
        ],
    )
    def test_matches_program(self, cmdline: list[str], expected: bool) -> None:
        assert _matches_program(cmdline, "focus-pin") is expected

    def test_excludes_self(self) -> None:
        procs = [
            _proc(os.getpid(), ["focus-pin"]),
            _proc(3_999_101, ["/usr/bin/focus-pin"]),
            _proc(3_999_102, ["xfce4-panel"]),
            _proc(3_999_103, None),
        ]
        with patch("focus_pin.platform_utils.psutil.process_iter", return_value=procs):
            assert find_other_instances("focus-pin") == [3_999_101]

    def test_check_single_instance_passes_when_alone(self) -> None:
        with patch("focus_pin.system_probes.find_other_instances", return_value=[]):
            check_single_instance("focus-pin")

    def test_check_single_instance_fails(self) -> None:
        with patch("focus_pin.system_probes.find_other_instances", return_value=[7, 9]):
            with pytest.raises(DuplicateInstanceError, match="already running"):
                check_single_instance("focus-pin")
