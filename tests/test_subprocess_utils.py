"""Tests for subprocess helpers (runs real /bin/sh commands)."""

import asyncio
import logging

import pytest

from focus_pin.subprocess_utils import log_task_exception, read_lines, run_command, sanitized_env


class TestSanitizedEnv:
    def test_forces_c_locale(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LANG", "de_DE.UTF-8")
        env = sanitized_env()
        assert env["LC_ALL"] == "C"
        assert env["LANG"] == "C"

    def test_keeps_display_drops_unrelated(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DISPLAY", ":0")
        monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "hunter2")
        env = sanitized_env()
        assert env["DISPLAY"] == ":0"
        assert "AWS_SECRET_ACCESS_KEY" not in env


class TestRunCommand:
    async def test_captures_output(self) -> None:
        result = await run_command(["/bin/sh", "-c", "echo out; echo err >&2"], timeout=5.0)
        assert result.ok
        assert result.stdout == "out\n"
        assert result.stderr == "err\n"

    async def test_nonzero_exit(self) -> None:
        result = await run_command(["/bin/sh", "-c", "exit 3"], timeout=5.0)
        assert not result.ok
        assert result.returncode == 3

    async def test_timeout_kills(self) -> None:
        with pytest.raises(TimeoutError):
            await run_command(["/bin/sh", "-c", "sleep 10"], timeout=0.1)

    async def test_missing_program(self) -> None:
        with pytest.raises(FileNotFoundError):
            await run_command(["/nonexistent/xl"], timeout=1.0)


class TestReadLines:
    async def test_strips_newlines_and_skips_undecodable(self) -> None:
        stream = asyncio.StreamReader()
        stream.feed_data(b"first\r\n\xff\xfe\nsecond\n")
        stream.feed_eof()

        assert [line async for line in read_lines(stream)] == ["first", "second"]


class TestLogTaskException:
    async def test_logs_failure(self, caplog: pytest.LogCaptureFixture) -> None:
        async def boom() -> None:
            raise RuntimeError("boom")

        task = asyncio.create_task(boom(), name="boost-work")
        await asyncio.wait({task})

        with caplog.at_level(logging.ERROR, logger="focus_pin"):
            log_task_exception(task)
        assert any(getattr(r, "task_name", None) == "boost-work" for r in caplog.records)

    async def test_ignores_cancelled(self, caplog: pytest.LogCaptureFixture) -> None:
        task = asyncio.create_task(asyncio.sleep(10))
        await asyncio.sleep(0)
        task.cancel()
        await asyncio.wait({task})

        with caplog.at_level(logging.ERROR, logger="focus_pin"):
            log_task_exception(task)
        assert caplog.records == []
