"""Tests for command execution and process handles."""

from __future__ import annotations

import subprocess
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from rn_smoke_harness.errors import CommandError
from rn_smoke_harness.utils.process import CommandRunner, ManagedProcess


class TestCommandRunner:
    """Tests for CommandRunner."""

    @pytest.mark.asyncio
    async def test_output_returns_stdout(self) -> None:
        """Should resolve the executable and return stdout."""
        completed = subprocess.CompletedProcess(
            ["/usr/bin/adb", "devices"], 0, stdout="List of devices attached\n", stderr=""
        )
        with (
            patch("rn_smoke_harness.utils.process.shutil.which", return_value="/usr/bin/adb"),
            patch(
                "rn_smoke_harness.utils.process.subprocess.run", return_value=completed
            ) as run,
        ):
            output = await CommandRunner().output(["adb", "devices"])

        assert output == "List of devices attached\n"
        assert run.call_args.args[0] == ["/usr/bin/adb", "devices"]

    @pytest.mark.asyncio
    async def test_missing_executable(self) -> None:
        """Should raise ERR_COMMAND_NOT_FOUND when the tool is not on PATH."""
        with patch("rn_smoke_harness.utils.process.shutil.which", return_value=None):
            with pytest.raises(CommandError) as exc_info:
                await CommandRunner().run(["xcrun", "simctl", "list"])

        assert exc_info.value.code == "ERR_COMMAND_NOT_FOUND"
        assert exc_info.value.context["executable"] == "xcrun"

    @pytest.mark.asyncio
    async def test_non_zero_exit_carries_stderr(self) -> None:
        """Should raise ERR_COMMAND_FAILED with the captured stderr."""
        error = subprocess.CalledProcessError(
            1, ["adb", "devices"], output="", stderr="adb server version mismatch\n"
        )
        with (
            patch("rn_smoke_harness.utils.process.shutil.which", return_value="/usr/bin/adb"),
            patch("rn_smoke_harness.utils.process.subprocess.run", side_effect=error),
        ):
            with pytest.raises(CommandError) as exc_info:
                await CommandRunner().run(["adb", "devices"])

        assert exc_info.value.code == "ERR_COMMAND_FAILED"
        assert exc_info.value.context == {
            "command": "adb devices",
            "returncode": 1,
            "stderr": "adb server version mismatch",
        }

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        """Should report a timed out command as a failure."""
        error = subprocess.TimeoutExpired(["adb", "devices"], 5)
        with (
            patch("rn_smoke_harness.utils.process.shutil.which", return_value="/usr/bin/adb"),
            patch("rn_smoke_harness.utils.process.subprocess.run", side_effect=error),
        ):
            with pytest.raises(CommandError, match="adb devices"):
                await CommandRunner().run(["adb", "devices"], timeout=5)


class TestManagedProcess:
    """Tests for ManagedProcess."""

    @pytest.mark.asyncio
    async def test_spawn(self) -> None:
        """Should start the resolved executable without waiting."""
        process = MagicMock()
        process.pid = 1234
        process.returncode = None
        with (
            patch("rn_smoke_harness.utils.process.shutil.which", return_value="/opt/emulator"),
            patch(
                "rn_smoke_harness.utils.process.asyncio.create_subprocess_exec",
                new=AsyncMock(return_value=process),
            ) as create,
        ):
            handle = await ManagedProcess.spawn(["emulator", "-avd", "Pixel"])

        assert handle.pid == 1234
        assert handle.is_alive is True
        assert create.await_args.args == ("/opt/emulator", "-avd", "Pixel")

    @pytest.mark.asyncio
    async def test_spawn_missing_executable(self) -> None:
        """Should raise when the executable is not on PATH."""
        with patch("rn_smoke_harness.utils.process.shutil.which", return_value=None):
            with pytest.raises(CommandError):
                await ManagedProcess.spawn(["appium", "--log", "appium.log"])

    @pytest.mark.asyncio
    async def test_stop_terminates(self) -> None:
        """Should terminate a running process and return its exit code."""
        process = MagicMock()
        process.pid = 1234
        process.returncode = None

        async def wait() -> int:
            process.returncode = -15
            return -15

        process.wait = wait
        handle = ManagedProcess("emulator", process)

        assert await handle.stop() == -15
        process.terminate.assert_called_once()
        process.kill.assert_not_called()

    @pytest.mark.asyncio
    async def test_stop_already_exited(self) -> None:
        """Should not signal a process that already exited."""
        process = MagicMock()
        process.returncode = 0
        handle = ManagedProcess("appium", process)

        assert await handle.stop() == 0
        process.terminate.assert_not_called()

    def test_send_signal_only_when_alive(self) -> None:
        """Should skip signalling an exited process."""
        process = MagicMock()
        process.returncode = 1
        handle = ManagedProcess("appium", process)

        handle.send_signal()

        process.send_signal.assert_not_called()
