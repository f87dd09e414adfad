"""Tests for Android emulator lifecycle."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, call, patch

import pytest

from rn_smoke_harness.errors import ConfigError

ONLINE = "List of devices attached\nemulator-5554\tdevice\n"
OFFLINE = "List of devices attached\n\n"


class TestEmulatorArgs:
    """Tests for emulator command construction."""

    def test_wipe_data_args(self, fake_runner: MagicMock) -> None:
        """Should include -wipe-data and the console port."""
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        manager = AndroidEmulatorManager("Pixel_API_33", port=5556, runner=fake_runner)

        assert manager.emulator_id == "emulator-5556"
        assert manager.emulator_args(wipe_data=True) == [
            "emulator",
            "-avd",
            "Pixel_API_33",
            "-gpu",
            "swiftshader_indirect",
            "-wipe-data",
            "-port",
            "5556",
            "-no-snapshot-save",
            "-no-boot-anim",
            "-no-audio",
        ]
        assert "-wipe-data" not in manager.emulator_args()

    def test_requires_name(self, fake_runner: MagicMock) -> None:
        """Should reject a missing AVD name."""
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        with pytest.raises(ConfigError):
            AndroidEmulatorManager("", runner=fake_runner)


class TestBoot:
    """Tests for boot."""

    @pytest.mark.asyncio
    async def test_boot_is_idempotent(self, fake_runner: MagicMock) -> None:
        """Should not spawn a second emulator when the target is online."""
        from rn_smoke_harness.device import android
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        fake_runner.output = AsyncMock(return_value=ONLINE)
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)

        with patch.object(android.ManagedProcess, "spawn", new=AsyncMock()) as spawn:
            assert await manager.boot() is True
            assert await manager.boot() is True

        spawn.assert_not_awaited()
        assert manager.process is None

    @pytest.mark.asyncio
    async def test_boot_spawns_and_waits(self, fake_runner: MagicMock) -> None:
        """Should spawn the emulator and return once adb reports it online."""
        from rn_smoke_harness.device import android
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        fake_runner.output = AsyncMock(side_effect=[OFFLINE, ONLINE])
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)
        handle = MagicMock()

        with patch.object(android.ManagedProcess, "spawn", new=AsyncMock(return_value=handle)):
            result = await manager.boot(wipe_data=True, timeout=2.0)

        assert result is True
        assert manager.process is handle

    @pytest.mark.asyncio
    async def test_boot_timeout_returns_false(self, fake_runner: MagicMock) -> None:
        """Should report a boot timeout as False."""
        from rn_smoke_harness.device import android
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        fake_runner.output = AsyncMock(return_value=OFFLINE)
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)

        with patch.object(android.ManagedProcess, "spawn", new=AsyncMock(return_value=MagicMock())):
            result = await manager.boot(timeout=0.1)

        assert result is False

    @pytest.mark.asyncio
    async def test_boot_again_stops_previous_process(self, fake_runner: MagicMock) -> None:
        """Should stop the emulator left by a timed out boot before spawning again."""
        from rn_smoke_harness.device import android
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        fake_runner.output = AsyncMock(return_value=OFFLINE)
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)
        first, second = MagicMock(), MagicMock()
        first.stop = AsyncMock()
        spawn = AsyncMock(side_effect=[first, second])

        with patch.object(android.ManagedProcess, "spawn", new=spawn):
            assert await manager.boot(timeout=0.05) is False
            assert await manager.boot(timeout=0.05) is False

        assert spawn.await_count == 2
        first.stop.assert_awaited_once()
        assert manager.process is second


class TestStart:
    """Tests for the wipe-and-restart flow."""

    @pytest.mark.asyncio
    async def test_start_order(self, fake_runner: MagicMock) -> None:
        """Should terminate, boot from wiped data, then settle."""
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)
        steps = MagicMock()
        steps.terminate = AsyncMock(return_value=True)
        steps.boot = AsyncMock(return_value=True)
        steps.sleep = AsyncMock()

        with (
            patch.object(manager, "terminate", steps.terminate),
            patch.object(manager, "boot", steps.boot),
            patch("rn_smoke_harness.device.android.asyncio.sleep", steps.sleep),
        ):
            assert await manager.start(timeout=5.0, settle_delay=60.0) is True

        assert steps.mock_calls == [
            call.terminate(),
            call.boot(wipe_data=True, timeout=5.0),
            call.sleep(60.0),
        ]

    @pytest.mark.asyncio
    async def test_failed_boot_skips_settle(self, fake_runner: MagicMock) -> None:
        """Should not wait for services when the emulator never came online."""
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)
        sleep = AsyncMock()

        with (
            patch.object(manager, "terminate", AsyncMock(return_value=True)),
            patch.object(manager, "boot", AsyncMock(return_value=False)),
            patch("rn_smoke_harness.device.android.asyncio.sleep", sleep),
        ):
            assert await manager.start(settle_delay=60.0) is False

        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_spawns_with_wipe_data(self, fake_runner: MagicMock) -> None:
        """Should spawn the emulator with -wipe-data after terminating it."""
        from rn_smoke_harness.device import android
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        fake_runner.output = AsyncMock(side_effect=[ONLINE, OFFLINE, OFFLINE, ONLINE])
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)
        spawn = AsyncMock(return_value=MagicMock())

        with patch.object(android.ManagedProcess, "spawn", new=spawn):
            assert await manager.start(timeout=2.0, settle_delay=0) is True

        fake_runner.run.assert_awaited_once_with(["adb", "-s", "emulator-5554", "emu", "kill"])
        assert "-wipe-data" in spawn.await_args.args[0]


class TestTerminate:
    """Tests for terminate and terminate_all."""

    @pytest.mark.asyncio
    async def test_terminate_kills_online_emulator(self, fake_runner: MagicMock) -> None:
        """Should send emu kill and wait until the device is gone."""
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        fake_runner.output = AsyncMock(side_effect=[ONLINE, OFFLINE])
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)

        assert await manager.terminate(timeout=2.0) is True
        fake_runner.run.assert_awaited_once_with(["adb", "-s", "emulator-5554", "emu", "kill"])

    @pytest.mark.asyncio
    async def test_terminate_when_not_running(self, fake_runner: MagicMock) -> None:
        """Should skip the kill when the emulator is not online."""
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        fake_runner.output = AsyncMock(return_value=OFFLINE)
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)

        assert await manager.terminate(timeout=1.0) is True
        fake_runner.run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_terminate_stops_owned_process(self, fake_runner: MagicMock) -> None:
        """Should stop the process handle spawned by boot."""
        from rn_smoke_harness.device import android
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        fake_runner.output = AsyncMock(side_effect=[OFFLINE, ONLINE, ONLINE, OFFLINE])
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)
        handle = MagicMock()
        handle.stop = AsyncMock()

        with patch.object(android.ManagedProcess, "spawn", new=AsyncMock(return_value=handle)):
            await manager.boot(timeout=2.0)
        await manager.terminate(timeout=2.0)

        handle.stop.assert_awaited_once()
        assert manager.process is None

    @pytest.mark.asyncio
    async def test_terminate_all(self, fake_runner: MagicMock) -> None:
        """Should kill every online device."""
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        two_online = "List of devices attached\nemulator-5554\tdevice\nemulator-5556\tdevice\n"
        fake_runner.output = AsyncMock(side_effect=[two_online, OFFLINE])
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)

        assert await manager.terminate_all(timeout=2.0) is True
        killed = [call.args[0][2] for call in fake_runner.run.await_args_list]
        assert killed == ["emulator-5554", "emulator-5556"]

    @pytest.mark.asyncio
    async def test_terminate_all_stuck_device(self, fake_runner: MagicMock) -> None:
        """Should return False when a device stays online."""
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        fake_runner.output = AsyncMock(return_value=ONLINE)
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)

        assert await manager.terminate_all(timeout=0.1) is False


class TestWaits:
    """Tests for boot and install waits."""

    @pytest.mark.asyncio
    async def test_wait_until_any_booted(self, fake_runner: MagicMock) -> None:
        """Should succeed once more devices are online than at the start."""
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        fake_runner.output = AsyncMock(side_effect=[OFFLINE, OFFLINE, ONLINE])
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner)

        assert await manager.wait_until_any_booted(timeout=5.0) is True
        assert fake_runner.output.await_count == 3

    @pytest.mark.asyncio
    async def test_wait_until_app_installed(self, fake_runner: MagicMock) -> None:
        """Should poll pm list packages until the package shows up."""
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        adb = MagicMock()
        device = adb.device.return_value
        device.shell.side_effect = [RuntimeError("device offline"), "", "package:com.example\n"]
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner, adb=adb)

        result = await manager.wait_until_app_installed("com.example", timeout=5.0, init_delay=0)

        assert result is True
        adb.device.assert_called_with("emulator-5554")
        device.shell.assert_called_with("pm list packages com.example")

    @pytest.mark.asyncio
    async def test_app_helpers_use_shell(self, fake_runner: MagicMock) -> None:
        """Should run pm and appops commands on the target device."""
        from rn_smoke_harness.device.android import AndroidEmulatorManager

        adb = MagicMock()
        device = adb.device.return_value
        device.shell.return_value = "Success"
        manager = AndroidEmulatorManager("Pixel_API_33", runner=fake_runner, adb=adb)

        assert await manager.uninstall_app("com.example") == "Success"
        await manager.clear_app("com.example")
        await manager.enable_draw_permission("com.example")

        commands = [call.args[0] for call in device.shell.call_args_list]
        assert commands == [
            "pm uninstall com.example",
            "pm clear com.example",
            "appops set com.example SYSTEM_ALERT_WINDOW allow",
        ]
