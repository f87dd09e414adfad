"""Android emulator manager - boot, terminate and app install detection."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from rn_smoke_harness.constants import (
    DEFAULT_ANDROID_PORT,
    EMULATOR_SETTLE_DELAY,
    EMULATOR_START_TIMEOUT,
    EMULATOR_TERMINATE_TIMEOUT,
    PACKAGE_INIT_DELAY,
    PACKAGE_INSTALL_TIMEOUT,
)
from rn_smoke_harness.device.observer import AndroidDeviceObserver
from rn_smoke_harness.errors import config_error
from rn_smoke_harness.utils.process import CommandRunner, ManagedProcess
from rn_smoke_harness.wait.poller import wait_until

if TYPE_CHECKING:
    from adbutils import AdbClient

logger = structlog.get_logger()


class AndroidEmulatorManager:
    """Drives one target emulator, identified by AVD name and console port.

    Device state is never cached: every check re-runs `adb devices`.
    """

    def __init__(
        self,
        name: str | None,
        port: int = DEFAULT_ANDROID_PORT,
        runner: CommandRunner | None = None,
        adb: AdbClient | None = None,
    ) -> None:
        if not name:
            raise config_error(
                "Android emulator name is not set", variable="ANDROID_EMULATOR"
            )
        self.name = name
        self.port = port
        self.emulator_id = f"emulator-{port}"
        self._runner = runner or CommandRunner()
        self._observer = AndroidDeviceObserver(self._runner)
        self._adb = adb
        self._process: ManagedProcess | None = None

    @property
    def observer(self) -> AndroidDeviceObserver:
        return self._observer

    @property
    def process(self) -> ManagedProcess | None:
        """Emulator process spawned by this manager, if any."""
        return self._process

    def emulator_args(self, wipe_data: bool = False) -> list[str]:
        """Build the emulator command line for the target AVD."""
        # https://developer.android.com/studio/run/emulator-commandline
        args = ["emulator", "-avd", self.name, "-gpu", "swiftshader_indirect"]
        if wipe_data:
            args.append("-wipe-data")
        args.extend(
            ["-port", str(self.port), "-no-snapshot-save", "-no-boot-anim", "-no-audio"]
        )
        return args

    async def boot(self, wipe_data: bool = False, timeout: float = EMULATOR_START_TIMEOUT) -> bool:
        """Boot the emulator unless it is already online.

        Returns:
            True once the emulator is online, False on timeout
        """
        if await self._observer.is_online(self.emulator_id):
            logger.info("emulator_already_booted", device=self.emulator_id)
            return True

        if self._process is not None:
            # A previous boot that timed out may still hold the console port
            logger.info("emulator_process_stopping", device=self.emulator_id, pid=self._process.pid)
            await self._process.stop()
            self._process = None

        args = self.emulator_args(wipe_data=wipe_data)
        logger.info("emulator_booting", device=self.emulator_id, command=" ".join(args))
        self._process = await ManagedProcess.spawn(args)
        return await self.wait_until_booted(timeout)

    async def start(
        self,
        timeout: float = EMULATOR_START_TIMEOUT,
        settle_delay: float = EMULATOR_SETTLE_DELAY,
    ) -> bool:
        """Restart the emulator from wiped data and let its services settle."""
        await self.terminate()
        result = await self.boot(wipe_data=True, timeout=timeout)
        if result and settle_delay > 0:
            # Services keep starting after the device shows up online
            await asyncio.sleep(settle_delay)
        return result

    async def terminate(self, timeout: float = EMULATOR_TERMINATE_TIMEOUT) -> bool:
        """Kill the target emulator and wait until it leaves the device list."""
        logger.info("emulator_checking", device=self.emulator_id)
        if await self._observer.is_online(self.emulator_id):
            await _kill_emulator(self._runner, self.emulator_id)
        else:
            logger.warning("emulator_not_running", device=self.emulator_id)

        result = await self.wait_until_terminated(timeout)
        if self._process is not None:
            await self._process.stop()
            self._process = None
        return result

    async def terminate_all(self, timeout: float = EMULATOR_TERMINATE_TIMEOUT) -> bool:
        """Kill every online device, not only the target."""
        return await terminate_all_emulators(self._runner, timeout)

    async def wait_until_booted(self, timeout: float = EMULATOR_START_TIMEOUT) -> bool:
        """Wait until the target emulator is reported online."""
        logger.info("emulator_wait_start", device=self.emulator_id, timeout=timeout)

        async def _online() -> bool:
            return await self._observer.is_online(self.emulator_id)

        result = await wait_until(_online, timeout)
        if result:
            logger.info("emulator_started", device=self.emulator_id)
        else:
            logger.error("emulator_start_timeout", device=self.emulator_id, timeout=timeout)
        return result

    async def wait_until_terminated(self, timeout: float = EMULATOR_TERMINATE_TIMEOUT) -> bool:
        """Wait until the target emulator is no longer online."""
        logger.info("emulator_wait_terminate", device=self.emulator_id, timeout=timeout)

        async def _gone() -> bool:
            return not await self._observer.is_online(self.emulator_id)

        result = await wait_until(_gone, timeout)
        if result:
            logger.info("emulator_terminated", device=self.emulator_id)
        else:
            logger.error("emulator_terminate_timeout", device=self.emulator_id, timeout=timeout)
        return result

    async def wait_until_any_booted(self, timeout: float = EMULATOR_START_TIMEOUT) -> bool:
        """Wait until more devices are online than when the wait began."""
        initial_count = len(await self._observer.online_devices())

        async def _more_online() -> bool:
            return len(await self._observer.online_devices()) > initial_count

        result = await wait_until(_more_online, timeout)
        if result:
            logger.info("some_emulator_started", initial_count=initial_count)
        else:
            logger.error("no_emulator_started", timeout=timeout)
        return result

    async def wait_until_app_installed(
        self,
        package: str,
        timeout: float = PACKAGE_INSTALL_TIMEOUT,
        init_delay: float = PACKAGE_INIT_DELAY,
    ) -> bool:
        """Wait until `pm list packages` reports the package on the target."""
        logger.info("app_install_wait", device=self.emulator_id, package=package, timeout=timeout)

        def _installed() -> bool:
            output = self._shell(f"pm list packages {package}")
            return bool(output.strip())

        # adb refuses shell access while the device is still coming up
        result = await wait_until(_installed, timeout, max_consecutive_errors=None)
        if result:
            logger.info("app_installed", package=package, init_delay=init_delay)
            if init_delay > 0:
                await asyncio.sleep(init_delay)
        else:
            logger.error("app_install_timeout", package=package, timeout=timeout)
        return result

    async def uninstall_app(self, package: str) -> str:
        """Remove a package from the target emulator."""
        logger.info("app_uninstalling", device=self.emulator_id, package=package)
        return await asyncio.to_thread(self._shell, f"pm uninstall {package}")

    async def clear_app(self, package: str) -> str:
        """Clear app data for a package."""
        logger.info("app_clearing", device=self.emulator_id, package=package)
        return await asyncio.to_thread(self._shell, f"pm clear {package}")

    async def enable_draw_permission(self, package: str) -> str:
        """Allow a package to draw over other apps."""
        command = f"appops set {package} SYSTEM_ALERT_WINDOW allow"
        logger.info("draw_permission_enabling", device=self.emulator_id, command=command)
        return await asyncio.to_thread(self._shell, command)

    def _shell(self, command: str) -> str:
        device = self._adb_client().device(self.emulator_id)
        result: Any = device.shell(command)
        output = getattr(result, "output", None)
        return output if isinstance(output, str) else str(result)

    def _adb_client(self) -> AdbClient:
        if self._adb is None:
            from adbutils import adb

            self._adb = adb
        return self._adb


async def terminate_all_emulators(
    runner: CommandRunner | None = None, timeout: float = EMULATOR_TERMINATE_TIMEOUT
) -> bool:
    """Kill every online device and wait until none is left.

    One device refusing to die keeps the aggregate wait going until it
    times out; that is reported as False.
    """
    runner = runner or CommandRunner()
    observer = AndroidDeviceObserver(runner)
    devices = await observer.online_devices()
    if not devices:
        logger.warning("no_running_emulators")
    for device in devices:
        logger.info("emulator_terminating", device=device.id)
        await _kill_emulator(runner, device.id)

    async def _none_online() -> bool:
        return not await observer.online_devices()

    result = await wait_until(_none_online, timeout)
    if result:
        logger.info("all_emulators_terminated")
    else:
        logger.error("emulators_terminate_timeout", timeout=timeout)
    return result


async def _kill_emulator(runner: CommandRunner, device_id: str) -> None:
    await runner.run(["adb", "-s", device_id, "emu", "kill"])
