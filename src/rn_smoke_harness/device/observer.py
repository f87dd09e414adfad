"""Device state observer - list emulators and simulators from tool output."""

from __future__ import annotations

import json
import re

import structlog

from rn_smoke_harness.device.models import AndroidDevice, IosSimulator, SimulatorState
from rn_smoke_harness.errors import HarnessError, device_query_error
from rn_smoke_harness.utils.process import CommandRunner

logger = structlog.get_logger()

ADB_DEVICES_COMMAND = ("adb", "devices")
SIMCTL_LIST_COMMAND = ("xcrun", "simctl", "list", "--json", "devices", "available")

_ADB_DEVICE_LINE = re.compile(r"^(\S+)\t(\S+)$", re.MULTILINE)


def parse_adb_devices(output: str) -> list[AndroidDevice]:
    """Parse `adb devices` output into device records.

    Header and blank lines do not match the `id<TAB>state` shape and are
    dropped. Only the `device` state counts as online.
    """
    return [
        AndroidDevice(id=match.group(1), is_online=match.group(2) == "device")
        for match in _ADB_DEVICE_LINE.finditer(output.replace("\r\n", "\n"))
    ]


def normalize_runtime(raw: str) -> str:
    """Reduce a simctl runtime key to its last segment.

    "com.apple.CoreSimulator.SimRuntime.iOS-16-4" -> "iOS-16-4"
    """
    return raw.split(".")[-1]


def ios_version_to_runtime(version: str) -> str:
    """Convert a dotted iOS version to the runtime form used by simctl.

    "16.4" -> "iOS-16-4", "17.0.1" -> "iOS-17-0"
    """
    parts = version.split(".")
    major = parts[0]
    minor = parts[1] if len(parts) > 1 else "0"
    return f"iOS-{major}-{minor}"


def parse_simctl_devices(output: str) -> list[IosSimulator]:
    """Flatten simctl JSON (runtime -> simulators) into simulator records."""
    command = " ".join(SIMCTL_LIST_COMMAND)
    try:
        data = json.loads(output)
        runtimes = data["devices"]
        simulators: list[IosSimulator] = []
        for raw_system, devices in runtimes.items():
            system = normalize_runtime(raw_system)
            for device in devices:
                simulators.append(
                    IosSimulator(
                        id=device["udid"],
                        name=device["name"],
                        system=system,
                        state=SimulatorState.parse(device.get("state")),
                    )
                )
    except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as exc:
        raise device_query_error(command, f"malformed output: {exc}") from exc
    return simulators


class AndroidDeviceObserver:
    """Queries connected Android devices through adb."""

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self._runner = runner or CommandRunner()

    async def list_devices(self) -> list[AndroidDevice]:
        """Return every device adb reports, online or not."""
        command = " ".join(ADB_DEVICES_COMMAND)
        try:
            output = await self._runner.output(ADB_DEVICES_COMMAND)
        except HarnessError as exc:
            raise device_query_error(command, exc.message) from exc
        return parse_adb_devices(output)

    async def online_devices(self) -> list[AndroidDevice]:
        """Return devices in the `device` state."""
        return [device for device in await self.list_devices() if device.is_online]

    async def is_online(self, device_id: str) -> bool:
        """Check whether a device id is currently online."""
        return any(device.id == device_id for device in await self.online_devices())


class IosSimulatorObserver:
    """Queries available iOS simulators through simctl."""

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self._runner = runner or CommandRunner()

    async def list_devices(self) -> list[IosSimulator]:
        """Return every available simulator in simctl output order."""
        command = " ".join(SIMCTL_LIST_COMMAND)
        try:
            output = await self._runner.output(SIMCTL_LIST_COMMAND)
        except HarnessError as exc:
            raise device_query_error(command, exc.message) from exc
        return parse_simctl_devices(output)

    async def booted_devices(self) -> list[IosSimulator]:
        """Return simulators in the Booted state."""
        return [sim for sim in await self.list_devices() if sim.is_booted]

    async def find(self, name: str, system: str | None = None) -> IosSimulator | None:
        """Find the first simulator matching name and, if given, runtime."""
        for simulator in await self.list_devices():
            if simulator.name == name and (not system or simulator.system == system):
                return simulator
        return None
