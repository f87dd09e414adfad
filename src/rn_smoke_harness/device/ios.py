"""iOS simulator manager - simctl lifecycle with idempotent failure states."""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass

import structlog

from rn_smoke_harness.constants import (
    APP_INIT_DELAY,
    APP_INSTALL_AND_BUILD_TIMEOUT,
    SIMULATOR_SETTLE_DELAY,
    SIMULATOR_START_TIMEOUT,
    SIMULATOR_TERMINATE_TIMEOUT,
)
from rn_smoke_harness.device.models import IosSimulator, SimulatorState
from rn_smoke_harness.device.observer import IosSimulatorObserver, ios_version_to_runtime
from rn_smoke_harness.errors import (
    CommandError,
    config_error,
    device_not_found_error,
    device_state_error,
)
from rn_smoke_harness.utils.process import CommandRunner
from rn_smoke_harness.wait.patterns import LogStreamWatcher
from rn_smoke_harness.wait.poller import wait_until

logger = structlog.get_logger()

_FAILED_STATE = re.compile(r"in current state: (.+)")
_LOG_STREAM_HEADER = "Filtering the log data"


@dataclass(frozen=True)
class SimctlResult:
    """Outcome of a simctl lifecycle sub-command."""

    successful: bool
    failed_state: SimulatorState | None = None


def parse_simctl_result(subcommand: str, command: str, stderr: str) -> SimctlResult:
    """Interpret simctl stderr for a lifecycle sub-command.

    No stderr means success. A last line of the form
    "Unable to <sub> ... in current state: <State>" is a refusal carrying the
    state the device is in. Anything else is an error.
    """
    lines = [line for line in stderr.splitlines() if line.strip()]
    if not lines:
        return SimctlResult(successful=True)

    last_line = lines[-1].strip()
    if not last_line.startswith(f"Unable to {subcommand}"):
        raise CommandError(
            code="ERR_COMMAND_FAILED",
            message=f"Error occurred while running {command}",
            context={"command": command, "stderr": stderr.strip()},
            remediation="Run the command from a shell to inspect the simctl error.",
        )

    match = _FAILED_STATE.search(last_line)
    if not match:
        raise CommandError(
            code="ERR_COMMAND_FAILED",
            message=f"Error parsing {command} output",
            context={"command": command, "stderr": stderr.strip()},
            remediation="Run the command from a shell to inspect the simctl error.",
        )

    raw_state = match.group(1).strip()
    state = SimulatorState.parse(raw_state)
    if state is SimulatorState.UNKNOWN:
        logger.warning("simulator_unknown_state", state=raw_state, command=command)
    return SimctlResult(successful=False, failed_state=state)


class IosSimulatorManager:
    """Drives one target simulator, resolved by name and optional iOS version."""

    def __init__(
        self,
        name: str | None,
        ios_version: str | None = None,
        runner: CommandRunner | None = None,
    ) -> None:
        if not name:
            raise config_error("iOS simulator name is not set", variable="IOS_SIMULATOR")
        self.name = name
        self.system = ios_version_to_runtime(ios_version) if ios_version else None
        self._runner = runner or CommandRunner()
        self._observer = IosSimulatorObserver(self._runner)
        self._simulator: IosSimulator | None = None

    @property
    def simulator(self) -> IosSimulator | None:
        """Last observed record of the target simulator."""
        return self._simulator

    async def refresh(self) -> IosSimulator:
        """Re-read the target simulator record from simctl.

        Raises:
            DeviceNotFoundError: If no simulator matches name and runtime
        """
        simulator = await self._observer.find(self.name, self.system)
        if simulator is None:
            raise device_not_found_error(self.name, self.system)
        self._simulator = simulator
        return simulator

    async def run_simctl(self, subcommand: str, target: str | None = None) -> SimctlResult:
        """Run `xcrun simctl SUB TARGET` and classify the outcome."""
        return await _run_simctl(self._runner, subcommand, target or self.name)

    async def boot(self) -> IosSimulator:
        """Boot the simulator; an already booted one is left as is."""
        logger.info("simulator_booting", name=self.name)
        result = await self.run_simctl("boot")
        if not result.successful and result.failed_state is not SimulatorState.BOOTED:
            raise device_state_error("boot", self.name, _state_name(result.failed_state))
        return await self.refresh()

    async def shutdown(self) -> IosSimulator:
        """Shut the simulator down; an already shut down one is left as is."""
        logger.info("simulator_shutting_down", name=self.name)
        await _shutdown(self._runner, self.name)
        return await self.refresh()

    async def erase(self) -> IosSimulator:
        """Wipe simulator data. The simulator must be shut down."""
        simulator = await self.refresh()
        if simulator.state is not SimulatorState.SHUTDOWN:
            raise device_state_error("erase", self.name, simulator.state.value)

        logger.info("simulator_erasing", name=self.name)
        result = await self.run_simctl("erase")
        if not result.successful:
            raise device_state_error("erase", self.name, _state_name(result.failed_state))
        return await self.refresh()

    async def start(self, settle_delay: float = SIMULATOR_SETTLE_DELAY) -> IosSimulator:
        """Shut down, erase and boot the simulator from a clean state."""
        await self.shutdown()
        await self.erase()
        simulator = await self.boot()
        if settle_delay > 0:
            await asyncio.sleep(settle_delay)
        return simulator

    async def wait_until_booted(self, timeout: float = SIMULATOR_START_TIMEOUT) -> bool:
        """Wait until the target simulator reports Booted."""
        result = await self._wait_for_state(SimulatorState.BOOTED, timeout)
        if result:
            logger.info("simulator_started", name=self.name)
        else:
            logger.error("simulator_start_timeout", name=self.name, timeout=timeout)
        return result

    async def wait_until_terminated(self, timeout: float = SIMULATOR_TERMINATE_TIMEOUT) -> bool:
        """Wait until the target simulator reports Shutdown."""
        result = await self._wait_for_state(SimulatorState.SHUTDOWN, timeout)
        if result:
            logger.info("simulator_terminated", name=self.name)
        else:
            logger.error("simulator_terminate_timeout", name=self.name, timeout=timeout)
        return result

    async def shutdown_all(self, timeout: float = SIMULATOR_TERMINATE_TIMEOUT) -> bool:
        """Shut down every booted simulator, not only the target."""
        return await shutdown_all_simulators(self._runner, timeout)

    async def wait_until_app_installed(
        self,
        bundle_id: str,
        timeout: float = APP_INSTALL_AND_BUILD_TIMEOUT,
        init_delay: float = APP_INIT_DELAY,
    ) -> bool:
        """Watch the simulator log stream until the app reports a launch.

        Two concurrent watchers on the same simulator would both see the
        same launch event.
        """
        marker = f"Launch successful for '{bundle_id}'"
        predicate = f'eventMessage contains "{marker}"'
        args = ["xcrun", "simctl", "spawn", self.name, "log", "stream", "--predicate", predicate]
        logger.info("app_install_wait", name=self.name, bundle_id=bundle_id, timeout=timeout)

        async with LogStreamWatcher(args, re.escape(marker), _LOG_STREAM_HEADER) as watcher:
            result = await watcher.wait(timeout)

        if result:
            logger.info("app_installed", bundle_id=bundle_id, init_delay=init_delay)
            if init_delay > 0:
                await asyncio.sleep(init_delay)
        else:
            logger.error("app_install_timeout", bundle_id=bundle_id, timeout=timeout)
        return result

    async def _wait_for_state(self, state: SimulatorState, timeout: float) -> bool:
        async def _reached() -> bool:
            simulator = await self.refresh()
            return simulator.state is state

        return await wait_until(_reached, timeout)


def _state_name(state: SimulatorState | None) -> str | None:
    return state.value if state is not None else None


async def shutdown_all_simulators(
    runner: CommandRunner | None = None, timeout: float = SIMULATOR_TERMINATE_TIMEOUT
) -> bool:
    """Shut down every booted simulator and wait until none is booted."""
    runner = runner or CommandRunner()
    observer = IosSimulatorObserver(runner)
    booted = await observer.booted_devices()
    if not booted:
        logger.info("no_booted_simulators")
        return True

    logger.info("simulators_shutting_down", ids=[sim.id for sim in booted])
    await asyncio.gather(*(_shutdown(runner, sim.id) for sim in booted))

    async def _none_booted() -> bool:
        return not await observer.booted_devices()

    result = await wait_until(_none_booted, timeout)
    if result:
        logger.info("all_simulators_terminated")
    else:
        logger.error("simulators_terminate_timeout", timeout=timeout)
    return result


async def _run_simctl(runner: CommandRunner, subcommand: str, target: str) -> SimctlResult:
    args = ["xcrun", "simctl", subcommand, target]
    command = " ".join(args)
    result = await runner.run(args, check=False)
    if result.stdout:
        logger.debug("simctl_output", command=command, stdout=result.stdout.strip())
    return parse_simctl_result(subcommand, command, result.stderr or "")


async def _shutdown(runner: CommandRunner, target: str) -> None:
    result = await _run_simctl(runner, "shutdown", target)
    if not result.successful and result.failed_state is not SimulatorState.SHUTDOWN:
        raise device_state_error("shutdown", target, _state_name(result.failed_state))
