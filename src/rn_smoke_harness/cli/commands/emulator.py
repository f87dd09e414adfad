"""Android emulator CLI commands."""

from __future__ import annotations

import typer

from rn_smoke_harness.cli.utils import bool_result, handle_result, run
from rn_smoke_harness.constants import (
    DEFAULT_ANDROID_PORT,
    EMULATOR_SETTLE_DELAY,
    EMULATOR_START_TIMEOUT,
    EMULATOR_TERMINATE_TIMEOUT,
    EXPO_PACKAGE_NAME,
    PACKAGE_INIT_DELAY,
    PACKAGE_INSTALL_TIMEOUT,
)
from rn_smoke_harness.device.android import AndroidEmulatorManager, terminate_all_emulators

app = typer.Typer(help="Android emulator lifecycle commands")


@app.command("start")
def emulator_start(
    name: str = typer.Argument(..., help="AVD name from 'emulator -list-avds'"),
    port: int = typer.Option(DEFAULT_ANDROID_PORT, "--port", help="Console port"),
    wipe: bool = typer.Option(True, "--wipe/--no-wipe", help="Restart from wiped data"),
    timeout: float = typer.Option(EMULATOR_START_TIMEOUT, "--timeout", help="Seconds to wait"),
    settle: float = typer.Option(
        EMULATOR_SETTLE_DELAY, "--settle", help="Seconds to wait after boot"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Boot an emulator and wait until adb reports it online."""
    manager = AndroidEmulatorManager(name, port=port)
    if wipe:
        ok = run(manager.start(timeout=timeout, settle_delay=settle), json_output=json_output)
    else:
        ok = run(manager.boot(timeout=timeout), json_output=json_output)
    handle_result(
        bool_result(ok, f"emulator {manager.emulator_id}", value=manager.emulator_id),
        json_output=json_output,
    )


@app.command("stop")
def emulator_stop(
    name: str = typer.Argument(..., help="AVD name"),
    port: int = typer.Option(DEFAULT_ANDROID_PORT, "--port", help="Console port"),
    timeout: float = typer.Option(EMULATOR_TERMINATE_TIMEOUT, "--timeout", help="Seconds to wait"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Kill an emulator and wait until it leaves the device list."""
    manager = AndroidEmulatorManager(name, port=port)
    ok = run(manager.terminate(timeout=timeout), json_output=json_output)
    handle_result(bool_result(ok, f"terminate {manager.emulator_id}"), json_output=json_output)


@app.command("terminate-all")
def emulator_terminate_all(
    timeout: float = typer.Option(EMULATOR_TERMINATE_TIMEOUT, "--timeout", help="Seconds to wait"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Kill every running emulator."""
    ok = run(terminate_all_emulators(timeout=timeout), json_output=json_output)
    handle_result(bool_result(ok, "terminate all emulators"), json_output=json_output)


@app.command("wait-app")
def emulator_wait_app(
    name: str = typer.Argument(..., help="AVD name"),
    package: str = typer.Option(EXPO_PACKAGE_NAME, "--package", help="Application package name"),
    port: int = typer.Option(DEFAULT_ANDROID_PORT, "--port", help="Console port"),
    timeout: float = typer.Option(PACKAGE_INSTALL_TIMEOUT, "--timeout", help="Seconds to wait"),
    init_delay: float = typer.Option(
        PACKAGE_INIT_DELAY, "--init-delay", help="Seconds to wait after install"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Wait until a package is installed on the emulator."""
    manager = AndroidEmulatorManager(name, port=port)
    ok = run(
        manager.wait_until_app_installed(package, timeout=timeout, init_delay=init_delay),
        json_output=json_output,
    )
    handle_result(bool_result(ok, f"install {package}"), json_output=json_output)
