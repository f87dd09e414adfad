"""iOS simulator CLI commands."""

from __future__ import annotations

from typing import Any

import typer

from rn_smoke_harness.cli.utils import bool_result, format_json, handle_result, run
from rn_smoke_harness.constants import SIMULATOR_TERMINATE_TIMEOUT
from rn_smoke_harness.device.ios import IosSimulatorManager, shutdown_all_simulators

app = typer.Typer(help="iOS simulator lifecycle commands")


def _echo_simulator(data: dict[str, Any], json_output: bool) -> None:
    if json_output:
        typer.echo(format_json(data))
    else:
        typer.echo(f"✓ {data['name']} ({data['system']}): {data['state']}")


@app.command("boot")
def simulator_boot(
    name: str = typer.Argument(..., help="Simulator name"),
    ios_version: str | None = typer.Option(None, "--ios-version", help="e.g. 16.4"),
    clean: bool = typer.Option(False, "--clean", help="Shut down and erase before booting"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Boot a simulator; an already booted one is left running."""
    manager = IosSimulatorManager(name, ios_version)
    coro = manager.start() if clean else manager.boot()
    simulator = run(coro, json_output=json_output)
    _echo_simulator(simulator.to_dict(), json_output)


@app.command("shutdown")
def simulator_shutdown(
    name: str = typer.Argument(..., help="Simulator name"),
    ios_version: str | None = typer.Option(None, "--ios-version", help="e.g. 16.4"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Shut a simulator down."""
    manager = IosSimulatorManager(name, ios_version)
    simulator = run(manager.shutdown(), json_output=json_output)
    _echo_simulator(simulator.to_dict(), json_output)


@app.command("erase")
def simulator_erase(
    name: str = typer.Argument(..., help="Simulator name"),
    ios_version: str | None = typer.Option(None, "--ios-version", help="e.g. 16.4"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Erase a shut down simulator."""
    manager = IosSimulatorManager(name, ios_version)
    simulator = run(manager.erase(), json_output=json_output)
    _echo_simulator(simulator.to_dict(), json_output)


@app.command("shutdown-all")
def simulator_shutdown_all(
    timeout: float = typer.Option(
        SIMULATOR_TERMINATE_TIMEOUT, "--timeout", help="Seconds to wait"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Shut down every booted simulator."""
    ok = run(shutdown_all_simulators(timeout=timeout), json_output=json_output)
    handle_result(bool_result(ok, "shutdown all simulators"), json_output=json_output)
