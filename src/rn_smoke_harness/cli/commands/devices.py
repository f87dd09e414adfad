"""Device listing CLI commands."""

from __future__ import annotations

import typer

from rn_smoke_harness.cli.utils import format_json, run
from rn_smoke_harness.device.observer import AndroidDeviceObserver, IosSimulatorObserver

app = typer.Typer(help="List emulators and simulators")


@app.command("android")
def devices_android(
    online: bool = typer.Option(False, "--online", help="Only devices in the 'device' state"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """List Android devices reported by adb."""
    observer = AndroidDeviceObserver()
    coro = observer.online_devices() if online else observer.list_devices()
    devices = run(coro, json_output=json_output)
    if json_output:
        typer.echo(format_json([device.to_dict() for device in devices]))
        return
    if not devices:
        typer.echo("No devices")
    for device in devices:
        typer.echo(f"{device.id}\t{'online' if device.is_online else 'offline'}")


@app.command("ios")
def devices_ios(
    booted: bool = typer.Option(False, "--booted", help="Only booted simulators"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """List available iOS simulators."""
    observer = IosSimulatorObserver()
    coro = observer.booted_devices() if booted else observer.list_devices()
    simulators = run(coro, json_output=json_output)
    if json_output:
        typer.echo(format_json([sim.to_dict() for sim in simulators]))
        return
    if not simulators:
        typer.echo("No simulators")
    for sim in simulators:
        typer.echo(f"{sim.name}\t{sim.system}\t{sim.state.value}\t{sim.id}")
