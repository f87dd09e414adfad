"""CLI entry point using Typer."""

from __future__ import annotations

import typer

from rn_smoke_harness.cli.commands import config, devices, emulator, launch, simulator, wait
from rn_smoke_harness.logging_setup import configure_logging

app = typer.Typer(
    name="rn-smoke",
    help="Device, log and launch configuration helpers for React Native smoke tests",
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
) -> None:
    configure_logging(verbose)


@app.command()
def version() -> None:
    """Show version information."""
    from rn_smoke_harness import __version__

    typer.echo(f"rn-smoke-harness v{__version__}")


app.add_typer(devices.app, name="devices")
app.add_typer(emulator.app, name="emulator")
app.add_typer(simulator.app, name="simulator")
app.add_typer(wait.app, name="wait")
app.add_typer(launch.app, name="launch")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
