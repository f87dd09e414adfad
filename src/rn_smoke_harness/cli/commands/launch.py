"""Launch configuration CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer

from rn_smoke_harness.cli.utils import (
    bool_result,
    format_json,
    handle_result,
    harness_errors,
    parse_assignments,
    run,
)
from rn_smoke_harness.constants import LAUNCH_CONFIG_UPDATE_TIMEOUT
from rn_smoke_harness.launch.config import LaunchConfigurationManager

app = typer.Typer(help="Read and patch .vscode/launch.json")


@app.command("show")
def launch_show(
    workspace: Path = typer.Argument(..., help="Workspace directory"),
    name: str | None = typer.Option(None, "--name", help="Only this configuration"),
) -> None:
    """Print the launch document or one configuration."""
    manager = LaunchConfigurationManager(workspace)
    with harness_errors():
        data = manager.read() if name is None else manager.get(name)
    if data is None:
        typer.echo(f"Configuration '{name}' not found")
        raise typer.Exit(code=1)
    typer.echo(format_json(data))


@app.command("update")
def launch_update(
    workspace: Path = typer.Argument(..., help="Workspace directory"),
    name: str = typer.Argument(..., help="Configuration name"),
    fields: list[str] = typer.Argument(..., help="KEY=VALUE pairs"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Merge fields into a configuration."""
    manager = LaunchConfigurationManager(workspace)
    with harness_errors(json_output):
        config = manager.update(name, parse_assignments(fields))
    handle_result({"status": "done", "configuration": config}, json_output=json_output)


@app.command("wait")
def launch_wait(
    workspace: Path = typer.Argument(..., help="Workspace directory"),
    name: str = typer.Argument(..., help="Configuration name, or '*' for any"),
    fields: list[str] = typer.Argument(..., help="Expected KEY=VALUE pairs"),
    timeout: float = typer.Option(
        LAUNCH_CONFIG_UPDATE_TIMEOUT, "--timeout", help="Seconds to wait"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Wait until a configuration contains the expected fields."""
    manager = LaunchConfigurationManager(workspace)
    target = None if name == "*" else name
    ok = run(
        manager.wait_until_updated(target, parse_assignments(fields), timeout=timeout),
        json_output=json_output,
    )
    handle_result(bool_result(ok, f"configuration '{name}'"), json_output=json_output)
