"""Harness configuration CLI commands."""

from __future__ import annotations

from pathlib import Path

import typer

from rn_smoke_harness.cli.utils import format_json, harness_errors
from rn_smoke_harness.config import load_config
from rn_smoke_harness.constants import ENV_CONFIG_FILE, ENV_DEV_CONFIG_FILE

app = typer.Typer(help="Harness configuration commands")


@app.command("check")
def config_check(
    config: Path = typer.Argument(Path(ENV_CONFIG_FILE), help="Path to config.json"),
    dev_config: Path | None = typer.Option(
        None, "--dev-config", help=f"Path to {ENV_DEV_CONFIG_FILE}, preferred when present"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Validate the configuration file and print the resolved variables."""
    if dev_config is None:
        dev_config = config.parent / ENV_DEV_CONFIG_FILE
    with harness_errors(json_output):
        loaded = load_config(config, dev_config)
    if json_output:
        typer.echo(format_json(loaded.values()))
        return
    for key, value in loaded.values().items():
        typer.echo(f"{key} = {value}")
