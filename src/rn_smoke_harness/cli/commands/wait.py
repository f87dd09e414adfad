"""Log pattern wait CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer

from rn_smoke_harness.cli.utils import bool_result, handle_result, run
from rn_smoke_harness.constants import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_WAIT_TIMEOUT,
    EXPO_LAUNCH_TIMEOUT,
    REACT_NATIVE_LOG_FILE,
    REACT_NATIVE_RUN_EXPO_LOG_FILE,
)
from rn_smoke_harness.wait.patterns import (
    PatternSearchResult,
    wait_for_expo_launch,
    wait_for_expo_url,
    wait_for_packager,
    wait_for_pattern,
)

app = typer.Typer(help="Wait for markers in log files")


def _log_file(path: Path, default_name: str) -> Path:
    """Accept either a log file or the extension log directory."""
    return path / default_name if path.is_dir() else path


def _search_result(result: PatternSearchResult, message: str) -> dict[str, Any]:
    if result.failed:
        status = "failed"
    elif result.successful:
        status = "done"
    else:
        status = "timeout"
    return {"status": status, "message": message, **result.to_dict()}


@app.command("pattern")
def wait_pattern(
    file: Path = typer.Argument(..., help="Log file to watch"),
    success: str = typer.Option(..., "--success", help="Success marker"),
    failure: str | None = typer.Option(None, "--failure", help="Failure marker"),
    timeout: float = typer.Option(DEFAULT_WAIT_TIMEOUT, "--timeout", help="Seconds to wait"),
    interval: float = typer.Option(DEFAULT_POLL_INTERVAL, "--interval", help="Seconds per read"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Wait until a success or failure marker appears in a file."""
    if not success:
        raise typer.BadParameter("must not be empty", param_hint="--success")
    result = run(
        wait_for_pattern(file, success, failure or None, timeout=timeout, interval=interval),
        json_output=json_output,
    )
    handle_result(_search_result(result, f"pattern '{success}' in {file}"), json_output)


@app.command("packager")
def wait_packager(
    path: Path = typer.Argument(..., help="Extension log file or log directory"),
    timeout: float = typer.Option(DEFAULT_WAIT_TIMEOUT, "--timeout", help="Seconds to wait"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Wait until the packager reports it has started."""
    file = _log_file(path, REACT_NATIVE_LOG_FILE)
    ok = run(wait_for_packager(file, timeout=timeout), json_output=json_output)
    handle_result(bool_result(ok, f"packager start in {file}"), json_output=json_output)


@app.command("expo")
def wait_expo(
    path: Path = typer.Argument(..., help="Expo log file or log directory"),
    timeout: float = typer.Option(EXPO_LAUNCH_TIMEOUT, "--timeout", help="Seconds to wait"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Wait until Expo reports a ready tunnel or an XDL error."""
    file = _log_file(path, REACT_NATIVE_RUN_EXPO_LOG_FILE)
    result = run(wait_for_expo_launch(file, timeout=timeout), json_output=json_output)
    handle_result(_search_result(result, f"Expo launch in {file}"), json_output)


@app.command("expo-url")
def wait_expo_url(
    path: Path = typer.Argument(..., help="Expo log file or log directory"),
    timeout: float = typer.Option(EXPO_LAUNCH_TIMEOUT, "--timeout", help="Seconds to wait"),
    interval: float = typer.Option(DEFAULT_POLL_INTERVAL, "--interval", help="Seconds per read"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """Wait until the Expo URL is written to the log and print it."""
    file = _log_file(path, REACT_NATIVE_RUN_EXPO_LOG_FILE)
    url = run(wait_for_expo_url(file, timeout=timeout, interval=interval), json_output)
    data = bool_result(url is not None, f"Expo URL in {file}")
    if url:
        data["value"] = url
    handle_result(data, json_output=json_output)
