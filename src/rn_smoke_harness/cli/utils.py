"""Shared CLI helpers."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

import typer

from rn_smoke_harness.errors import HarnessError

T = TypeVar("T")


def format_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=True)


def render_error(error: HarnessError) -> None:
    typer.echo(f"{error.code}: {error.message}", err=True)
    if error.remediation:
        typer.echo(f"Hint: {error.remediation}", err=True)


@contextmanager
def harness_errors(json_output: bool = False) -> Iterator[None]:
    """Turn harness errors into a rendered message and exit code 1."""
    try:
        yield
    except HarnessError as exc:
        if json_output:
            typer.echo(format_json({"error": exc.to_dict()}))
        else:
            render_error(exc)
        raise typer.Exit(code=1) from None


def run(coro: Coroutine[Any, Any, T], json_output: bool = False) -> T:
    """Run a coroutine to completion under harness_errors."""
    with harness_errors(json_output):
        return asyncio.run(coro)


def handle_result(data: dict[str, Any], json_output: bool = False) -> None:
    """Print a command result and exit 1 when it reports a failed wait."""
    if json_output:
        typer.echo(format_json(data))
    elif data.get("status") == "done":
        message = "✓ Done"
        if "elapsed_ms" in data:
            message += f" ({data['elapsed_ms']} ms)"
        if "value" in data:
            message += f" -> {data['value']}"
        typer.echo(message)
    elif data.get("status") == "timeout":
        typer.echo(f"✗ Timed out: {data.get('message', 'condition not met')}")
    elif data.get("status") == "failed":
        typer.echo(f"✗ Failure marker found: {data.get('message', '')}")
    else:
        typer.echo(format_json(data))

    if data.get("status") in ("timeout", "failed"):
        raise typer.Exit(code=1)


def bool_result(success: bool, message: str, **extra: Any) -> dict[str, Any]:
    return {"status": "done" if success else "timeout", "message": message, **extra}


def parse_assignments(pairs: list[str]) -> dict[str, Any]:
    """Parse KEY=VALUE arguments; values are decoded as JSON when possible."""
    result: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{pair}'")
        try:
            result[key] = json.loads(raw)
        except json.JSONDecodeError:
            result[key] = raw
    return result
