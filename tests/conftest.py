"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
import subprocess
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from rn_smoke_harness.utils.process import CommandRunner


def _completed(
    args: list[str], stdout: str = "", stderr: str = "", returncode: int = 0
) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def fake_runner() -> MagicMock:
    """CommandRunner with async run/output mocks."""
    runner = MagicMock(spec=CommandRunner)
    runner.run = AsyncMock(side_effect=lambda args, **_: _completed(list(args)))
    runner.output = AsyncMock(return_value="")
    return runner


@pytest.fixture
def simctl_json() -> Callable[..., str]:
    """Build `xcrun simctl list --json devices available` output."""

    def _build(*devices: tuple[str, str, str, str]) -> str:
        runtimes: dict[str, list[dict[str, Any]]] = {}
        for runtime, name, udid, state in devices:
            key = f"com.apple.CoreSimulator.SimRuntime.{runtime}"
            runtimes.setdefault(key, []).append(
                {"name": name, "udid": udid, "state": state, "isAvailable": True}
            )
        return json.dumps({"devices": runtimes})

    return _build


@pytest.fixture
def launch_document() -> dict[str, Any]:
    return {
        "version": "0.2.0",
        "configurations": [
            {
                "name": "Debug Android",
                "cwd": "${workspaceFolder}",
                "type": "reactnative",
                "request": "launch",
                "platform": "android",
                "target": "old",
            },
            {
                "name": "Debug iOS",
                "type": "reactnative",
                "request": "launch",
                "platform": "ios",
            },
        ],
    }


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo logging configuration done by CLI invocations."""
    yield
    structlog.reset_defaults()
