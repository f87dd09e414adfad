"""Error model - Actionable errors with remediation hints."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class HarnessError(Exception):
    """
    Base error with context and remediation guidance.

    Hard failures only: timeouts of wait primitives are reported as values,
    never raised.
    """

    code: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    remediation: str = ""

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
            "remediation": self.remediation,
        }


class CommandError(HarnessError):
    """An external tool could not be run or exited non-zero."""


class DeviceQueryError(HarnessError):
    """A device-listing command failed or produced unparseable output."""


class DeviceNotFoundError(HarnessError):
    """The configured target device does not exist."""


class DeviceStateError(HarnessError):
    """A lifecycle command was refused because of the device state."""


class RetryExhaustedError(HarnessError):
    """A retried action failed on every attempt."""


class NotFoundError(HarnessError):
    """A launch document or configuration is missing."""


class InvalidLaunchFileError(HarnessError):
    """A launch document exists but is not a JSON object."""


class ConfigError(HarnessError):
    """Harness configuration is missing or invalid."""


# Specific error constructors for common cases


def command_not_found_error(executable: str) -> CommandError:
    """Create error for a missing executable."""
    return CommandError(
        code="ERR_COMMAND_NOT_FOUND",
        message=f"{executable} command not found",
        context={"executable": executable},
        remediation=f"Install {executable} and ensure it is in PATH.",
    )


def command_failed_error(command: str, returncode: int | None, stderr: str) -> CommandError:
    """Create error for a command exiting non-zero."""
    return CommandError(
        code="ERR_COMMAND_FAILED",
        message=f"Command failed: {command}",
        context={"command": command, "returncode": returncode, "stderr": stderr},
        remediation="Check the command output above and the tool installation, then retry.",
    )


def device_query_error(command: str, reason: str) -> DeviceQueryError:
    """Create error for a failed device listing."""
    return DeviceQueryError(
        code="ERR_DEVICE_QUERY",
        message=f"Could not query devices with '{command}': {reason}",
        context={"command": command, "reason": reason},
        remediation="Verify the platform tools work from a shell and retry.",
    )


def device_not_found_error(name: str, system: str | None = None) -> DeviceNotFoundError:
    """Create error for a missing simulator or emulator."""
    suffix = f" and iOS version '{system}'" if system else ""
    return DeviceNotFoundError(
        code="ERR_DEVICE_NOT_FOUND",
        message=f"Could not find simulator with name '{name}'{suffix}",
        context={"name": name, "system": system},
        remediation="List available simulators with 'xcrun simctl list devices available'.",
    )


def device_state_error(command: str, device: str, state: str | None) -> DeviceStateError:
    """Create error for a lifecycle command refused in the current state."""
    detail = f" because it is in {state} state" if state else ""
    return DeviceStateError(
        code="ERR_DEVICE_STATE",
        message=f"Couldn't {command} simulator {device}{detail}",
        context={"command": command, "device": device, "state": state},
        remediation="Shut the device down or check its state with 'devices ios'.",
    )


def retry_exhausted_error(
    operation: str, attempts: int, last_error: BaseException
) -> RetryExhaustedError:
    """Create error for an action that failed on every attempt."""
    return RetryExhaustedError(
        code="ERR_RETRY_EXHAUSTED",
        message=f"{operation} failed after {attempts} attempts: {last_error}",
        context={"operation": operation, "attempts": attempts, "last_error": repr(last_error)},
        remediation="Inspect the UI state and logs captured for the last attempt.",
    )


def launch_file_not_found_error(path: str) -> NotFoundError:
    """Create error for a missing launch.json."""
    return NotFoundError(
        code="ERR_LAUNCH_FILE_NOT_FOUND",
        message=f"Launch configuration file not found: {path}",
        context={"path": path},
        remediation="Create debug configurations in the workspace before updating them.",
    )


def launch_file_invalid_error(path: str, reason: str) -> InvalidLaunchFileError:
    """Create error for a launch.json that cannot be parsed."""
    return InvalidLaunchFileError(
        code="ERR_LAUNCH_FILE_INVALID",
        message=f"Invalid launch configuration file {path}: {reason}",
        context={"path": path, "reason": reason},
        remediation="Fix the JSON syntax in .vscode/launch.json.",
    )


def launch_config_not_found_error(name: str, path: str) -> NotFoundError:
    """Create error for a configuration name absent from launch.json."""
    return NotFoundError(
        code="ERR_LAUNCH_CONFIG_NOT_FOUND",
        message=f"Launch configuration '{name}' not found in {path}",
        context={"name": name, "path": path},
        remediation="Check the configuration name in .vscode/launch.json.",
    )


def config_error(message: str, **context: Any) -> ConfigError:
    """Create error for harness misconfiguration."""
    return ConfigError(
        code="ERR_CONFIG",
        message=message,
        context=context,
        remediation="Fill in the variable in config.json or config.dev.json.",
    )
