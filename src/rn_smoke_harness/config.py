"""Harness configuration - environment variables read from config.json."""

from __future__ import annotations

import json
import os
import sys
from collections.abc import MutableMapping
from pathlib import Path
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from rn_smoke_harness.errors import config_error

logger = structlog.get_logger()

SKIP_VALUE = "skip"

# Variables the CI task group may pass as "skip" to mean "not set"
SKIPPABLE_VARIABLES = (
    "EXPO_XDL_VERSION",
    "EXPO_SDK_MAJOR_VERSION",
    "RN_VERSION",
    "PURE_RN_VERSION",
    "PURE_EXPO_VERSION",
)

OPTIONAL_VARIABLES = (
    "EXPO_XDL_VERSION",
    "EXPO_SDK_MAJOR_VERSION",
    "RN_VERSION",
    "PURE_RN_VERSION",
    "PURE_EXPO_VERSION",
    "RN_MAC_OS_VERSION",
    "RNW_VERSION",
)


def required_variables(platform: str = sys.platform) -> tuple[str, ...]:
    """Variables that must be set on the given platform."""
    names = ("ANDROID_EMULATOR", "ANDROID_VERSION")
    if platform == "darwin":
        names += ("IOS_SIMULATOR", "IOS_VERSION")
    return (*names, "CODE_VERSION")


class HarnessConfig(BaseModel):
    """Device identities and tool versions for one smoke run."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    ANDROID_EMULATOR: str | None = None
    ANDROID_VERSION: str | None = None
    IOS_SIMULATOR: str | None = None
    IOS_VERSION: str | None = None
    CODE_VERSION: str | None = None
    EXPO_XDL_VERSION: str | None = None
    EXPO_SDK_MAJOR_VERSION: str | None = None
    RN_VERSION: str | None = None
    PURE_RN_VERSION: str | None = None
    PURE_EXPO_VERSION: str | None = None
    RN_MAC_OS_VERSION: str | None = None
    RNW_VERSION: str | None = None

    @model_validator(mode="before")
    @classmethod
    def drop_skipped(cls, data: Any) -> Any:
        """Treat "skip" on skippable variables as unset."""
        if isinstance(data, dict):
            data = {
                key: value
                for key, value in data.items()
                if not (key in SKIPPABLE_VARIABLES and value == SKIP_VALUE)
            }
        return data

    def missing(self, names: tuple[str, ...]) -> list[str]:
        return [name for name in names if not getattr(self, name)]

    def validate_for(self, platform: str = sys.platform) -> HarnessConfig:
        """Raise for missing required variables and warn about optional ones.

        Raises:
            ConfigError: If a required variable is not set
        """
        missing = self.missing(required_variables(platform))
        if missing:
            raise config_error(f"Missing {missing[0]} variable", missing=missing)
        for name in self.missing(OPTIONAL_VARIABLES):
            logger.warning("optional_variable_not_set", variable=name)
        return self

    def values(self) -> dict[str, str]:
        """Set variables only."""
        return {key: value for key, value in self.model_dump().items() if value}

    def export_to_environ(self, environ: MutableMapping[str, str] | None = None) -> None:
        """Pass set variables to the process environment."""
        target = os.environ if environ is None else environ
        target.update(self.values())
        logger.info("config_exported", **self.values())


class RunOptions(BaseModel):
    """Which suites to run and how to prepare for them."""

    android: bool = False
    ios: bool = False
    macos: bool = False
    windows: bool = False
    basic_only: bool = False
    skip_setup: bool = False
    dont_delete_vsix: bool = False
    use_cached_applications: bool = False
    skip_unstable: bool = False

    @model_validator(mode="after")
    def default_to_all(self) -> RunOptions:
        """Selecting no suite means running every suite."""
        if not (self.android or self.ios or self.macos or self.windows or self.basic_only):
            for name in ("android", "ios", "macos", "windows", "basic_only"):
                object.__setattr__(self, name, True)
        return self


def load_config(
    config_path: str | Path,
    dev_config_path: str | Path | None = None,
    platform: str = sys.platform,
) -> HarnessConfig:
    """Read the dev config if present, else the main one, and validate it.

    Raises:
        ConfigError: If no file exists, it is not a JSON object, or a
            required variable is missing
    """
    candidates = [Path(dev_config_path)] if dev_config_path else []
    candidates.append(Path(config_path))
    path = next((candidate for candidate in candidates if candidate.is_file()), None)
    if path is None:
        raise config_error(
            "Could not find config file", paths=[str(candidate) for candidate in candidates]
        )

    logger.info("config_loading", path=str(path))
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise config_error(f"Invalid JSON in {path}: {exc}", path=str(path)) from exc
    if not isinstance(raw, dict):
        raise config_error(f"{path} must contain a JSON object", path=str(path))

    try:
        config = HarnessConfig.model_validate(raw)
    except ValidationError as exc:
        raise config_error(f"Invalid config in {path}: {exc}", path=str(path)) from exc
    return config.validate_for(platform)
