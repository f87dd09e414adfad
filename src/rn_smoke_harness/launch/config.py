"""Launch configuration document - read, patch and wait for .vscode/launch.json."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from rn_smoke_harness.constants import DEFAULT_POLL_INTERVAL, LAUNCH_CONFIG_UPDATE_TIMEOUT
from rn_smoke_harness.errors import (
    InvalidLaunchFileError,
    NotFoundError,
    launch_config_not_found_error,
    launch_file_invalid_error,
    launch_file_not_found_error,
)
from rn_smoke_harness.wait.poller import wait_until

logger = structlog.get_logger()

LAUNCH_FILE = Path(".vscode") / "launch.json"

# String literals are matched first so comment-like text inside them survives
_STRING = r'"(?:\\.|[^"\\])*"'
_COMMENT = re.compile(rf"({_STRING})|//[^\n]*|/\*.*?\*/", re.DOTALL)
_TRAILING_COMMA = re.compile(rf"({_STRING})|,(?=\s*[}}\]])")


def strip_json_comments(text: str) -> str:
    """Turn JSON-with-comments into plain JSON.

    Removes `//` and `/* */` comments outside string literals and commas
    directly before a closing brace or bracket.
    """
    text = _COMMENT.sub(lambda match: match.group(1) or "", text)
    return _TRAILING_COMMA.sub(lambda match: match.group(1) or "", text)


def objects_contains(obj: Any, sub: Any) -> bool:
    """Check that every key of `sub` appears in `obj` with an equal value.

    Nested mappings are compared the same way, so extra keys at any depth
    are ignored. Lists are compared position by position.
    """
    if isinstance(sub, Mapping):
        if not isinstance(obj, Mapping):
            return False
        return all(key in obj and objects_contains(obj[key], value) for key, value in sub.items())
    if isinstance(sub, list):
        if not isinstance(obj, list) or len(obj) < len(sub):
            return False
        return all(objects_contains(actual, expected) for actual, expected in zip(obj, sub))
    return obj == sub


class LaunchConfigurationManager:
    """Debug configurations of one workspace.

    The document is re-read from disk on every call since the editor under
    test rewrites it. Writes replace the whole file; a concurrent writer can
    lose updates.
    """

    def __init__(self, workspace_dir: str | Path) -> None:
        self.workspace_dir = Path(workspace_dir)
        self.path = (self.workspace_dir / LAUNCH_FILE).resolve()

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> dict[str, Any]:
        """Parse the launch document from disk.

        Raises:
            NotFoundError: If launch.json does not exist
            InvalidLaunchFileError: If it is not a JSON object
        """
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise launch_file_not_found_error(str(self.path)) from exc
        try:
            document = json.loads(strip_json_comments(content))
        except json.JSONDecodeError as exc:
            raise launch_file_invalid_error(str(self.path), str(exc)) from exc
        if not isinstance(document, dict):
            raise launch_file_invalid_error(str(self.path), "top level is not an object")
        return document

    def configurations(self) -> list[dict[str, Any]]:
        return list(self.read().get("configurations") or [])

    def configurations_count(self) -> int:
        return len(self.configurations())

    def get(self, name: str) -> dict[str, Any] | None:
        """Return the first configuration with the given name."""
        return _find(self.configurations(), name)

    def update(self, name: str, patch: Mapping[str, Any]) -> dict[str, Any]:
        """Shallow-merge `patch` into the named configuration and write back.

        Returns:
            The updated configuration

        Raises:
            NotFoundError: If the file or the configuration is missing
        """
        document = self.read()
        config = _find(document.get("configurations") or [], name)
        if config is None:
            raise launch_config_not_found_error(name, str(self.path))

        config.update(patch)
        self.path.write_text(json.dumps(document, indent=4), encoding="utf-8")
        logger.info("launch_config_updated", path=str(self.path), name=name, keys=list(patch))
        return config

    async def wait_until_updated(
        self,
        name: str | None,
        expected: Mapping[str, Any],
        timeout: float = LAUNCH_CONFIG_UPDATE_TIMEOUT,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> bool:
        """Wait until a configuration contains the expected fields.

        Args:
            name: Configuration to check, or None to accept any configuration
            expected: Fields that must be present with equal values
            timeout: Seconds to wait
            interval: Seconds between re-reads

        Returns:
            True once matched, False on timeout
        """

        def _converged() -> bool:
            try:
                configs = self.configurations()
            except (NotFoundError, InvalidLaunchFileError) as exc:
                # The editor may not have written the file yet, or be mid-write
                logger.debug("launch_config_unreadable", path=str(self.path), error=exc.code)
                return False
            if name is None:
                return any(objects_contains(config, expected) for config in configs)
            config = _find(configs, name)
            return config is not None and objects_contains(config, expected)

        logger.info("launch_config_wait", path=str(self.path), name=name, timeout=timeout)
        result = await wait_until(_converged, timeout, interval)
        if not result:
            logger.warning("launch_config_wait_timeout", path=str(self.path), name=name)
        return result


def _find(configs: list[dict[str, Any]], name: str) -> dict[str, Any] | None:
    for config in configs:
        if config.get("name") == name:
            return config
    return None
