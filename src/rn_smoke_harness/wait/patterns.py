"""Pattern watcher - wait for markers in log files and live log streams."""

from __future__ import annotations

import asyncio
import contextlib
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Any

import structlog

from rn_smoke_harness.constants import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_WAIT_TIMEOUT,
    EXPO_FAILURE_PATTERN,
    EXPO_LAUNCH_POLL_INTERVAL,
    EXPO_LAUNCH_TIMEOUT,
    EXPO_SUCCESS_PATTERN,
    EXPO_URL_PATTERN,
    PACKAGER_STARTED_PATTERN,
)
from rn_smoke_harness.utils.process import ManagedProcess
from rn_smoke_harness.wait.poller import wait_until

logger = structlog.get_logger()

Pattern = str | re.Pattern[str]


@dataclass(frozen=True)
class PatternSearchResult:
    """Which of the two markers were present when the wait ended."""

    successful: bool
    failed: bool

    def to_dict(self) -> dict[str, Any]:
        return {"successful": self.successful, "failed": self.failed}


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace").strip()
    except FileNotFoundError:
        return None


def _is_empty(pattern: Pattern) -> bool:
    return (pattern.pattern if isinstance(pattern, re.Pattern) else pattern) == ""


def _matches(content: str, pattern: Pattern) -> bool:
    if isinstance(pattern, re.Pattern):
        return pattern.search(content) is not None
    return pattern in content


def find_string_in_file(path: str | Path, needle: Pattern) -> bool:
    """Check a file for a substring or regex; a missing file has no match."""
    content = _read_text(Path(path))
    if content is None:
        return False
    return _matches(content, needle)


def find_pattern_in_file(path: str | Path, pattern: Pattern) -> str | None:
    """Return the first match of a pattern in a file, if any."""
    content = _read_text(Path(path))
    if content is None:
        return None
    regex = pattern if isinstance(pattern, re.Pattern) else re.compile(re.escape(pattern))
    match = regex.search(content)
    return match.group(0) if match else None


async def wait_for_pattern(
    file_path: str | Path,
    success_pattern: Pattern,
    failure_pattern: Pattern | None = None,
    timeout: float = DEFAULT_WAIT_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> PatternSearchResult:
    """Wait until a success or failure marker shows up in a file.

    The whole file is re-read on every tick. The wait ends on the first tick
    where either marker is present and reports both, so callers can tell
    "failed" from "both present". A file that does not exist yet counts as
    "no marker yet".

    Args:
        file_path: Log file to scan
        success_pattern: Substring or compiled regex marking success
        failure_pattern: Substring or compiled regex marking failure; an empty
            one is ignored since it would match any file
        timeout: Seconds to wait
        interval: Seconds between reads

    Returns:
        PatternSearchResult; both flags False on timeout

    Raises:
        ValueError: If the success pattern is empty
    """
    if _is_empty(success_pattern):
        raise ValueError("success_pattern must not be empty")
    if failure_pattern is not None and _is_empty(failure_pattern):
        failure_pattern = None

    path = Path(file_path)
    found: PatternSearchResult | None = None

    def _check() -> bool:
        nonlocal found
        content = _read_text(path)
        if content is None:
            return False
        successful = _matches(content, success_pattern)
        failed = failure_pattern is not None and _matches(content, failure_pattern)
        if successful or failed:
            found = PatternSearchResult(successful=successful, failed=failed)
            return True
        return False

    logger.info(
        "pattern_search_start",
        path=str(path),
        success_pattern=str(success_pattern),
        failure_pattern=str(failure_pattern) if failure_pattern is not None else None,
        timeout=timeout,
    )
    if await wait_until(_check, timeout, interval) and found is not None:
        logger.info("pattern_search_found", path=str(path), **found.to_dict())
        return found

    logger.warning("pattern_search_timeout", path=str(path), timeout=timeout)
    return PatternSearchResult(successful=False, failed=False)


async def wait_for_packager(file_path: str | Path, timeout: float = DEFAULT_WAIT_TIMEOUT) -> bool:
    """Wait until the extension log reports that Metro packager is running."""
    result = await wait_for_pattern(file_path, PACKAGER_STARTED_PATTERN, timeout=timeout)
    return result.successful


async def wait_for_expo_launch(
    file_path: str | Path, timeout: float = EXPO_LAUNCH_TIMEOUT
) -> PatternSearchResult:
    """Wait for Expo to report a ready tunnel or an XDL error."""
    return await wait_for_pattern(
        file_path,
        EXPO_SUCCESS_PATTERN,
        EXPO_FAILURE_PATTERN,
        timeout=timeout,
        interval=EXPO_LAUNCH_POLL_INTERVAL,
    )


def find_expo_url(file_path: str | Path) -> str | None:
    """Return the first exp:// URL written to the Expo log."""
    url = find_pattern_in_file(file_path, EXPO_URL_PATTERN)
    if url:
        logger.info("expo_url_found", url=url)
    return url


async def wait_for_expo_url(
    file_path: str | Path,
    timeout: float = EXPO_LAUNCH_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> str | None:
    """Wait until Expo writes its exp:// URL; None on timeout."""
    url: str | None = None

    def _check() -> bool:
        nonlocal url
        url = find_pattern_in_file(file_path, EXPO_URL_PATTERN)
        return url is not None

    if await wait_until(_check, timeout, interval):
        logger.info("expo_url_found", url=url)
        return url
    logger.warning("expo_url_timeout", path=str(file_path), timeout=timeout)
    return None


class LogStreamWatcher:
    """Push-based pattern watcher over a streaming log process.

    Each stdout chunk is scanned as it arrives. Chunks are not reassembled
    into lines, so a marker split across two chunks is not detected.
    """

    def __init__(
        self,
        args: Sequence[str],
        pattern: Pattern,
        skip_prefix: str | None = None,
    ) -> None:
        self._args = list(args)
        self._pattern = pattern if isinstance(pattern, re.Pattern) else re.compile(pattern)
        self._skip_prefix = skip_prefix
        self._process: ManagedProcess | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self.matched = False

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.is_alive

    def feed(self, chunk: str) -> bool:
        """Scan one chunk of streamed text; return True if it matched."""
        if self._skip_prefix and chunk.startswith(self._skip_prefix):
            return False
        if self._pattern.search(chunk):
            self.matched = True
            return True
        return False

    async def start(self) -> None:
        """Spawn the log process and begin reading its output."""
        if self.is_running:
            return
        self._process = await ManagedProcess.spawn(
            self._args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        self._reader_task = asyncio.create_task(self._read_loop())

    async def wait(
        self, timeout: float = DEFAULT_WAIT_TIMEOUT, interval: float = DEFAULT_POLL_INTERVAL
    ) -> bool:
        """Wait until a chunk has matched the pattern."""
        return await wait_until(lambda: self.matched, timeout, interval)

    async def stop(self) -> None:
        """Kill the log process and cancel the reader."""
        if self._reader_task and not self._reader_task.done():
            self._reader_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader_task
        self._reader_task = None
        if self._process is not None:
            await self._process.stop()
            self._process = None

    async def __aenter__(self) -> LogStreamWatcher:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.stop()

    async def _read_loop(self) -> None:
        assert self._process is not None
        stdout = self._process.process.stdout
        assert stdout is not None
        try:
            while True:
                raw = await stdout.read(4096)
                if not raw:
                    break  # EOF
                chunk = raw.decode(errors="replace")
                logger.debug("log_stream_chunk", text=chunk.rstrip())
                if self.feed(chunk):
                    logger.info("log_stream_matched", pattern=self._pattern.pattern)
        except asyncio.CancelledError:
            return
        except Exception:
            logger.exception("log_stream_read_error")
