"""Appium server lifecycle - start, readiness check and graceful shutdown."""

from __future__ import annotations

import signal
import sys
from pathlib import Path

import httpx
import structlog

from rn_smoke_harness.constants import (
    APPIUM_BASE_PATH,
    APPIUM_PORT,
    APPIUM_START_TIMEOUT,
    APPIUM_TERMINATE_INTERVAL,
    APPIUM_TERMINATE_TIMEOUT,
)
from rn_smoke_harness.utils.process import ManagedProcess
from rn_smoke_harness.wait.poller import wait_until

logger = structlog.get_logger()


class AppiumServer:
    """A local Appium server.

    `start` returns the process handle; the same handle is passed to
    `terminate`.
    """

    def __init__(
        self,
        port: int = APPIUM_PORT,
        base_path: str = APPIUM_BASE_PATH,
        host: str = "127.0.0.1",
    ) -> None:
        self.port = port
        self.base_path = base_path.rstrip("/")
        self.host = host

    @property
    def status_url(self) -> str:
        return f"http://{self.host}:{self.port}{self.base_path}/status"

    def command(self, log_path: str | Path) -> list[str]:
        executable = "appium.cmd" if sys.platform == "win32" else "appium"
        return [executable, "--log", str(log_path), "--port", str(self.port)]

    async def start(self, log_path: str | Path) -> ManagedProcess:
        """Spawn the server with its log written to `log_path`."""
        path = Path(log_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("appium_starting", log_path=str(path), port=self.port)
        return await ManagedProcess.spawn(self.command(path))

    async def is_ready(self) -> bool:
        """Query the status endpoint once."""
        try:
            async with httpx.AsyncClient(timeout=2.0) as client:
                response = await client.get(self.status_url)
        except httpx.TransportError:
            return False
        return response.status_code == 200

    async def wait_until_ready(self, timeout: float = APPIUM_START_TIMEOUT) -> bool:
        """Wait until the status endpoint answers."""
        result = await wait_until(self.is_ready, timeout)
        if result:
            logger.info("appium_ready", url=self.status_url)
        else:
            logger.error("appium_start_timeout", url=self.status_url, timeout=timeout)
        return result

    async def terminate(
        self,
        handle: ManagedProcess | None,
        timeout: float = APPIUM_TERMINATE_TIMEOUT,
        interval: float = APPIUM_TERMINATE_INTERVAL,
    ) -> bool:
        """Send SIGINT and wait until the server process has exited."""
        if handle is None or not handle.is_alive:
            logger.info("appium_not_running")
            return True

        logger.info("appium_terminating", pid=handle.pid)
        handle.send_signal(signal.SIGINT)

        async def _exited() -> bool:
            if handle.is_alive:
                logger.info("appium_still_running", pid=handle.pid)
                return False
            return True

        result = await wait_until(_exited, timeout, interval)
        if result:
            logger.info("appium_terminated", pid=handle.pid)
        else:
            logger.error("appium_terminate_timeout", pid=handle.pid, timeout=timeout)
        return result
