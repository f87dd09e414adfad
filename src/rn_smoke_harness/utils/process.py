"""External command execution and long-lived process handles."""

from __future__ import annotations

import asyncio
import contextlib
import shutil
import signal
import subprocess
from collections.abc import Sequence

import structlog

from rn_smoke_harness.errors import command_failed_error, command_not_found_error

logger = structlog.get_logger()


class CommandRunner:
    """Runs short-lived tool invocations (adb, xcrun, ps) off the event loop."""

    async def run(
        self,
        args: Sequence[str],
        check: bool = True,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[str]:
        """Run a command and capture its output.

        Args:
            args: Executable followed by its arguments
            check: Raise CommandError when the exit code is non-zero
            timeout: Seconds before the command is killed

        Returns:
            Completed process with text stdout/stderr

        Raises:
            CommandError: If the executable is missing or (with check) fails
        """
        executable, *rest = args

        def _run() -> subprocess.CompletedProcess[str]:
            path = shutil.which(executable)
            if not path:
                raise command_not_found_error(executable)
            return subprocess.run(
                [path, *rest],
                check=check,
                capture_output=True,
                text=True,
                timeout=timeout,
            )

        command = " ".join(args)
        try:
            result = await asyncio.to_thread(_run)
        except FileNotFoundError as exc:
            raise command_not_found_error(executable) from exc
        except subprocess.CalledProcessError as exc:
            stderr = (exc.stderr or exc.stdout or str(exc)).strip()
            raise command_failed_error(command, exc.returncode, stderr) from exc
        except subprocess.TimeoutExpired as exc:
            raise command_failed_error(command, None, f"timed out after {timeout}s") from exc
        logger.debug("command_finished", command=command, returncode=result.returncode)
        return result

    async def output(self, args: Sequence[str], timeout: float | None = None) -> str:
        """Run a command and return its stdout."""
        result = await self.run(args, check=True, timeout=timeout)
        return result.stdout


class ManagedProcess:
    """Handle for a long-running child process (emulator, Appium, log stream).

    Returned by the call that starts the process and passed to the call that
    stops it.
    """

    def __init__(self, name: str, process: asyncio.subprocess.Process) -> None:
        self.name = name
        self._process = process

    @classmethod
    async def spawn(
        cls,
        args: Sequence[str],
        stdout: int | None = asyncio.subprocess.DEVNULL,
        stderr: int | None = asyncio.subprocess.DEVNULL,
    ) -> ManagedProcess:
        """Spawn a child process without waiting for it."""
        executable, *rest = args
        path = shutil.which(executable)
        if not path:
            raise command_not_found_error(executable)
        process = await asyncio.create_subprocess_exec(
            path,
            *rest,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=stdout,
            stderr=stderr,
        )
        logger.info("process_spawned", name=executable, pid=process.pid, args=list(rest))
        return cls(executable, process)

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def process(self) -> asyncio.subprocess.Process:
        return self._process

    @property
    def is_alive(self) -> bool:
        return self._process.returncode is None

    def send_signal(self, sig: int = signal.SIGINT) -> None:
        """Deliver a signal if the process is still running."""
        if self.is_alive:
            with contextlib.suppress(ProcessLookupError):
                self._process.send_signal(sig)

    async def stop(self, timeout: float = 5.0) -> int | None:
        """Terminate the process, killing it if it does not exit in time."""
        if not self.is_alive:
            return self._process.returncode
        with contextlib.suppress(ProcessLookupError):
            self._process.terminate()
        try:
            await asyncio.wait_for(self._process.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning("process_kill", name=self.name, pid=self.pid)
            with contextlib.suppress(ProcessLookupError):
                self._process.kill()
            await self._process.wait()
        logger.info("process_stopped", name=self.name, pid=self.pid)
        return self._process.returncode
