"""Retry wrapper - repeat flaky UI actions with a recovery step in between."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar

import structlog

from rn_smoke_harness.constants import DEFAULT_POLL_INTERVAL, DEFAULT_WAIT_TIMEOUT
from rn_smoke_harness.errors import retry_exhausted_error
from rn_smoke_harness.wait.poller import wait_until

logger = structlog.get_logger()

T = TypeVar("T")

Action = Callable[[], Awaitable[T]]
Recovery = Callable[[], Awaitable[object]]

DISCONNECT_BUTTON = '.debug-toolbar .action-label[title*="Disconnect"]'
STOP_BUTTON = '.debug-toolbar .action-label[title*="Stop"]'
TOOLBAR_HIDDEN = '.debug-toolbar[aria-hidden="true"]'
NOT_DEBUG_STATUS_BAR = ".statusbar:not(debugging)"
RELOAD_APP_COMMAND = "reactNative.reloadApp"


@dataclass(frozen=True)
class StackFrame:
    """Top frame shown in the call stack view."""

    name: str
    line_number: int


@dataclass(frozen=True)
class RetryPolicy:
    """How often to retry and how long one attempt may poll internally.

    Attributes:
        retry_count: Total attempts, first one included
        poll_retry_count: Inner poll ticks allowed per attempt
        poll_retry_interval: Seconds between inner poll ticks
    """

    retry_count: int = 3
    poll_retry_count: int = 2000
    poll_retry_interval: float = 0.1

    @property
    def inner_timeout(self) -> float:
        """Seconds a single attempt may run before it counts as failed."""
        return self.poll_retry_count * self.poll_retry_interval


async def retry_with_recovery(
    action: Action[T],
    recovery: Recovery | None = None,
    policy: RetryPolicy | None = None,
    *,
    operation: str = "action",
) -> T:
    """Run an action until it succeeds, recovering after each failure.

    Every attempt is bounded by the policy's inner timeout. After each failed
    attempt, the last one included, recovery runs to completion before the
    next attempt starts or the failure is reported.

    Args:
        action: Coroutine function performing the attempt
        recovery: Coroutine function restoring a clean UI state
        policy: Attempt count and inner poll window
        operation: Name used in logs and the final error

    Returns:
        The action's result from the first successful attempt

    Raises:
        RetryExhaustedError: After `retry_count` failed attempts
        ValueError: If `retry_count` is below 1
    """
    policy = policy or RetryPolicy()
    if policy.retry_count < 1:
        raise ValueError("retry_count must be at least 1")

    last_error: BaseException | None = None
    for attempt in range(1, policy.retry_count + 1):
        start = time.monotonic()
        try:
            return await asyncio.wait_for(action(), timeout=policy.inner_timeout)
        except Exception as exc:
            last_error = exc
            logger.warning(
                "retry_attempt_failed",
                operation=operation,
                attempt=attempt,
                retry_count=policy.retry_count,
                elapsed_ms=round((time.monotonic() - start) * 1000, 2),
                error=repr(exc),
            )
        if recovery is not None:
            await recovery()

    assert last_error is not None
    logger.error("retry_exhausted", operation=operation, attempts=policy.retry_count)
    raise retry_exhausted_error(operation, policy.retry_count, last_error) from last_error


class UiElement(Protocol):
    """Minimal surface of an element returned by an automation client."""

    async def is_existing(self) -> bool: ...

    async def click(self) -> None: ...

    async def wait_for_exist(self, timeout: float) -> bool: ...


class AutomationClient(Protocol):
    """Minimal surface of a UI automation (Appium) session."""

    async def find(self, selector: str) -> UiElement: ...


class Workbench(Protocol):
    """Editor driver used by the smoke scenarios."""

    async def dispatch_keybinding(self, keybinding: str) -> None: ...

    async def open_file(self, file_name: str) -> None: ...

    async def run_command(self, command_id: str) -> None: ...

    async def run_debug_scenario(self, scenario: str, index: int = 0) -> None: ...

    async def wait_for_debug_toolbar(self) -> None: ...

    async def click_element(self, selector: str) -> None: ...

    async def wait_for_debug_stopped(self, *selectors: str) -> None: ...

    async def wait_for_output(self, accept: Callable[[list[str]], bool]) -> list[str]: ...

    async def step_over(self) -> None: ...

    async def open_debug_viewlet(self) -> None: ...

    async def wait_for_stack_frame(
        self, accept: Callable[[StackFrame], bool], message: str
    ) -> StackFrame: ...

    async def continue_debugging(self) -> None: ...


class AutomationHelper:
    """Editor interactions wrapped in retry-with-recovery."""

    def __init__(self, workbench: Workbench) -> None:
        self._workbench = workbench

    async def _escape(self) -> None:
        await self._workbench.dispatch_keybinding("escape")

    async def open_file_with_retry(
        self,
        file_name: str,
        retry_count: int = 3,
        poll_retry_count: int = 3,
        poll_retry_interval: float = 1.0,
    ) -> None:
        policy = RetryPolicy(retry_count, poll_retry_count, poll_retry_interval)
        await retry_with_recovery(
            lambda: self._workbench.open_file(file_name),
            self._escape,
            policy,
            operation=f"open file {file_name}",
        )

    async def run_command_with_retry(
        self,
        command_id: str,
        retry_count: int = 3,
        poll_retry_count: int = 3,
        poll_retry_interval: float = 1.0,
    ) -> None:
        policy = RetryPolicy(retry_count, poll_retry_count, poll_retry_interval)
        await retry_with_recovery(
            lambda: self._workbench.run_command(command_id),
            self._escape,
            policy,
            operation=f"run command {command_id}",
        )

    async def run_debug_scenario_with_retry(
        self,
        scenario: str,
        index: int = 0,
        retry_count: int = 3,
        poll_retry_count: int = 30,
        poll_retry_interval: float = 1.0,
    ) -> None:
        """Start a debug scenario and wait for the debug toolbar to appear."""

        async def _start() -> None:
            await self._workbench.run_debug_scenario(scenario, index)
            await self._workbench.wait_for_debug_toolbar()

        policy = RetryPolicy(retry_count, poll_retry_count, poll_retry_interval)
        await retry_with_recovery(
            _start, self._escape, policy, operation=f"debug scenario {scenario}"
        )

    async def stop_debugging_with_retry(
        self,
        retry_count: int = 3,
        poll_retry_count: int = 10,
        poll_retry_interval: float = 1.0,
    ) -> None:
        """Press Stop and wait until the debug toolbar is hidden."""

        async def _stop() -> None:
            await self._workbench.click_element(STOP_BUTTON)
            await self._workbench.wait_for_debug_stopped(TOOLBAR_HIDDEN, NOT_DEBUG_STATUS_BAR)

        policy = RetryPolicy(retry_count, poll_retry_count, poll_retry_interval)
        await retry_with_recovery(_stop, None, policy, operation="stop debugging")

    async def disconnect_from_debugger_with_retry(
        self,
        retry_count: int = 3,
        poll_retry_count: int = 10,
        poll_retry_interval: float = 1.0,
    ) -> None:
        """Press Disconnect or Stop, whichever the toolbar shows first.

        Attach sessions offer Disconnect and launch sessions offer Stop. A
        failed click is ignored; the hidden toolbar decides the attempt.
        """

        async def _disconnect() -> None:
            clicks = [
                asyncio.ensure_future(self._workbench.click_element(selector))
                for selector in (DISCONNECT_BUTTON, STOP_BUTTON)
            ]
            try:
                await asyncio.wait(clicks, return_when=asyncio.FIRST_COMPLETED)
            finally:
                for task in clicks:
                    task.cancel()
                outcomes = await asyncio.gather(*clicks, return_exceptions=True)
            for outcome in outcomes:
                if isinstance(outcome, Exception):
                    logger.debug("debugger_disconnect_click_failed", error=repr(outcome))
            await self._workbench.wait_for_debug_stopped(TOOLBAR_HIDDEN, NOT_DEBUG_STATUS_BAR)

        policy = RetryPolicy(retry_count, poll_retry_count, poll_retry_interval)
        await retry_with_recovery(_disconnect, None, policy, operation="disconnect from debugger")

    async def wait_for_output_with_retry(
        self,
        text: str,
        retry_count: int = 2,
        poll_retry_count: int = 100,
        poll_retry_interval: float = 0.1,
    ) -> bool:
        """Wait for a debug console line containing `text`, stepping over between tries."""

        async def _wait() -> bool:
            await self._workbench.wait_for_output(lambda lines: any(text in line for line in lines))
            return True

        policy = RetryPolicy(retry_count, poll_retry_count, poll_retry_interval)
        return await retry_with_recovery(
            _wait, self._workbench.step_over, policy, operation=f"wait for output {text!r}"
        )

    async def wait_for_stack_frame_with_retry(
        self,
        accept: Callable[[StackFrame], bool],
        message: str,
        retry_count: int = 3,
        poll_retry_count: int = 30,
        poll_retry_interval: float = 1.0,
        before_wait: Recovery | None = None,
    ) -> None:
        """Wait for a stack frame to match, reloading the app between tries.

        Args:
            accept: Predicate on the top stack frame
            message: Description used when the frame never matches
            before_wait: Runs at the start of every attempt
        """

        async def _wait() -> None:
            if before_wait is not None:
                await before_wait()
            # The call stack is only rendered while the debug viewlet is open
            await self._workbench.open_debug_viewlet()
            seen: list[StackFrame] = []

            def _record(frame: StackFrame) -> bool:
                seen.append(frame)
                return accept(frame)

            try:
                await self._workbench.wait_for_stack_frame(_record, message)
            except Exception:
                # The first pause can land in a bundle file outside the project
                if seen and not accept(seen[-1]):
                    logger.info("stack_frame_continue", frame=seen[-1].name)
                    await self._workbench.continue_debugging()
                await self._workbench.wait_for_stack_frame(accept, message)

        async def _reload() -> None:
            await self.run_command_with_retry(RELOAD_APP_COMMAND)

        policy = RetryPolicy(retry_count, poll_retry_count, poll_retry_interval)
        await retry_with_recovery(
            _wait, _reload, policy, operation=f"wait for stack frame {message}"
        )


async def wait_and_click(
    client: AutomationClient,
    selector: str,
    timeout: float = DEFAULT_WAIT_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
) -> bool:
    """Wait until an element exists and click it.

    Returns:
        True once clicked, False if the element never appeared
    """

    async def _click() -> bool:
        element = await client.find(selector)
        if not await element.is_existing():
            return False
        await element.click()
        return True

    result = await wait_until(_click, timeout, interval)
    if not result:
        logger.warning("element_not_found", selector=selector, timeout=timeout)
    return result
