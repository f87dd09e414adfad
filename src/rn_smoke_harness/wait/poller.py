"""Wait engine - Poll a condition until it holds or a timeout elapses."""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from rn_smoke_harness.constants import DEFAULT_POLL_INTERVAL, DEFAULT_WAIT_TIMEOUT

logger = structlog.get_logger()

Condition = Callable[[], bool | Awaitable[bool]]


@dataclass
class WaitResult:
    """Result of a polling wait."""

    success: bool
    elapsed_ms: float
    attempts: int
    last_error: BaseException | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON response."""
        status = "done" if self.success else "timeout"
        payload: dict[str, Any] = {
            "status": status,
            "elapsed_ms": round(self.elapsed_ms, 2),
            "attempts": self.attempts,
        }
        if self.last_error is not None:
            payload["last_error"] = repr(self.last_error)
        return payload


async def _evaluate(condition: Condition) -> bool:
    if inspect.iscoroutinefunction(condition):
        result = await condition()
    else:
        result = await asyncio.to_thread(condition)
        if inspect.isawaitable(result):
            result = await result
    return bool(result)


async def poll(
    condition: Condition,
    timeout: float = DEFAULT_WAIT_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
    *,
    initial_delay: float = 0.0,
    max_consecutive_errors: int | None = 3,
) -> WaitResult:
    """Evaluate ``condition`` until it returns true or ``timeout`` elapses.

    The condition is evaluated once right away (after ``initial_delay``) and
    then every ``interval`` seconds. Evaluations never overlap: the next sleep
    starts only after the previous evaluation has finished.

    A condition that raises counts as false for that tick. Once it has raised
    ``max_consecutive_errors`` times in a row the last exception propagates;
    pass ``None`` to keep polling regardless, or ``1`` to fail fast.

    Args:
        condition: Callable or coroutine function returning a bool
        timeout: Overall ceiling in seconds
        interval: Delay between evaluations in seconds
        initial_delay: Delay before the first evaluation in seconds
        max_consecutive_errors: Consecutive raises tolerated before propagating

    Returns:
        WaitResult, with ``success=False`` on timeout
    """
    if timeout <= 0:
        raise ValueError(f"timeout must be positive, got {timeout}")
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval}")

    start = time.monotonic()
    deadline = start + timeout
    attempts = 0
    consecutive_errors = 0
    last_error: BaseException | None = None

    if initial_delay > 0:
        await asyncio.sleep(initial_delay)

    while True:
        attempts += 1
        try:
            if await _evaluate(condition):
                elapsed = (time.monotonic() - start) * 1000
                return WaitResult(success=True, elapsed_ms=elapsed, attempts=attempts)
            consecutive_errors = 0
        except Exception as exc:
            consecutive_errors += 1
            last_error = exc
            logger.debug(
                "poll_condition_error",
                attempt=attempts,
                consecutive_errors=consecutive_errors,
                error=str(exc),
            )
            if max_consecutive_errors is not None and consecutive_errors >= max_consecutive_errors:
                raise

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            break
        await asyncio.sleep(min(interval, remaining))

    elapsed = (time.monotonic() - start) * 1000
    return WaitResult(success=False, elapsed_ms=elapsed, attempts=attempts, last_error=last_error)


async def wait_until(
    condition: Condition,
    timeout: float = DEFAULT_WAIT_TIMEOUT,
    interval: float = DEFAULT_POLL_INTERVAL,
    *,
    initial_delay: float = 0.0,
    max_consecutive_errors: int | None = 3,
) -> bool:
    """Return True as soon as ``condition`` holds, False once ``timeout`` elapses."""
    result = await poll(
        condition,
        timeout,
        interval,
        initial_delay=initial_delay,
        max_consecutive_errors=max_consecutive_errors,
    )
    return result.success
