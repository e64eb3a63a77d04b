"""Deadline-bounded polling primitives.

The deadline policy lives here, apart from any network code, so it can be
exercised with a fake check function and an instant sleep.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Generic, TypeVar

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PollPolicy:
    """How long and how often to poll a remote job.

    ``status_retries`` is the number of consecutive failed checks tolerated
    before giving up; ``0`` stops on the first failure. Failed checks still
    count toward ``max_attempts``, so the worst-case wall clock stays
    ``max_attempts * interval_seconds``.
    """

    interval_seconds: float = 5.0
    max_attempts: int = 60
    status_retries: int = 2

    def __post_init__(self) -> None:
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.status_retries < 0:
            raise ValueError("status_retries must be >= 0")


class PollStop(StrEnum):
    """Why a poll loop stopped."""

    DONE = "done"
    EXHAUSTED = "exhausted"
    CHECK_FAILED = "check_failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PollResult(Generic[T]):
    """Last observed value and the reason the loop stopped."""

    stop: PollStop
    attempts: int
    value: T | None = None
    error: Exception | None = None


async def poll_until(  # noqa: PLR0913
    check: Callable[[], Awaitable[T]],
    is_done: Callable[[T], bool],
    policy: PollPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
    cancel: asyncio.Event | None = None,
    on_check_error: Callable[[Exception, int], None] | None = None,
) -> PollResult[T]:
    """Wait, check, repeat until ``is_done`` or the attempt budget runs out.

    Every iteration waits ``policy.interval_seconds`` before calling
    ``check``. Exceptions raised by ``check`` are handed to ``on_check_error``
    and tolerated up to ``policy.status_retries`` times in a row.

    ``cancel`` is only observed while waiting. A cancel set during an in-flight
    ``check`` takes effect at the next wait, and the remote job itself is not
    cancelled.
    """
    attempts = 0
    consecutive_failures = 0
    last_value: T | None = None
    while attempts < policy.max_attempts:
        if await _wait(policy.interval_seconds, sleep, cancel):
            return PollResult(PollStop.CANCELLED, attempts, last_value)
        attempts += 1
        try:
            last_value = await check()
        except Exception as exc:
            consecutive_failures += 1
            if on_check_error is not None:
                on_check_error(exc, attempts)
            if consecutive_failures > policy.status_retries:
                return PollResult(PollStop.CHECK_FAILED, attempts, last_value, exc)
            continue
        consecutive_failures = 0
        if is_done(last_value):
            return PollResult(PollStop.DONE, attempts, last_value)
    return PollResult(PollStop.EXHAUSTED, attempts, last_value)


async def _wait(delay: float, sleep: Sleep, cancel: asyncio.Event | None) -> bool:
    """Sleep for ``delay``; return True if cancellation was requested."""
    if cancel is None:
        await sleep(delay)
        return False
    if cancel.is_set():
        return True
    sleeper = asyncio.ensure_future(sleep(delay))
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (sleeper, waiter):
            if not task.done():
                task.cancel()
        await asyncio.gather(sleeper, waiter, return_exceptions=True)
    return cancel.is_set()
