"""Retry driver: timeout-bounded, cancellable attempts with exponential backoff.

Each attempt races the operation against its timeout and the shared
interrupt signal. Failures and timeouts are retried forever with a backoff
of 5 s doubling up to 100 s; only the interrupt ends the loop without a
result.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_never,
    wait_exponential,
)

from gfs_downloader.errors import AttemptTimeout, Interrupted

logger = logging.getLogger(__name__)

INITIAL_BACKOFF = 5.0
MAX_BACKOFF = 100.0

Operation = Callable[..., Awaitable[Any]]


async def _cancel_and_wait(*tasks: asyncio.Future) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def run_attempt(
    f: Operation,
    *,
    name: str,
    attempt_timeout: float,
    interrupt: asyncio.Event,
) -> Any:
    """Run one attempt of ``f`` against its timeout and ``interrupt``.

    ``f`` is called as ``f(interrupt=event)`` with an event owned by this
    attempt, which is set once the race is decided whatever the outcome.

    Raises:
        Interrupted: ``interrupt`` fired first.
        AttemptTimeout: ``attempt_timeout`` elapsed first.
        Exception: Whatever ``f`` raised.
    """
    interrupt_this = asyncio.Event()
    job = asyncio.ensure_future(f(interrupt=interrupt_this))
    timer = asyncio.ensure_future(asyncio.sleep(attempt_timeout))
    interrupted = asyncio.ensure_future(interrupt.wait())
    try:
        done, _ = await asyncio.wait(
            {job, timer, interrupted}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        interrupt_this.set()
        await _cancel_and_wait(job, timer, interrupted)

    if interrupted in done:
        raise Interrupted(f"{name} interrupted")
    if job in done:
        return job.result()
    raise AttemptTimeout(f"{name} timed out after {attempt_timeout:g}s")


def _interruptible_sleep(interrupt: asyncio.Event) -> Callable[[float], Awaitable[None]]:
    """A backoff sleep that ends early once ``interrupt`` fires."""

    async def sleep(seconds: float) -> None:
        try:
            await asyncio.wait_for(interrupt.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    return sleep


def _log_retry(name: str) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        err = retry_state.outcome.exception()
        logger.debug(
            "%s %s: %s (attempt %d, backoff %.0fs)",
            name,
            type(err).__name__,
            err,
            retry_state.attempt_number,
            retry_state.next_action.sleep,
        )

    return before_sleep


async def with_retries(
    f: Operation,
    *,
    name: str,
    attempt_timeout: float,
    interrupt: asyncio.Event,
    initial_backoff: float = INITIAL_BACKOFF,
    max_backoff: float = MAX_BACKOFF,
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> Any:
    """Run ``f`` until it succeeds or ``interrupt`` fires.

    Args:
        f: Operation factory, called as ``f(interrupt=event)`` once per
            attempt. Each call must start a fresh operation.
        name: Label used in log messages.
        attempt_timeout: Seconds allowed per attempt.
        interrupt: External cancellation signal shared by all attempts.
        initial_backoff: Delay before the first retry, in seconds.
        max_backoff: Cap on the delay between retries, in seconds.
        sleep: Backoff sleep; defaults to one that wakes on ``interrupt``.

    Returns:
        The result of the first successful attempt.

    Raises:
        Interrupted: ``interrupt`` fired during an attempt.
    """
    retrying = AsyncRetrying(
        retry=(
            retry_if_exception_type(Exception)
            & retry_if_not_exception_type(Interrupted)
        ),
        wait=wait_exponential(multiplier=initial_backoff, max=max_backoff),
        stop=stop_never,
        sleep=sleep or _interruptible_sleep(interrupt),
        before_sleep=_log_retry(name),
        reraise=True,
    )
    return await retrying(
        run_attempt,
        f,
        name=name,
        attempt_timeout=attempt_timeout,
        interrupt=interrupt,
    )
