"""Bounded-concurrency admission gate for HTTP requests."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_CONCURRENT_JOBS = 5


class Throttle:
    """Admit at most ``max_concurrent_jobs`` jobs at once, in arrival order.

    A job that fails releases its slot like any other; the error goes back to
    whoever enqueued it and the jobs queued behind it carry on.

    Admission order relies on ``asyncio.Semaphore`` handing a freed slot to
    the longest waiter, which holds from Python 3.11.

    Args:
        max_concurrent_jobs: Gate capacity.
    """

    def __init__(self, max_concurrent_jobs: int = MAX_CONCURRENT_JOBS):
        if max_concurrent_jobs < 1:
            raise ValueError("max_concurrent_jobs must be at least 1")
        self.max_concurrent_jobs = max_concurrent_jobs
        self._semaphore = asyncio.Semaphore(max_concurrent_jobs)
        self.in_flight = 0
        self.max_in_flight = 0

    async def enqueue(self, job: Callable[[], Awaitable[T]]) -> T:
        """Wait for a free slot, then run ``job()``."""
        async with self._semaphore:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                return await job()
            finally:
                self.in_flight -= 1
