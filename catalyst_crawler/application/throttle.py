"""Counting admission control for in-flight network operations."""

import asyncio
import contextlib
from typing import AsyncIterator


class ThrottleGate:
    """Bounds the number of simultaneously admitted network operations."""

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError(f"Throttle limit must be at least 1, got {limit}")
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self.in_use = 0
        self.peak = 0

    async def acquire(self):
        """Suspends until a slot is free, then takes it."""
        await self._semaphore.acquire()
        self.in_use += 1
        self.peak = max(self.peak, self.in_use)

    def release(self):
        self.in_use -= 1
        self._semaphore.release()

    @contextlib.asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        await self.acquire()
        try:
            yield
        finally:
            self.release()
