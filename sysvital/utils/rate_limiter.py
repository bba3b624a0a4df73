"""
Sliding-window rate limiter for outbound narrator calls.
Injected into the narrator rather than shared process-wide.
"""
import asyncio
import time
from collections import deque
from typing import Callable, Deque


class RateLimiter:
    """Allows at most `max_calls` acquisitions per `period` seconds."""

    def __init__(self, max_calls: int, period: float = 60.0,
                 clock: Callable[[], float] = time.monotonic) -> None:
        if max_calls < 1:
            raise ValueError("max_calls must be at least 1")
        self.max_calls = max_calls
        self.period = period
        self._clock = clock
        self._calls: Deque[float] = deque()
        self._lock = asyncio.Lock()

    def _evict(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.period:
            self._calls.popleft()

    def try_acquire(self) -> bool:
        """Non-blocking acquire. Returns False when the window is full."""
        now = self._clock()
        self._evict(now)
        if len(self._calls) < self.max_calls:
            self._calls.append(now)
            return True
        return False

    async def acquire(self) -> None:
        """Waits until a slot is free in the current window."""
        async with self._lock:
            while not self.try_acquire():
                wait = self.period - (self._clock() - self._calls[0])
                await asyncio.sleep(max(wait, 0.01))
