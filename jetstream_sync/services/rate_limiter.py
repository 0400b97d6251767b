import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Fixed-window call budget for the embedding provider.

    One instance is owned per orchestrator and shared by every embedding call
    it makes. Checks are serialized by a lock, and a call slot is reserved
    before the lock is released, so concurrent callers in the same window can
    never exceed ``max_calls``.
    """

    def __init__(self,
                 max_calls: int = 35,
                 window_seconds: float = 60.0,
                 buffer_seconds: float = 1.0,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep):
        if max_calls <= 0:
            raise ValueError("max_calls must be greater than 0")
        self.max_calls = max_calls
        self.window_seconds = window_seconds
        self.buffer_seconds = buffer_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()

        self.calls_in_window = 0
        self.window_start = clock()
        self.total_waits = 0

    async def check_and_wait(self) -> None:
        """Block until a call slot is available in the current window, then take it"""
        async with self._lock:
            now = self._clock()
            elapsed = now - self.window_start

            if elapsed > self.window_seconds:
                self._reset(now)
            elif self.calls_in_window >= self.max_calls:
                time_to_wait = self.window_seconds - elapsed + self.buffer_seconds
                logger.info(f"Rate limit reached ({self.calls_in_window}/{self.max_calls} calls). "
                            f"Waiting {time_to_wait:.1f} seconds before continuing...")
                self.total_waits += 1
                await self._sleep(time_to_wait)
                self._reset(self._clock())

            self.calls_in_window += 1

    def _reset(self, now: float) -> None:
        self.calls_in_window = 0
        self.window_start = now

    def snapshot(self) -> Dict[str, Any]:
        return {
            "calls_in_window": self.calls_in_window,
            "max_calls": self.max_calls,
            "window_seconds": self.window_seconds,
            "seconds_into_window": max(self._clock() - self.window_start, 0.0),
            "total_waits": self.total_waits,
        }
