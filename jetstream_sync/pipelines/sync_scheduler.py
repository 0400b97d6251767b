import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from jetstream_sync.models.embedding_sync_models import PassSummary

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING_PASS = "running_pass"
    SLEEPING = "sleeping"
    DONE = "done"


class SyncScheduler:
    """
    Runs embedding passes once or on an interval.

    In continuous mode the wait after a pass that embedded anything is capped at
    ``busy_interval_ceiling`` so backlogs drain quickly; an idle pass waits the
    full interval. Exceptions from a pass are not caught and end the loop.
    """

    def __init__(self,
                 run_pass: Callable[[], Awaitable[PassSummary]],
                 continuous: bool = False,
                 interval_seconds: float = 300.0,
                 busy_interval_ceiling: float = 30.0,
                 clock: Callable[[], float] = time.time,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
                 max_passes: Optional[int] = None):
        self._run_pass = run_pass
        self.continuous = continuous
        self.interval_seconds = interval_seconds
        self.busy_interval_ceiling = busy_interval_ceiling
        self._clock = clock
        self._sleep = sleep
        self.max_passes = max_passes

        self.state = SchedulerState.IDLE
        self.passes_completed = 0
        self.next_wake_time: Optional[float] = None
        self.last_summary: Optional[PassSummary] = None
        self._task: Optional[asyncio.Task] = None

    def next_sleep_seconds(self, processed: int) -> float:
        if processed > 0:
            return min(self.interval_seconds, self.busy_interval_ceiling)
        return self.interval_seconds

    async def run(self) -> Optional[PassSummary]:
        """Run until done; returns the last pass summary"""
        while True:
            self.state = SchedulerState.RUNNING_PASS
            self.next_wake_time = None
            summary = await self._run_pass()
            self.last_summary = summary
            self.passes_completed += 1

            if not self.continuous or (self.max_passes is not None and self.passes_completed >= self.max_passes):
                self.state = SchedulerState.DONE
                return summary

            wait_seconds = self.next_sleep_seconds(summary.total_processed)
            self.next_wake_time = self._clock() + wait_seconds
            self.state = SchedulerState.SLEEPING
            logger.info(f"Waiting {wait_seconds:.0f} seconds before next run...")
            await self._sleep(wait_seconds)

    def start(self) -> asyncio.Task:
        """Start the loop as the scheduler's single background task"""
        if self._task is not None and not self._task.done():
            raise RuntimeError("Scheduler is already running")
        self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self.state = SchedulerState.DONE
