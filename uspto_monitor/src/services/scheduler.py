import asyncio
from typing import Awaitable, Callable, Optional, Set

import schedule
from loguru import logger

from ..config import Config
from .status import AutomationStatus


class SchedulerCoordinator:
    """Coordinates scheduled execution and handles concurrency.

    A ``schedule.Scheduler`` is pumped from an asyncio task once per second;
    due jobs start the sweep as a task on the same event loop.
    """

    def __init__(
        self,
        run_sweep: Callable[[], Awaitable[object]],
        status: AutomationStatus,
        minutes: Optional[int] = None,
    ):
        self.run_sweep = run_sweep
        self.status = status
        self.minutes = minutes or Config.SCHEDULE_MINUTES
        self.scheduler = schedule.Scheduler()
        self.run_lock = asyncio.Lock()
        self.stop_event = asyncio.Event()
        self._pump_task: Optional[asyncio.Task] = None
        self._job_tasks: Set[asyncio.Task] = set()

    @property
    def is_enabled(self) -> bool:
        return self._pump_task is not None

    async def run_scheduled_job(self):
        """Execute the sweep if the previous scheduled sweep has finished."""
        if self.stop_event.is_set():
            return

        if self.run_lock.locked():
            logger.warning("Previous run still in progress; skipping this schedule tick.")
            return

        async with self.run_lock:
            logger.info("[scheduler] running scheduled sweep")
            try:
                await self.run_sweep()
            except Exception as exc:
                logger.exception(f"[scheduler] scheduled sweep failed: {exc}")
                self.status.record_error(f"Scheduled sweep failed: {exc}")

    def _queue_job(self):
        task = asyncio.get_running_loop().create_task(self.run_scheduled_job())
        self._job_tasks.add(task)
        task.add_done_callback(self._job_tasks.discard)

    async def _pump(self, stop_event: asyncio.Event):
        while not stop_event.is_set():
            try:
                self.scheduler.run_pending()
            except Exception as exc:
                logger.exception(f"[scheduler] tick failed: {exc}")
                self.status.record_error(f"Scheduler tick failed: {exc}")
            await asyncio.sleep(1)
        logger.info("[scheduler] pump stopped")

    def start_scheduler(self) -> bool:
        """Start the scheduled execution loop. Must be called from the event loop."""
        if self.is_enabled:
            return False

        self.stop_event = asyncio.Event()
        self.scheduler.every(self.minutes).minutes.do(self._queue_job)
        self._pump_task = asyncio.get_running_loop().create_task(self._pump(self.stop_event))
        self.status.enabled = True
        self.status.save()
        logger.info(f"[scheduler] started; sweeps every {self.minutes} minutes")
        return True

    def request_stop(self) -> bool:
        """Request a graceful shutdown of the timer; a sweep already running finishes."""
        if not self.is_enabled:
            return False

        self.stop_event.set()
        self.scheduler.clear()
        self._pump_task = None
        self.status.enabled = False
        self.status.save()
        logger.info("[scheduler] stopped")
        return True
