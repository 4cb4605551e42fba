"""Periodic mood queue runs via APScheduler.

Wraps APScheduler's ``AsyncIOScheduler`` with an interval trigger that
calls ``MoodQueue.process_queue``. APScheduler is imported lazily (only in
:meth:`start`) so the module can be imported without it.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from .queue import MoodQueue


class MoodQueueScheduler:
    """Runs a queue pass every *interval_minutes*.

    Args:
        queue: The per-user queue to drive.
        interval_minutes: Minutes between passes.
        run_immediately: Also fire one pass as soon as the scheduler starts.
        timezone: Scheduler timezone.
    """

    def __init__(
        self,
        queue: MoodQueue,
        interval_minutes: float = 15,
        *,
        run_immediately: bool = True,
        timezone: str = "UTC",
    ):
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        self._queue = queue
        self.interval_minutes = interval_minutes
        self.run_immediately = run_immediately
        self._timezone = timezone
        self._scheduler: Any = None  # AsyncIOScheduler, lazily created

    @classmethod
    def from_config(cls, queue: MoodQueue, config: Any, **kwargs: Any) -> MoodQueueScheduler:
        return cls(queue, interval_minutes=config.validated().mood.interval_minutes, **kwargs)

    def start(self) -> None:
        """Create the APScheduler instance, add the job, and start.

        Must be called from a running asyncio event loop.
        """
        from datetime import datetime, timezone

        from apscheduler.schedulers.asyncio import AsyncIOScheduler
        from apscheduler.triggers.interval import IntervalTrigger

        self._scheduler = AsyncIOScheduler(timezone=self._timezone)
        trigger = IntervalTrigger(minutes=self.interval_minutes, timezone=self._timezone)
        job_kwargs: dict[str, Any] = {}
        if self.run_immediately:
            # An explicit None would add the job paused
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)
        self._scheduler.add_job(
            self._run_pass,
            trigger=trigger,
            id="mood_queue",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
            **job_kwargs,
        )
        self._scheduler.start()
        logger.info(f"MoodQueueScheduler started: every {self.interval_minutes} min, tz={self._timezone}")

    def shutdown(self) -> None:
        """Stop the scheduler and ask any running pass to stop after its batch."""
        self._queue.stop()
        if self._scheduler:
            self._scheduler.shutdown(wait=False)
            logger.info("MoodQueueScheduler shut down")

    @property
    def apscheduler(self) -> Any:
        """The raw APScheduler instance, or None before :meth:`start`."""
        return self._scheduler

    async def _run_pass(self) -> None:
        status = await self._queue.process_queue()
        logger.debug(f"Scheduled mood pass: {status.to_dict()}")
