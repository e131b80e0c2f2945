"""CronScheduler — recurring cleanup trigger backed by APScheduler."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from image_cleanup.domain.errors import ConfigurationError

if TYPE_CHECKING:
    from image_cleanup.application.cleanup_runner import CleanupRunner

logger = logging.getLogger(__name__)

JOB_ID = "image_cleanup"


def parse_schedule(expression: str) -> CronTrigger:
    """Parse a five-field crontab expression. Raises ConfigurationError if invalid."""
    if not expression.strip():
        raise ConfigurationError("CLEANUP_SCHEDULE is required")
    try:
        return CronTrigger.from_crontab(expression)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid CLEANUP_SCHEDULE {expression!r}: {exc}") from exc


class CronScheduler:
    """Run ``CleanupRunner.run_scheduled`` on a cron schedule.

    APScheduler's ``max_instances=1`` skips a firing while the previous one is
    still running; the runner's admission guard also rejects overlap with
    HTTP-triggered runs.
    """

    def __init__(self, runner: CleanupRunner, schedule: str) -> None:
        self._runner = runner
        self._schedule = schedule
        self._trigger = parse_schedule(schedule)
        self._scheduler = AsyncIOScheduler()

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    @property
    def next_run_time(self) -> datetime | None:
        """When the cleanup job fires next, or None if it is not scheduled."""
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job is not None else None

    def start(self) -> None:
        """Register the cleanup job and start the scheduler on the running loop."""
        if self._scheduler.running:
            logger.info("Cron scheduler already running")
            return

        self._scheduler.add_job(
            self._runner.run_scheduled,
            self._trigger,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info("Cron scheduler started (schedule=%s, next run at %s)", self._schedule, self.next_run_time)

    def stop(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Cron scheduler stopped")
