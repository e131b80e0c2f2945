"""CleanupRunner — dispatch cleanup runs for the scheduler and the HTTP trigger."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from image_cleanup.application.cancellation import CancellationSignal
from image_cleanup.domain.errors import CleanupError, RunInProgressError

if TYPE_CHECKING:
    from image_cleanup.application.cleanup_service import CleanupService
    from image_cleanup.domain.models import CleanupOutcome

logger = logging.getLogger(__name__)

_DEFAULT_SCHEDULED_TIMEOUT = 30 * 60.0
_DEFAULT_TRIGGER_TIMEOUT = 5 * 60.0


class CleanupRunner:
    """Invoke CleanupService with a per-run deadline tied to process shutdown.

    Scheduled runs are awaited in place. Triggered runs are detached as
    background tasks so the HTTP response never waits for the run. Setting
    the shutdown event aborts any active run at its next checkpoint.
    """

    def __init__(
        self,
        service: CleanupService,
        scheduled_timeout_seconds: float = _DEFAULT_SCHEDULED_TIMEOUT,
        trigger_timeout_seconds: float = _DEFAULT_TRIGGER_TIMEOUT,
    ) -> None:
        self._service = service
        self._scheduled_timeout = scheduled_timeout_seconds
        self._trigger_timeout = trigger_timeout_seconds
        self._shutdown = asyncio.Event()
        self._background: set[asyncio.Task[Any]] = set()

    @property
    def is_running(self) -> bool:
        return self._service.is_running

    @property
    def pending_count(self) -> int:
        """Number of scheduled or triggered runs that have not finished yet."""
        return len(self._background)

    async def run_scheduled(self) -> CleanupOutcome | None:
        """Entry point for the cron job. Never raises."""
        return await self._run_logged("scheduled", self._scheduled_timeout)

    def submit(self) -> asyncio.Task[CleanupOutcome | None]:
        """Start a detached triggered run and return its task immediately."""
        task = asyncio.create_task(self._run_logged("triggered", self._trigger_timeout), name="cleanup-triggered")
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def shutdown(self, grace_seconds: float = 5.0) -> None:
        """Signal active runs to stop and wait for scheduled and triggered runs to drain."""
        self._shutdown.set()
        if not self._background:
            return

        pending = set(self._background)
        logger.info("Waiting up to %.1fs for %d cleanup run(s) to stop", grace_seconds, len(pending))
        _, still_running = await asyncio.wait(pending, timeout=grace_seconds)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning("Cancelled %d cleanup run(s) that did not stop in time", len(still_running))
            await asyncio.gather(*still_running, return_exceptions=True)

    async def _run_logged(self, origin: str, timeout_seconds: float) -> CleanupOutcome | None:
        if self._shutdown.is_set():
            logger.warning("Ignoring %s cleanup — service is shutting down", origin)
            return None

        # Scheduled runs are tracked too so shutdown drains them
        task = asyncio.current_task()
        if task is not None:
            self._background.add(task)

        signal = CancellationSignal(timeout_seconds=timeout_seconds, shutdown=self._shutdown)
        try:
            return await self._service.cleanup(signal)
        except RunInProgressError:
            logger.warning("Skipping %s cleanup — a run is already in progress", origin)
        except CleanupError as exc:
            logger.error("%s cleanup failed: %s", origin.capitalize(), exc.message)
        except Exception:
            logger.exception("Unexpected error in %s cleanup", origin)
        finally:
            if task is not None:
                self._background.discard(task)
        return None
