"""CleanupService — drive one image cleanup run end to end."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Coroutine
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar

from image_cleanup.application.admission_guard import RunAdmissionGuard
from image_cleanup.application.cancellation import CancellationSignal
from image_cleanup.application.parallel_remover import ParallelRemover
from image_cleanup.application.summary_formatter import (
    TimestampFormatter,
    format_cleanup_message,
    make_timestamp_formatter,
)
from image_cleanup.domain.enums import RunStatus
from image_cleanup.domain.errors import InventoryError, RunInProgressError
from image_cleanup.domain.models import CleanupOutcome, DeletionTally, HostDescriptor, Image
from image_cleanup.domain.types import ImageId, RunId

if TYPE_CHECKING:
    from image_cleanup.domain.ports import (
        HostInfoPort,
        ImageInventoryPort,
        MetricsPort,
        NotifierPort,
        ResultStorePort,
    )

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class _RunAborted(Exception):
    """Internal: the cancellation signal fired at a checkpoint."""


def _generate_run_id() -> RunId:
    return RunId(uuid.uuid4().hex)


class CleanupService:
    """Orchestrate a cleanup run: inventory, partition, parallel delete, report.

    Only inventory read failures (and a rejected admission) propagate to the
    caller. Deletion, persistence and notification failures are logged and
    counted so one bad image or an unreachable channel never aborts a run
    whose destructive work already happened.
    """

    def __init__(
        self,
        inventory: ImageInventoryPort,
        notifier: NotifierPort,
        metrics: MetricsPort,
        host_info: HostInfoPort,
        result_store: ResultStorePort | None = None,
        remover: ParallelRemover | None = None,
        format_timestamp: TimestampFormatter | None = None,
        guard: RunAdmissionGuard | None = None,
    ) -> None:
        self._inventory = inventory
        self._notifier = notifier
        self._metrics = metrics
        self._host_info = host_info
        self._result_store = result_store
        self._remover = remover or ParallelRemover(inventory)
        self._format_timestamp = format_timestamp or make_timestamp_formatter()
        self._guard = guard or RunAdmissionGuard()

    @property
    def is_running(self) -> bool:
        """True while a run holds the admission guard."""
        return self._guard.active

    async def cleanup(self, signal: CancellationSignal | None = None) -> CleanupOutcome:
        """Run one cleanup.

        Raises RunInProgressError if another run is active and InventoryError
        if either inventory read fails. Cancellation yields an ABORTED outcome.
        """
        if not self._guard.try_acquire():
            raise RunInProgressError("A cleanup run is already in progress")
        try:
            return await self._run(signal or CancellationSignal())
        finally:
            self._guard.release()

    async def _run(self, signal: CancellationSignal) -> CleanupOutcome:
        run_id = _generate_run_id()
        started_at = datetime.now(UTC)
        started = time.monotonic()
        logger.info("Cleanup run %s started", run_id)

        images: list[Image] = []
        in_use_count = 0
        tally = DeletionTally()
        status = RunStatus.SUCCESS
        abort_reason = ""
        try:
            images = await self._read_inventory(self._inventory.list_images(), "images", signal)
            in_use = await self._read_inventory(self._inventory.list_in_use_image_ids(), "used images", signal)

            candidates, in_use_count = _partition(images, in_use)
            if signal.cancelled:
                raise _RunAborted(signal.reason)

            tally = await self._remover.remove(candidates, in_use, signal)
            if tally.processed < len(candidates):
                raise _RunAborted(signal.reason or "cancelled")
        except _RunAborted as exc:
            status = RunStatus.ABORTED
            abort_reason = str(exc)

        finished_at = datetime.now(UTC)
        outcome = CleanupOutcome(
            run_id=run_id,
            host=self._describe_host(),
            started_at=started_at,
            finished_at=finished_at,
            duration_seconds=time.monotonic() - started,
            total=len(images),
            removed=tally.removed,
            skipped=in_use_count + tally.skipped,
            status=status,
            abort_reason=abort_reason,
        )
        self._record_metrics(outcome, tally)

        if not outcome.completed:
            logger.warning(
                "Cleanup run %s aborted (%s): total=%d, removed=%d, skipped=%d, unprocessed=%d",
                run_id,
                abort_reason,
                outcome.total,
                outcome.removed,
                outcome.skipped,
                outcome.total - outcome.removed - outcome.skipped,
            )
            return outcome

        await self._persist(outcome)
        await self._notify(outcome, signal)

        logger.info(
            "Cleanup completed: run_id=%s, total=%d, removed=%d, skipped=%d, host=%s, start=%s, end=%s, duration=%.2fs",
            run_id,
            outcome.total,
            outcome.removed,
            outcome.skipped,
            outcome.host.hostname or "unknown",
            self._format_timestamp(outcome.started_at),
            self._format_timestamp(outcome.finished_at),
            outcome.duration_seconds,
        )
        return outcome

    async def _read_inventory(
        self,
        read: Coroutine[Any, Any, _T],
        what: str,
        signal: CancellationSignal,
    ) -> _T:
        """Await an inventory read, counting failures and honouring cancellation."""
        try:
            return await _until_cancelled(read, signal)
        except InventoryError as exc:
            self._metrics.inc_cleanup_errors()
            logger.error("Failed to get %s: %s", what, exc)
            raise

    def _describe_host(self) -> HostDescriptor:
        try:
            return self._host_info.describe()
        except Exception:
            logger.warning("Host lookup failed — reporting unknown host", exc_info=True)
            return HostDescriptor.unknown()

    def _record_metrics(self, outcome: CleanupOutcome, tally: DeletionTally) -> None:
        for _ in range(outcome.removed):
            self._metrics.inc_images_removed()
        for _ in range(outcome.skipped):
            self._metrics.inc_images_skipped()
        for _ in range(tally.failed):
            self._metrics.inc_cleanup_errors()
        if not outcome.completed:
            self._metrics.inc_cleanup_errors()

        self._metrics.observe_cleanup_duration(outcome.duration_seconds)
        self._metrics.set_last_cleanup_time(outcome.finished_at)

    async def _persist(self, outcome: CleanupOutcome) -> None:
        if self._result_store is None:
            return
        try:
            await self._result_store.save_result(outcome)
        except Exception:
            logger.exception("Failed to persist cleanup result %s", outcome.run_id)

    async def _notify(self, outcome: CleanupOutcome, signal: CancellationSignal) -> None:
        message = format_cleanup_message(outcome, self._format_timestamp)
        try:
            await _until_cancelled(self._notifier.send(message), signal)
        except _RunAborted as exc:
            self._metrics.inc_cleanup_errors()
            logger.error("Notification for run %s abandoned: %s", outcome.run_id, exc)
        except Exception:
            self._metrics.inc_cleanup_errors()
            logger.exception("Failed to send notification for run %s", outcome.run_id)


def _partition(images: list[Image], in_use: frozenset[ImageId]) -> tuple[list[Image], int]:
    """Split images into deletion candidates and a count of in-use images.

    Membership is decided by identifier only; tags are never consulted.
    """
    candidates: list[Image] = []
    in_use_count = 0
    for image in images:
        if image.image_id in in_use:
            in_use_count += 1
            logger.info("Skipping image in use: %s (%s)", image.display_name, image.image_id)
        else:
            candidates.append(image)
    return candidates, in_use_count


async def _until_cancelled(work: Coroutine[Any, Any, _T], signal: CancellationSignal) -> _T:
    """Await ``work`` unless ``signal`` fires first, in which case raise _RunAborted."""
    if signal.cancelled:
        work.close()
        raise _RunAborted(signal.reason)

    task = asyncio.ensure_future(work)
    stop = asyncio.ensure_future(signal.wait())
    try:
        await asyncio.wait({task, stop}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        stop.cancel()
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    if task.cancelled():
        raise _RunAborted(signal.reason or "cancelled")
    return task.result()
