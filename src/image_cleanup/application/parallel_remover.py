"""ParallelRemover — delete candidate images with a fixed-size worker pool."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Set
from typing import TYPE_CHECKING

from image_cleanup.domain.errors import InventoryError
from image_cleanup.domain.models import DeletionTally, Image
from image_cleanup.domain.types import ImageId

if TYPE_CHECKING:
    from image_cleanup.application.cancellation import CancellationSignal
    from image_cleanup.domain.ports import ImageInventoryPort

logger = logging.getLogger(__name__)

DEFAULT_POOL_SIZE = 5


class ParallelRemover:
    """Remove images concurrently through a bounded pool of asyncio workers.

    Pool size is fixed at construction and never derived from the number of
    candidates. Each worker keeps a private tally; tallies are merged only
    after every worker has been joined, so counts are never mutated
    concurrently.
    """

    def __init__(self, inventory: ImageInventoryPort, pool_size: int = DEFAULT_POOL_SIZE) -> None:
        if pool_size < 1:
            raise ValueError(f"pool_size must be >= 1, got {pool_size}")
        self._inventory = inventory
        self._pool_size = pool_size

    @property
    def pool_size(self) -> int:
        return self._pool_size

    async def remove(
        self,
        candidates: Iterable[Image],
        in_use: Set[ImageId],
        signal: CancellationSignal,
    ) -> DeletionTally:
        """Delete every candidate not in ``in_use`` until ``signal`` fires.

        Returns once all workers have exited. Candidates never dispatched
        because of cancellation are counted neither removed nor skipped.
        """
        queue: asyncio.Queue[Image] = asyncio.Queue()
        for image in candidates:
            if signal.cancelled:
                logger.warning("Cancellation during dispatch (%s) — %d image(s) queued", signal.reason, queue.qsize())
                break
            queue.put_nowait(image)

        if queue.empty():
            return DeletionTally()

        workers = [
            asyncio.create_task(self._worker(queue, in_use, signal), name=f"image-remover-{n}")
            for n in range(min(self._pool_size, queue.qsize()))
        ]
        try:
            tallies = await asyncio.gather(*workers)
        except BaseException:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise

        total = DeletionTally()
        for tally in tallies:
            total += tally
        return total

    async def _worker(
        self,
        queue: asyncio.Queue[Image],
        in_use: Set[ImageId],
        signal: CancellationSignal,
    ) -> DeletionTally:
        removed = skipped = failed = 0
        while not signal.cancelled:
            try:
                image = queue.get_nowait()
            except asyncio.QueueEmpty:
                break

            if image.image_id in in_use:
                skipped += 1
                logger.info("Skipping image in use: %s (%s)", image.display_name, image.image_id)
                continue

            try:
                await self._inventory.remove_image(image.image_id)
            except (InventoryError, OSError) as exc:
                skipped += 1
                failed += 1
                logger.error("Failed to remove image %s: %s", image.image_id, exc)
                continue
            except Exception:
                skipped += 1
                failed += 1
                logger.exception("Unexpected error removing image %s", image.image_id)
                continue

            removed += 1
            logger.info("Removed image: %s (%s)", image.display_name, image.image_id)

        return DeletionTally(removed=removed, skipped=skipped, failed=failed)
