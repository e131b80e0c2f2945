"""Domain ports — Protocol interfaces for hexagonal architecture boundaries."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from image_cleanup.domain.models import CleanupOutcome, CleanupRecord, HostDescriptor, Image
from image_cleanup.domain.types import ImageId, RunId


@runtime_checkable
class ImageInventoryPort(Protocol):
    """List and delete cached images in the local container runtime.

    All operations raise InventoryError on runtime failure.
    """

    async def list_images(self) -> list[Image]: ...

    async def list_in_use_image_ids(self) -> frozenset[ImageId]:
        """Identifiers of images referenced by any container, running or exited."""
        ...

    async def remove_image(self, image_id: ImageId) -> None: ...


@runtime_checkable
class NotifierPort(Protocol):
    """Deliver a human-readable message to an external channel."""

    async def send(self, message: str) -> None: ...


@runtime_checkable
class MetricsPort(Protocol):
    """Write-only metrics sink. Implementations must never raise."""

    def inc_images_removed(self) -> None: ...

    def inc_images_skipped(self) -> None: ...

    def inc_cleanup_errors(self) -> None: ...

    def observe_cleanup_duration(self, seconds: float) -> None: ...

    def set_last_cleanup_time(self, timestamp: datetime) -> None: ...

    def inc_http_requests(self, path: str, method: str, status: int) -> None: ...

    def inc_http_timeout(self, path: str, method: str) -> None: ...

    def inc_http_error(self, path: str, method: str, status: int, error_type: str) -> None: ...


@runtime_checkable
class ResultStorePort(Protocol):
    """Persist and query cleanup run summaries. Failures raise ResultStoreError."""

    async def save_result(self, outcome: CleanupOutcome) -> CleanupRecord: ...

    async def latest_result(self) -> CleanupRecord | None: ...

    async def get_result(self, run_id: RunId) -> CleanupRecord | None: ...

    async def list_results(self, limit: int, offset: int = 0) -> list[CleanupRecord]: ...


@runtime_checkable
class HostInfoPort(Protocol):
    """Describe the local host. May raise OSError."""

    def describe(self) -> HostDescriptor: ...
