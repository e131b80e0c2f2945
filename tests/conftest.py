"""Shared fakes and fixtures for the image cleanup test suite."""

from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from image_cleanup.domain.errors import InventoryError, ResultStoreError
from image_cleanup.domain.models import CleanupOutcome, CleanupRecord, HostDescriptor, Image
from image_cleanup.domain.types import ImageId, RunId


class FakeInventory:
    """In-memory ImageInventoryPort recording removals and peak concurrency."""

    def __init__(self) -> None:
        self.images: list[Image] = []
        self.in_use: frozenset[ImageId] = frozenset()
        self.failing: set[ImageId] = set()
        self.list_error: Exception | None = None
        self.in_use_error: Exception | None = None
        self.remove_delay = 0.0
        self.list_delay = 0.0
        self.removed: list[ImageId] = []
        self.remove_calls: list[ImageId] = []
        self.active = 0
        self.max_active = 0

    def set_images(self, *ids: str) -> None:
        self.images = [Image(image_id=ImageId(i), tags=(f"repo/{i}:latest",)) for i in ids]

    def set_in_use(self, *ids: str) -> None:
        self.in_use = frozenset(ImageId(i) for i in ids)

    async def list_images(self) -> list[Image]:
        if self.list_delay:
            await asyncio.sleep(self.list_delay)
        if self.list_error is not None:
            raise self.list_error
        return list(self.images)

    async def list_in_use_image_ids(self) -> frozenset[ImageId]:
        if self.in_use_error is not None:
            raise self.in_use_error
        return self.in_use

    async def remove_image(self, image_id: ImageId) -> None:
        self.remove_calls.append(image_id)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.remove_delay)
            if image_id in self.failing:
                raise InventoryError(f"Failed to remove image {image_id}: rmi exited with code 1")
            self.removed.append(image_id)
        finally:
            self.active -= 1


class RecordingNotifier:
    """NotifierPort that keeps every message it was asked to send."""

    def __init__(self) -> None:
        self.messages: list[str] = []
        self.error: Exception | None = None
        self.delay = 0.0

    async def send(self, message: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.messages.append(message)


class FakeMetrics:
    """MetricsPort keeping plain counters for assertions."""

    def __init__(self) -> None:
        self.removed = 0
        self.skipped = 0
        self.errors = 0
        self.durations: list[float] = []
        self.last_times: list[datetime] = []
        self.http_requests: list[tuple[str, str, int]] = []
        self.http_timeouts: list[tuple[str, str]] = []
        self.http_errors: list[tuple[str, str, int, str]] = []

    def inc_images_removed(self) -> None:
        self.removed += 1

    def inc_images_skipped(self) -> None:
        self.skipped += 1

    def inc_cleanup_errors(self) -> None:
        self.errors += 1

    def observe_cleanup_duration(self, seconds: float) -> None:
        self.durations.append(seconds)

    def set_last_cleanup_time(self, timestamp: datetime) -> None:
        self.last_times.append(timestamp)

    def inc_http_requests(self, path: str, method: str, status: int) -> None:
        self.http_requests.append((path, method, status))

    def inc_http_timeout(self, path: str, method: str) -> None:
        self.http_timeouts.append((path, method))

    def inc_http_error(self, path: str, method: str, status: int, error_type: str) -> None:
        self.http_errors.append((path, method, status, error_type))


class FakeHostInfo:
    def __init__(self) -> None:
        self.descriptor = HostDescriptor(hostname="node-1", ip_addresses=("10.0.0.5",))
        self.error: Exception | None = None

    def describe(self) -> HostDescriptor:
        if self.error is not None:
            raise self.error
        return self.descriptor


class InMemoryResultStore:
    """ResultStorePort keeping records newest-first in a list."""

    def __init__(self) -> None:
        self.records: list[CleanupRecord] = []
        self.error: ResultStoreError | None = None

    async def save_result(self, outcome: CleanupOutcome) -> CleanupRecord:
        if self.error is not None:
            raise self.error
        record = CleanupRecord.from_outcome(outcome, created_at=outcome.finished_at)
        self.records.insert(0, record)
        return record

    async def latest_result(self) -> CleanupRecord | None:
        if self.error is not None:
            raise self.error
        return self.records[0] if self.records else None

    async def get_result(self, run_id: RunId) -> CleanupRecord | None:
        if self.error is not None:
            raise self.error
        return next((r for r in self.records if r.run_id == run_id), None)

    async def list_results(self, limit: int, offset: int = 0) -> list[CleanupRecord]:
        if self.error is not None:
            raise self.error
        return self.records[offset : offset + limit]


@pytest.fixture
def inventory() -> FakeInventory:
    return FakeInventory()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def metrics() -> FakeMetrics:
    return FakeMetrics()


@pytest.fixture
def host_info() -> FakeHostInfo:
    return FakeHostInfo()


@pytest.fixture
def result_store() -> InMemoryResultStore:
    return InMemoryResultStore()

