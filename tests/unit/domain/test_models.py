"""Tests for domain models — Image, HostDescriptor, DeletionTally, CleanupOutcome, CleanupRecord."""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime, timedelta

import pytest

from image_cleanup.domain.enums import RunStatus
from image_cleanup.domain.models import (
    UNKNOWN_HOST,
    CleanupOutcome,
    CleanupRecord,
    DeletionTally,
    HostDescriptor,
    Image,
)
from image_cleanup.domain.types import ImageId, RunId

_START = datetime(2025, 3, 1, 17, 0, 0, tzinfo=UTC)


def _outcome(**overrides: object) -> CleanupOutcome:
    defaults: dict[str, object] = {
        "run_id": RunId("abc123"),
        "host": HostDescriptor(hostname="node-1", ip_addresses=("10.0.0.5", "192.168.1.20")),
        "started_at": _START,
        "finished_at": _START + timedelta(seconds=65),
        "duration_seconds": 65.2,
        "total": 10,
        "removed": 7,
        "skipped": 3,
    }
    defaults.update(overrides)
    return CleanupOutcome(**defaults)  # type: ignore[arg-type]


class TestImage:
    def test_frozen(self) -> None:
        image = Image(image_id=ImageId("sha256:aaa"))
        with pytest.raises(dataclasses.FrozenInstanceError):
            image.image_id = ImageId("sha256:bbb")  # type: ignore[misc]

    def test_empty_id_rejected(self) -> None:
        with pytest.raises(ValueError, match="image_id"):
            Image(image_id=ImageId(""))

    def test_display_name_prefers_first_tag(self) -> None:
        image = Image(image_id=ImageId("sha256:aaa"), tags=("nginx:1.25", "nginx:latest"))
        assert image.display_name == "nginx:1.25"

    def test_display_name_falls_back_to_id(self) -> None:
        assert Image(image_id=ImageId("sha256:aaa")).display_name == "sha256:aaa"


class TestHostDescriptor:
    def test_describe_lists_addresses(self) -> None:
        host = HostDescriptor(hostname="node-1", ip_addresses=("10.0.0.5", "192.168.1.20"))
        assert host.describe() == "Host: node-1\nIP(s): 10.0.0.5, 192.168.1.20"

    def test_describe_without_addresses(self) -> None:
        assert HostDescriptor(hostname="node-1").describe() == "Host: node-1\nIP(s): "

    def test_unknown(self) -> None:
        host = HostDescriptor.unknown()
        assert not host.is_known
        assert host.describe() == UNKNOWN_HOST


class TestDeletionTally:
    def test_defaults_are_zero(self) -> None:
        tally = DeletionTally()
        assert (tally.removed, tally.skipped, tally.failed) == (0, 0, 0)
        assert tally.processed == 0

    def test_addition(self) -> None:
        total = DeletionTally(removed=2, skipped=1, failed=1) + DeletionTally(removed=3, skipped=2)
        assert total == DeletionTally(removed=5, skipped=3, failed=1)
        assert total.processed == 8

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match="non-negative"):
            DeletionTally(removed=-1)

    def test_failed_cannot_exceed_skipped(self) -> None:
        with pytest.raises(ValueError, match="cannot exceed"):
            DeletionTally(skipped=1, failed=2)


class TestCleanupOutcome:
    def test_completed_run(self) -> None:
        outcome = _outcome()
        assert outcome.completed
        assert outcome.status is RunStatus.SUCCESS

    def test_completed_run_must_account_for_every_image(self) -> None:
        with pytest.raises(ValueError, match="total == removed \\+ skipped"):
            _outcome(total=10, removed=5, skipped=3)

    def test_aborted_run_may_leave_images_unprocessed(self) -> None:
        outcome = _outcome(status=RunStatus.ABORTED, abort_reason="shutdown", removed=2, skipped=1)
        assert not outcome.completed
        assert outcome.abort_reason == "shutdown"

    def test_aborted_run_cannot_overcount(self) -> None:
        with pytest.raises(ValueError, match="more images"):
            _outcome(status=RunStatus.ABORTED, total=2, removed=2, skipped=1)

    def test_negative_duration_rejected(self) -> None:
        with pytest.raises(ValueError, match="duration"):
            _outcome(duration_seconds=-0.1)

    def test_empty_run(self) -> None:
        outcome = _outcome(total=0, removed=0, skipped=0)
        assert outcome.completed


class TestCleanupRecord:
    def test_from_outcome_flattens_host(self) -> None:
        created = _START + timedelta(minutes=2)
        record = CleanupRecord.from_outcome(_outcome(), created_at=created)
        assert record.run_id == RunId("abc123")
        assert record.host_info == "Host: node-1\nIP(s): 10.0.0.5, 192.168.1.20"
        assert record.total == 10
        assert record.created_at == created

    def test_from_outcome_unknown_host(self) -> None:
        record = CleanupRecord.from_outcome(_outcome(host=HostDescriptor.unknown()), created_at=_START)
        assert record.host_info == UNKNOWN_HOST

    def test_to_dict(self) -> None:
        record = CleanupRecord.from_outcome(_outcome(duration_seconds=65.23456), created_at=_START)
        data = record.to_dict()
        assert data["id"] == "abc123"
        assert data["start_time"] == "2025-03-01T17:00:00+00:00"
        assert data["end_time"] == "2025-03-01T17:01:05+00:00"
        assert data["duration_seconds"] == 65.235
        assert data["total_count"] == 10
        assert data["removed_count"] == 7
        assert data["skipped_count"] == 3
