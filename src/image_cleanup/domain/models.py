"""Domain models — frozen dataclasses for cleanup value objects and run results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from image_cleanup.domain.enums import RunStatus
from image_cleanup.domain.types import ImageId, RunId

UNKNOWN_HOST = "Unknown host"


@dataclass(frozen=True)
class Image:
    """A cached container image as reported by the runtime."""

    image_id: ImageId
    tags: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.image_id:
            raise ValueError("image_id must not be empty")

    @property
    def display_name(self) -> str:
        """First tag if the image is tagged, otherwise the identifier."""
        return self.tags[0] if self.tags else str(self.image_id)


@dataclass(frozen=True)
class HostDescriptor:
    """Hostname and non-loopback IPv4 addresses of the machine being cleaned."""

    hostname: str
    ip_addresses: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def unknown(cls) -> HostDescriptor:
        """Placeholder used when host lookup fails."""
        return cls(hostname="")

    @property
    def is_known(self) -> bool:
        return bool(self.hostname)

    def describe(self) -> str:
        """Human-readable host block for notifications and persisted records."""
        if not self.is_known:
            return UNKNOWN_HOST
        return f"Host: {self.hostname}\nIP(s): {', '.join(self.ip_addresses)}"


@dataclass(frozen=True)
class DeletionTally:
    """Counts produced by the bounded-parallel deletion step.

    ``failed`` is the subset of ``skipped`` whose removal raised.
    """

    removed: int = 0
    skipped: int = 0
    failed: int = 0

    def __post_init__(self) -> None:
        if self.removed < 0 or self.skipped < 0 or self.failed < 0:
            raise ValueError("tally counts must be non-negative")
        if self.failed > self.skipped:
            raise ValueError(f"failed ({self.failed}) cannot exceed skipped ({self.skipped})")

    @property
    def processed(self) -> int:
        return self.removed + self.skipped

    def __add__(self, other: DeletionTally) -> DeletionTally:
        return DeletionTally(
            removed=self.removed + other.removed,
            skipped=self.skipped + other.skipped,
            failed=self.failed + other.failed,
        )


@dataclass(frozen=True)
class CleanupOutcome:
    """Aggregate result of one cleanup run.

    Timestamps are timezone-aware UTC. ``duration_seconds`` comes from a
    monotonic clock, never from the wall-clock timestamps.
    """

    run_id: RunId
    host: HostDescriptor
    started_at: datetime
    finished_at: datetime
    duration_seconds: float
    total: int
    removed: int
    skipped: int
    status: RunStatus = RunStatus.SUCCESS
    abort_reason: str = ""

    def __post_init__(self) -> None:
        if self.duration_seconds < 0:
            raise ValueError("duration_seconds must be non-negative")
        if self.total < 0 or self.removed < 0 or self.skipped < 0:
            raise ValueError("counts must be non-negative")
        if self.status is RunStatus.SUCCESS and self.total != self.removed + self.skipped:
            raise ValueError(
                f"completed run must satisfy total == removed + skipped, "
                f"got {self.total} != {self.removed} + {self.skipped}"
            )
        if self.status is RunStatus.ABORTED and self.removed + self.skipped > self.total:
            raise ValueError("aborted run cannot process more images than it had")

    @property
    def completed(self) -> bool:
        return self.status is RunStatus.SUCCESS


@dataclass(frozen=True)
class CleanupRecord:
    """A persisted run summary as read back from the result store."""

    run_id: RunId
    host_info: str
    started_at: datetime
    finished_at: datetime
    duration_seconds: float
    total: int
    removed: int
    skipped: int
    created_at: datetime

    @classmethod
    def from_outcome(cls, outcome: CleanupOutcome, created_at: datetime) -> CleanupRecord:
        return cls(
            run_id=outcome.run_id,
            host_info=outcome.host.describe(),
            started_at=outcome.started_at,
            finished_at=outcome.finished_at,
            duration_seconds=outcome.duration_seconds,
            total=outcome.total,
            removed=outcome.removed,
            skipped=outcome.skipped,
            created_at=created_at,
        )

    def to_dict(self) -> dict[str, object]:
        """JSON-ready representation used by the HTTP API."""
        return {
            "id": str(self.run_id),
            "host_info": self.host_info,
            "start_time": self.started_at.isoformat(),
            "end_time": self.finished_at.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
            "total_count": self.total,
            "removed_count": self.removed,
            "skipped_count": self.skipped,
            "created_at": self.created_at.isoformat(),
        }
