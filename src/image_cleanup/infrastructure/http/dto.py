"""HTTP response models for the cleanup API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from image_cleanup.domain.models import CleanupRecord


class HealthResponse(BaseModel):
    status: str = "ok"


class VersionResponse(BaseModel):
    version: str
    build_time: str
    status: str = "ok"


class CleanupAcceptedResponse(BaseModel):
    status: str = "accepted"
    message: str = "Cleanup job has been triggered"
    time: datetime


class CleanupResultResponse(BaseModel):
    """A persisted run summary."""

    id: str
    host_info: str
    start_time: datetime
    end_time: datetime
    duration_seconds: float
    total_count: int
    removed_count: int
    skipped_count: int
    created_at: datetime

    @classmethod
    def from_record(cls, record: CleanupRecord) -> CleanupResultResponse:
        return cls.model_validate(record.to_dict())


class ErrorResponse(BaseModel):
    status: int
    message: str
    path: str
