"""HTTP routes — health, version, metrics scrape, and cleanup trigger/results."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Query, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from image_cleanup.domain.errors import ResultStoreError
from image_cleanup.domain.types import RunId
from image_cleanup.infrastructure.http.dto import (
    CleanupAcceptedResponse,
    CleanupResultResponse,
    HealthResponse,
    VersionResponse,
)

if TYPE_CHECKING:
    from image_cleanup.domain.ports import ResultStorePort

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

router = APIRouter()
api_router = APIRouter(prefix="/api/v1/cleanup", tags=["Cleanup"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse()


@router.get("/version", response_model=VersionResponse)
async def version(request: Request) -> VersionResponse:
    return VersionResponse(version=request.app.state.version, build_time=request.app.state.build_time)


@router.get("/metrics")
async def metrics(request: Request) -> Response:
    return Response(content=generate_latest(request.app.state.registry), media_type=CONTENT_TYPE_LATEST)


@router.get("/favicon.ico", include_in_schema=False)
async def favicon() -> Response:
    return Response(status_code=204)


@api_router.post("", status_code=202, response_model=CleanupAcceptedResponse)
async def trigger_cleanup(request: Request) -> CleanupAcceptedResponse:
    """Start a cleanup in the background and acknowledge without waiting."""
    client = request.client.host if request.client else "unknown"
    logger.info("Cleanup API endpoint called (client=%s)", client)
    request.app.state.runner.submit()
    return CleanupAcceptedResponse(time=datetime.now(UTC))


@api_router.get("/status", response_model=CleanupResultResponse)
async def cleanup_status(request: Request) -> CleanupResultResponse:
    """Most recent persisted run."""
    store = _result_store(request)
    try:
        record = await store.latest_result()
    except ResultStoreError as exc:
        logger.error("Failed to get cleanup status: %s", exc.message)
        raise HTTPException(status_code=500, detail="Failed to retrieve cleanup status") from exc
    if record is None:
        raise HTTPException(status_code=404, detail="No cleanup results found")
    return CleanupResultResponse.from_record(record)


@api_router.get("/results", response_model=list[CleanupResultResponse])
async def list_results(
    request: Request,
    limit: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
) -> list[CleanupResultResponse]:
    store = _result_store(request)
    try:
        records = await store.list_results(limit=limit, offset=offset)
    except ResultStoreError as exc:
        logger.error("Failed to list cleanup results: %s", exc.message)
        raise HTTPException(status_code=500, detail="Failed to retrieve cleanup results") from exc
    return [CleanupResultResponse.from_record(record) for record in records]


@api_router.get("/results/{run_id}", response_model=CleanupResultResponse)
async def get_result(request: Request, run_id: str) -> CleanupResultResponse:
    store = _result_store(request)
    try:
        record = await store.get_result(RunId(run_id))
    except ResultStoreError as exc:
        logger.error("Failed to get cleanup result %s: %s", run_id, exc.message)
        raise HTTPException(status_code=500, detail="Failed to retrieve cleanup result") from exc
    if record is None:
        raise HTTPException(status_code=404, detail=f"Cleanup result {run_id} not found")
    return CleanupResultResponse.from_record(record)


def _result_store(request: Request) -> ResultStorePort:
    store: ResultStorePort | None = request.app.state.result_store
    if store is None:
        raise HTTPException(status_code=503, detail="Result persistence is disabled")
    return store
