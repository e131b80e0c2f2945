"""FastAPI application factory with request metrics, logging, and error shaping."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from image_cleanup.infrastructure.http.dto import ErrorResponse
from image_cleanup.infrastructure.http.routes import api_router, router

if TYPE_CHECKING:
    from prometheus_client import CollectorRegistry

    from image_cleanup.application.cleanup_runner import CleanupRunner
    from image_cleanup.domain.ports import MetricsPort, ResultStorePort

logger = logging.getLogger(__name__)

SERVICE_NAME = "image-cleanup"

# 5xx statuses with a dedicated error_type label
_ERROR_TYPES: dict[int, str] = {
    500: "internal_server_error",
    503: "service_unavailable",
    504: "gateway_timeout",
}


def create_app(
    runner: CleanupRunner,
    metrics: MetricsPort,
    registry: CollectorRegistry,
    result_store: ResultStorePort | None = None,
    version: str = "dev",
    build_time: str = "unknown",
) -> FastAPI:
    """Build the HTTP control surface around an already-wired CleanupRunner."""
    app = FastAPI(title=SERVICE_NAME, version=version)
    app.state.runner = runner
    app.state.registry = registry
    app.state.result_store = result_store
    app.state.version = version
    app.state.build_time = build_time

    app.include_router(router)
    app.include_router(api_router)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404 and request.scope.get("route") is None:
            message = "Route not found"
        else:
            message = str(exc.detail)
        return _error_response(exc.status_code, message, request)

    @app.middleware("http")
    async def observe_requests(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        started = time.monotonic()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed: %s %s", request.method, request.url.path)
            response = _error_response(500, "Internal Server Error", request)

        _record_request(metrics, request, response.status_code, time.monotonic() - started)
        return response

    return app


def _error_response(status: int, message: str, request: Request) -> JSONResponse:
    body = ErrorResponse(status=status, message=message, path=request.url.path)
    return JSONResponse(status_code=status, content=body.model_dump())


def _route_path(request: Request) -> str:
    """Route template when matched (bounded label cardinality), raw path otherwise."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


def _record_request(metrics: MetricsPort, request: Request, status: int, elapsed: float) -> None:
    path = _route_path(request)
    method = request.method

    metrics.inc_http_requests(path, method, status)
    if status == 408:
        metrics.inc_http_timeout(path, method)
    if status >= 500:
        metrics.inc_http_error(path, method, status, _ERROR_TYPES.get(status, "server_error"))

    if status >= 400:
        client = request.client.host if request.client else "unknown"
        logger.warning("HTTP request failed: %d %s %s (client=%s)", status, method, request.url.path, client)
    logger.debug("Request processed: %s %s -> %d in %.1fms", method, path, status, elapsed * 1000)
