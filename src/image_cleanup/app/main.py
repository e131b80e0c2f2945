"""Main entry point — ``python3 -m image_cleanup.app.main`` or the ``image-cleanup`` script."""

from __future__ import annotations

import asyncio
import logging
import sys

import uvicorn

from image_cleanup.app.bootstrap import Orchestrator, create_orchestrator
from image_cleanup.app.logging_config import configure_logging
from image_cleanup.app.settings import load_settings
from image_cleanup.app.version import BUILD_TIME, __version__
from image_cleanup.domain.errors import CleanupError, ConfigurationError

logger = logging.getLogger(__name__)


async def run(orchestrator: Orchestrator) -> None:
    """Start the scheduler, serve HTTP until a shutdown signal, then drain runs."""
    settings = orchestrator.settings

    if orchestrator.result_store is not None:
        try:
            await orchestrator.result_store.initialize()
        except CleanupError as exc:
            logger.error("Result store unavailable — runs will not be persisted: %s", exc.message)

    orchestrator.scheduler.start()

    config = uvicorn.Config(
        orchestrator.app,
        host=settings.http_host,
        port=settings.http_port,
        log_config=None,
        timeout_keep_alive=60,
    )
    server = uvicorn.Server(config)

    logger.info("Starting HTTP server on %s:%d", settings.http_host, settings.http_port)
    try:
        await server.serve()
    finally:
        logger.info("Stopping cleanup jobs...")
        orchestrator.scheduler.stop()
        await orchestrator.runner.shutdown(grace_seconds=settings.shutdown_timeout_seconds)
        logger.info("Service stopped")


def main() -> None:
    """Synchronous entry point for the console script."""
    print(f"Image Cleanup Service {__version__} (built at {BUILD_TIME})", file=sys.stderr)

    try:
        settings = load_settings()
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)

    configure_logging(settings)
    logger.info("Starting Image Cleanup Service %s (build %s)", __version__, BUILD_TIME)
    logger.info("%s", settings.summary())

    try:
        orchestrator = create_orchestrator(settings)
    except ConfigurationError as exc:
        logger.error("Invalid configuration: %s", exc.message)
        sys.exit(1)

    try:
        asyncio.run(run(orchestrator))
    except KeyboardInterrupt:
        logger.info("Image cleanup service shutting down")


if __name__ == "__main__":
    main()
