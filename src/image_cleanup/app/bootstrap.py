"""Bootstrap — composition root wiring all adapters to port protocols."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from image_cleanup.app.settings import CleanupSettings, load_settings
from image_cleanup.app.version import BUILD_TIME, __version__
from image_cleanup.application.cleanup_runner import CleanupRunner
from image_cleanup.application.cleanup_service import CleanupService
from image_cleanup.application.parallel_remover import ParallelRemover
from image_cleanup.application.summary_formatter import make_timestamp_formatter
from image_cleanup.domain.errors import ConfigurationError
from image_cleanup.infrastructure.adapters.crictl_inventory import CrictlInventory
from image_cleanup.infrastructure.adapters.host_info import PsutilHostInfo
from image_cleanup.infrastructure.adapters.prometheus_metrics import PrometheusMetrics
from image_cleanup.infrastructure.adapters.sqlite_result_store import SqliteResultStore
from image_cleanup.infrastructure.http.app import create_app
from image_cleanup.infrastructure.scheduler.cron_scheduler import CronScheduler, parse_schedule
from image_cleanup.infrastructure.telegram_bot.bot import LogNotifier, TelegramNotifier

if TYPE_CHECKING:
    from fastapi import FastAPI

    from image_cleanup.domain.ports import NotifierPort

logger = logging.getLogger(__name__)


@dataclass
class Orchestrator:
    """Container for all wired service components.

    Not a frozen dataclass — components are mutable singletons.
    """

    settings: CleanupSettings
    inventory: CrictlInventory
    notifier: NotifierPort
    metrics: PrometheusMetrics
    host_info: PsutilHostInfo
    service: CleanupService
    runner: CleanupRunner
    scheduler: CronScheduler
    app: FastAPI
    result_store: SqliteResultStore | None = field(default=None)


def create_orchestrator(settings: CleanupSettings | None = None) -> Orchestrator:
    """Wire all adapters and return an Orchestrator ready to run.

    If no settings are provided, loads from environment/env file.
    """
    if settings is None:
        settings = load_settings()

    _validate_settings(settings)

    # Infrastructure adapters
    inventory = CrictlInventory(binary=settings.crictl_path, timeout_seconds=settings.crictl_timeout_seconds)
    metrics = PrometheusMetrics()
    host_info = PsutilHostInfo()

    notifier: NotifierPort
    if settings.telegram_bot_token and settings.telegram_chat_id:
        notifier = TelegramNotifier(token=settings.telegram_bot_token, chat_id=settings.telegram_chat_id)
        logger.info("Telegram notifications enabled")
    else:
        notifier = LogNotifier()
        logger.warning("Telegram not configured — run summaries will only be logged")

    result_store: SqliteResultStore | None = None
    if settings.result_db_path is not None:
        result_store = SqliteResultStore(db_path=settings.result_db_path)
        logger.info("Result persistence enabled: %s", settings.result_db_path)

    # Application components
    service = CleanupService(
        inventory=inventory,
        notifier=notifier,
        metrics=metrics,
        host_info=host_info,
        result_store=result_store,
        remover=ParallelRemover(inventory, pool_size=settings.worker_pool_size),
        format_timestamp=make_timestamp_formatter(settings.display_timezone),
    )
    runner = CleanupRunner(
        service,
        scheduled_timeout_seconds=settings.cleanup_timeout_seconds,
        trigger_timeout_seconds=settings.trigger_timeout_seconds,
    )

    # Inbound adapters
    scheduler = CronScheduler(runner, settings.cleanup_schedule)
    app = create_app(
        runner=runner,
        metrics=metrics,
        registry=metrics.registry,
        result_store=result_store,
        version=__version__,
        build_time=BUILD_TIME,
    )

    logger.info(
        "Orchestrator created: schedule=%s, workers=%d, timeout=%.0fs",
        settings.cleanup_schedule,
        settings.worker_pool_size,
        settings.cleanup_timeout_seconds,
    )

    return Orchestrator(
        settings=settings,
        inventory=inventory,
        notifier=notifier,
        metrics=metrics,
        host_info=host_info,
        service=service,
        runner=runner,
        scheduler=scheduler,
        app=app,
        result_store=result_store,
    )


def _validate_settings(settings: CleanupSettings) -> None:
    """Validate critical settings at boot time.

    Raises ConfigurationError if the environment is not viable.
    """
    if settings.telegram_bot_token and not settings.telegram_chat_id:
        raise ConfigurationError("TELEGRAM_CHAT_ID is required when TELEGRAM_BOT_TOKEN is set")

    if settings.telegram_chat_id and not settings.telegram_bot_token:
        raise ConfigurationError("TELEGRAM_BOT_TOKEN is required when TELEGRAM_CHAT_ID is set")

    parse_schedule(settings.cleanup_schedule)
