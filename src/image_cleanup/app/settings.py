"""Cleanup settings — Pydantic BaseSettings for configuration from env and .env file."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_ENV_FILE = Path("/etc/image-cleanup/.env")
ENV_FILE_VARIABLE = "IMAGE_CLEANUP_ENV_FILE"


class CleanupSettings(BaseSettings):
    """Service configuration loaded from environment variables and an env file.

    Secrets (bot token, chat id) come from the environment only and are
    masked whenever the configuration is logged.
    """

    # Telegram
    telegram_bot_token: str = Field(default="", description="Telegram Bot API token")
    telegram_chat_id: str = Field(default="", description="Telegram chat receiving run summaries")

    # Scheduling
    cleanup_schedule: str = Field(default="0 0 * * *", description="Five-field cron expression for scheduled runs")
    cleanup_timeout_seconds: float = Field(default=1800.0, gt=0, description="Deadline for a scheduled run")
    trigger_timeout_seconds: float = Field(default=300.0, gt=0, description="Deadline for an HTTP-triggered run")
    worker_pool_size: int = Field(default=5, ge=1, le=64, description="Concurrent image removals per run")

    # Container runtime
    crictl_path: str = Field(default="crictl", description="crictl binary name or path")
    crictl_timeout_seconds: float = Field(default=120.0, gt=0, description="Timeout for a single crictl call")

    # HTTP
    http_host: str = Field(default="0.0.0.0", description="HTTP bind address")
    http_port: int = Field(default=8080, ge=1, le=65535, description="HTTP listen port")
    shutdown_timeout_seconds: float = Field(default=5.0, ge=0, description="Grace period for runs on shutdown")

    # Persistence
    result_db_path: Path | None = Field(default=None, description="SQLite file for run results. Unset = disabled")

    # Presentation
    display_timezone: str = Field(default="Asia/Bangkok", description="Timezone used in notification timestamps")

    # Logging
    log_level: str = Field(default="info", description="Root log level")
    log_dir: Path | None = Field(default=Path("/var/log/image-cleanup"), description="Rotating log file directory")
    log_max_size_mb: int = Field(default=100, ge=1, description="Rotate the log file after this many MB")
    log_max_backups: int = Field(default=5, ge=0, description="Rotated log files to keep")
    log_compress: bool = Field(default=True, description="gzip rotated log files")

    model_config = {"env_prefix": "", "env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def summary(self) -> str:
        """Multi-line configuration dump with secrets masked."""
        lines = [
            "Configuration:",
            f"  TELEGRAM_BOT_TOKEN: {mask_value(self.telegram_bot_token)}",
            f"  TELEGRAM_CHAT_ID: {mask_value(self.telegram_chat_id)}",
            f"  CLEANUP_SCHEDULE: {self.cleanup_schedule}",
            f"  CLEANUP_TIMEOUT_SECONDS: {self.cleanup_timeout_seconds:.0f}",
            f"  WORKER_POOL_SIZE: {self.worker_pool_size}",
            f"  HTTP: {self.http_host}:{self.http_port}",
            f"  RESULT_DB_PATH: {self.result_db_path or 'disabled'}",
            f"  LOG_LEVEL: {self.log_level}",
            f"  LOG_DIR: {self.log_dir or 'disabled'}",
            f"  LOG_MAX_SIZE: {self.log_max_size_mb} MB",
            f"  LOG_MAX_BACKUPS: {self.log_max_backups} files",
            f"  LOG_COMPRESS: {self.log_compress}",
        ]
        return "\n".join(lines)


def mask_value(value: str) -> str:
    """Hide a secret, keeping only the first and last 4 characters of long values."""
    if len(value) <= 8:
        return "********"
    return f"{value[:4]}...{value[-4:]}"


def load_settings() -> CleanupSettings:
    """Load settings, reading the env file named by IMAGE_CLEANUP_ENV_FILE if set."""
    env_file = Path(os.environ.get(ENV_FILE_VARIABLE, str(DEFAULT_ENV_FILE)))
    return CleanupSettings(_env_file=env_file)  # type: ignore[call-arg]
