"""Logging setup — stderr plus an optional size-rotated, gzip-compressed log file."""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from image_cleanup.app.settings import CleanupSettings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE_NAME = "image-cleanup.log"


def configure_logging(settings: CleanupSettings) -> None:
    """Install handlers on the root logger. Safe to call more than once."""
    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT)
    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    root.addHandler(stream)

    if settings.log_dir is None:
        return

    try:
        file_handler = build_file_handler(
            settings.log_dir,
            max_bytes=settings.log_max_size_mb * 1024 * 1024,
            backups=settings.log_max_backups,
            compress=settings.log_compress,
        )
    except OSError as exc:
        root.warning("File logging disabled — cannot use %s: %s", settings.log_dir, exc)
        return

    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)


def build_file_handler(log_dir: Path, max_bytes: int, backups: int, compress: bool) -> RotatingFileHandler:
    """Create the rotating handler. Raises OSError if the directory is unusable."""
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(log_dir / LOG_FILE_NAME, maxBytes=max_bytes, backupCount=backups, encoding="utf-8")
    if compress:
        handler.namer = _gzip_name
        handler.rotator = _gzip_rotate
    return handler


def _gzip_name(name: str) -> str:
    return f"{name}.gz"


def _gzip_rotate(source: str, dest: str) -> None:
    with open(source, "rb") as src, gzip.open(dest, "wb") as dst:
        shutil.copyfileobj(src, dst)
    os.remove(source)
