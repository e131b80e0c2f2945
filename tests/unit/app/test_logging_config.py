"""Tests for logging setup — stderr handler and gzip-rotating file handler."""

from __future__ import annotations

import gzip
import logging
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from image_cleanup.app.logging_config import LOG_FILE_NAME, build_file_handler, configure_logging
from image_cleanup.app.settings import CleanupSettings


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_level)


class TestConfigureLogging:
    def test_stderr_only_without_log_dir(self) -> None:
        configure_logging(CleanupSettings(log_dir=None, log_level="debug"))
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert not isinstance(root.handlers[0], RotatingFileHandler)

    def test_adds_file_handler(self, tmp_path: Path) -> None:
        configure_logging(CleanupSettings(log_dir=tmp_path / "logs"))
        root = logging.getLogger()
        file_handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1
        assert Path(file_handlers[0].baseFilename) == tmp_path / "logs" / LOG_FILE_NAME

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging(CleanupSettings(log_dir=None, log_level="verbose"))
        assert logging.getLogger().level == logging.INFO

    def test_unusable_log_dir_keeps_stderr(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x")
        configure_logging(CleanupSettings(log_dir=blocker / "logs"))
        root = logging.getLogger()
        assert len(root.handlers) == 1

    def test_idempotent(self) -> None:
        settings = CleanupSettings(log_dir=None)
        configure_logging(settings)
        configure_logging(settings)
        assert len(logging.getLogger().handlers) == 1


class TestBuildFileHandler:
    def test_rotated_files_are_gzipped(self, tmp_path: Path) -> None:
        handler = build_file_handler(tmp_path, max_bytes=200, backups=2, compress=True)
        handler.setFormatter(logging.Formatter("%(message)s"))
        try:
            for n in range(20):
                handler.emit(logging.makeLogRecord({"msg": f"line {n:03d} " + "x" * 40}))
        finally:
            handler.close()

        rotated = sorted(tmp_path.glob(f"{LOG_FILE_NAME}.*.gz"))
        assert 1 <= len(rotated) <= 2
        with gzip.open(rotated[0], "rt") as fh:
            assert "line" in fh.read()

    def test_uncompressed_rotation(self, tmp_path: Path) -> None:
        handler = build_file_handler(tmp_path, max_bytes=100, backups=1, compress=False)
        try:
            for n in range(10):
                handler.emit(logging.makeLogRecord({"msg": f"line {n} " + "y" * 40}))
        finally:
            handler.close()

        assert (tmp_path / f"{LOG_FILE_NAME}.1").exists()
        assert not list(tmp_path.glob("*.gz"))
