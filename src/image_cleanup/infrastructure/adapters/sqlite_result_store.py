"""SqliteResultStore — persist cleanup run summaries in a local SQLite database."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sqlite3
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from image_cleanup.domain.errors import ResultStoreError
from image_cleanup.domain.models import CleanupOutcome, CleanupRecord
from image_cleanup.domain.types import RunId

if TYPE_CHECKING:
    from image_cleanup.domain.ports import ResultStorePort

logger = logging.getLogger(__name__)

# Fixed-width UTC timestamps so lexical order matches chronological order
_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cleanup_results (
    id TEXT PRIMARY KEY,
    host_info TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    duration_ms INTEGER NOT NULL,
    total_count INTEGER NOT NULL,
    removed INTEGER NOT NULL,
    skipped INTEGER NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_cleanup_results_start_time ON cleanup_results(start_time);
CREATE INDEX IF NOT EXISTS idx_cleanup_results_created_at ON cleanup_results(created_at);
"""

_COLUMNS = "id, host_info, start_time, end_time, duration_ms, total_count, removed, skipped, created_at"


class SqliteResultStore:
    """Store one row per completed cleanup run.

    Satisfies the ResultStorePort protocol. Blocking sqlite3 calls run in a
    worker thread with a fresh connection per operation.
    """

    if TYPE_CHECKING:
        _protocol_check: ResultStorePort

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        self._init_lock = threading.Lock()
        self._initialized = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def initialize(self) -> None:
        """Create the data directory and schema if missing."""
        await asyncio.to_thread(self._ensure_schema)

    async def save_result(self, outcome: CleanupOutcome) -> CleanupRecord:
        """Insert a run summary. Raises ResultStoreError on duplicate id or I/O failure."""
        record = CleanupRecord.from_outcome(outcome, created_at=datetime.now(UTC))
        await asyncio.to_thread(self._insert, record)
        logger.info("Cleanup result saved: %s", record.run_id)
        return record

    async def latest_result(self) -> CleanupRecord | None:
        rows = await asyncio.to_thread(
            self._query, f"SELECT {_COLUMNS} FROM cleanup_results ORDER BY start_time DESC LIMIT 1", ()
        )
        return _row_to_record(rows[0]) if rows else None

    async def get_result(self, run_id: RunId) -> CleanupRecord | None:
        rows = await asyncio.to_thread(
            self._query, f"SELECT {_COLUMNS} FROM cleanup_results WHERE id = ?", (str(run_id),)
        )
        return _row_to_record(rows[0]) if rows else None

    async def list_results(self, limit: int, offset: int = 0) -> list[CleanupRecord]:
        """Page through results, newest first."""
        if limit < 1 or offset < 0:
            raise ValueError(f"limit must be >= 1 and offset >= 0, got limit={limit}, offset={offset}")
        rows = await asyncio.to_thread(
            self._query,
            f"SELECT {_COLUMNS} FROM cleanup_results ORDER BY start_time DESC LIMIT ? OFFSET ?",
            (limit, offset),
        )
        return [_row_to_record(row) for row in rows]

    def _ensure_schema(self) -> None:
        with self._init_lock:
            if self._initialized:
                return
            try:
                self._db_path.parent.mkdir(parents=True, exist_ok=True)
                with contextlib.closing(sqlite3.connect(self._db_path)) as conn:
                    mode = conn.execute("PRAGMA journal_mode=WAL;").fetchone()
                    if mode is None or str(mode[0]).lower() != "wal":
                        logger.warning("Failed to enable WAL mode for %s", self._db_path)
                    conn.executescript(_SCHEMA)
            except (OSError, sqlite3.Error) as exc:
                raise ResultStoreError(f"Failed to initialize result store at {self._db_path}: {exc}") from exc
            self._initialized = True

    def _insert(self, record: CleanupRecord) -> None:
        self._ensure_schema()
        try:
            with contextlib.closing(sqlite3.connect(self._db_path)) as conn, conn:
                conn.execute(
                    f"INSERT INTO cleanup_results ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        str(record.run_id),
                        record.host_info,
                        _format_ts(record.started_at),
                        _format_ts(record.finished_at),
                        int(round(record.duration_seconds * 1000)),
                        record.total,
                        record.removed,
                        record.skipped,
                        _format_ts(record.created_at),
                    ),
                )
        except sqlite3.Error as exc:
            raise ResultStoreError(f"Failed to save cleanup result {record.run_id}: {exc}") from exc

    def _query(self, sql: str, params: tuple[object, ...]) -> list[tuple[Any, ...]]:
        self._ensure_schema()
        try:
            with contextlib.closing(sqlite3.connect(self._db_path)) as conn:
                return list(conn.execute(sql, params).fetchall())
        except sqlite3.Error as exc:
            raise ResultStoreError(f"Failed to query cleanup results: {exc}") from exc


def _format_ts(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(_TIMESTAMP_FORMAT)


def _parse_ts(raw: object, column: str) -> datetime:
    try:
        return datetime.strptime(str(raw), _TIMESTAMP_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        pass
    try:
        parsed = datetime.fromisoformat(str(raw))
    except ValueError:
        logger.warning("Failed to parse %s value %r", column, raw)
        return _EPOCH
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _row_to_record(row: tuple[Any, ...]) -> CleanupRecord:
    run_id, host_info, start, end, duration_ms, total, removed, skipped, created = row
    return CleanupRecord(
        run_id=RunId(str(run_id)),
        host_info=str(host_info),
        started_at=_parse_ts(start, "start_time"),
        finished_at=_parse_ts(end, "end_time"),
        duration_seconds=int(duration_ms) / 1000.0,
        total=int(total),
        removed=int(removed),
        skipped=int(skipped),
        created_at=_parse_ts(created, "created_at"),
    )
