"""Summary formatting — human-readable cleanup notifications and display timestamps."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from image_cleanup.domain.models import CleanupOutcome

logger = logging.getLogger(__name__)

TimestampFormatter = Callable[[datetime], str]

DEFAULT_DISPLAY_TIMEZONE = "Asia/Bangkok"

_DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S %Z"


def make_timestamp_formatter(timezone_name: str = DEFAULT_DISPLAY_TIMEZONE) -> TimestampFormatter:
    """Build a formatter rendering aware datetimes in ``timezone_name``.

    Falls back to UTC when the zone is unknown to the local tz database.
    """
    try:
        zone = ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown display timezone %r — falling back to UTC", timezone_name)
        zone = ZoneInfo("UTC")

    def _format(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(zone).strftime(_DISPLAY_FORMAT)

    return _format


def format_duration(seconds: float) -> str:
    """Render a duration rounded to whole seconds, e.g. ``1h2m3s`` or ``42s``."""
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{minutes}m{secs}s"
    return f"{secs}s"


def format_cleanup_message(outcome: CleanupOutcome, format_timestamp: TimestampFormatter) -> str:
    """Format the completion notification sent after a cleanup run."""
    return (
        "\U0001f504 Image cleanup completed on:\n"
        f"{outcome.host.describe()}\n"
        "\n"
        "⏱ Time Information:\n"
        f"Started: {format_timestamp(outcome.started_at)}\n"
        f"Finished: {format_timestamp(outcome.finished_at)}\n"
        f"Duration: {format_duration(outcome.duration_seconds)}\n"
        "\n"
        "\U0001f4ca Results:\n"
        f"\U0001f539 Total: {outcome.total}\n"
        f"✅ Removed: {outcome.removed}\n"
        f"⏭ Skipped: {outcome.skipped}"
    )
