"""Igor utility functions."""

from __future__ import annotations

import datetime as dt
import os
from pathlib import Path

from .constants import IGOR_DIR_NAME, LOG_DIR_NAME, LOG_FILE_NAME


def utc_now() -> dt.datetime:
    """Return the current time as an aware UTC datetime."""
    return dt.datetime.now(dt.UTC)


def parse_timestamp(ts_value: str | None) -> dt.datetime | None:
    """Parse a GitLab ISO 8601 timestamp into an aware datetime.

    GitLab emits values like ``2024-01-20T14:22:00.000Z``. Naive values are
    assumed to be UTC. Returns None for empty or unparseable input.
    """
    if not ts_value:
        return None
    try:
        parsed = dt.datetime.fromisoformat(ts_value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.UTC)
    return parsed


def age_seconds(ts_value: str | None, *, now: dt.datetime | None = None) -> int | None:
    """Return age in seconds for an ISO timestamp, or None if unparseable."""
    parsed = parse_timestamp(ts_value)
    if parsed is None:
        return None
    now = now or utc_now()
    return int((now - parsed).total_seconds())


def format_clock(seconds: float) -> str:
    """Format seconds as MM:SS (minutes are not wrapped at 60)."""
    total_seconds = max(int(seconds), 0)
    return f"{total_seconds // 60:02d}:{total_seconds % 60:02d}"


def humanize_duration(seconds_value: int | None) -> str:
    """Return a humanized duration from seconds."""
    if seconds_value is None:
        return "-"
    seconds_value = max(seconds_value, 0)
    if seconds_value < 60:
        return f"{seconds_value}s"
    minutes, seconds = divmod(seconds_value, 60)
    if minutes < 60:
        return f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    if hours < 24:
        return f"{hours}h {minutes:02d}m"
    days, hours = divmod(hours, 24)
    return f"{days}d {hours:02d}h"


def parse_tag_list(raw: str | None) -> list[str] | None:
    """Split a comma-separated tag string.

    Blank entries are dropped. Returns None when no tags remain so callers
    can treat "no filter" and "empty filter" the same way.
    """
    if not raw:
        return None
    tags = [part.strip() for part in raw.split(",")]
    tags = [t for t in tags if t]
    return tags or None


def default_igor_dir() -> Path:
    """Return the per-user Igor state directory (~/.igor)."""
    return Path(os.path.expanduser("~")) / IGOR_DIR_NAME


def default_log_path() -> Path:
    """Return default path for the dashboard log file."""
    return default_igor_dir() / LOG_DIR_NAME / LOG_FILE_NAME


def ensure_parent_dir(p: Path) -> None:
    """Create parent directory of path if it doesn't exist."""
    p.parent.mkdir(parents=True, exist_ok=True)
