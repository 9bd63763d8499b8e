"""Text rendering for runner tables, shared by the dashboard and ``watch``."""

from __future__ import annotations

import datetime as dt
from collections.abc import Sequence

from ...models import Runner, RunnerManager
from ...utils import age_seconds, format_clock, humanize_duration
from ...views import HealthSummary, ManagerRow

RUNNER_COLUMNS = ["id", "type", "status", "version", "tags", "managers", "ip"]
WORKER_COLUMNS = [
    "runner",
    "tags",
    "manager",
    "system_id",
    "status",
    "version",
    "contacted",
    "ip",
]

LABELS = {
    "id": "ID",
    "type": "TYPE",
    "status": "STATUS",
    "version": "VERSION",
    "tags": "TAGS",
    "managers": "MANAGERS",
    "ip": "IP",
    "runner": "RUNNER",
    "manager": "MANAGER",
    "system_id": "SYSTEM_ID",
    "contacted": "CONTACTED",
}

CAPS = {
    "id": 10,
    "type": 14,
    "status": 16,
    "version": 12,
    "tags": 40,
    "managers": 8,
    "ip": 15,
    "runner": 10,
    "manager": 10,
    "system_id": 28,
    "contacted": 10,
}

# Dropped right to left when the terminal is too narrow
DROP_ORDER = ["ip", "contacted", "type", "version", "managers", "system_id", "manager"]


def clip_cell(value: str, width: int) -> str:
    """Clip and pad a cell to width using ASCII ellipsis."""
    if width <= 0:
        return ""
    if len(value) <= width:
        return value.ljust(width)
    if width <= 3:
        return value[:width]
    return f"{value[: width - 3]}..."


def format_tags(tags: Sequence[str]) -> str:
    return ",".join(tags) if tags else "-"


def runner_row_values(runner: Runner) -> dict[str, str]:
    """Cell values for a runner row; the status comes from the current manager."""
    current = runner.current_manager
    return {
        "id": str(runner.id),
        "type": runner.runner_type or "-",
        "status": current.status if current else runner.status,
        "version": (current.version if current else runner.version) or "-",
        "tags": format_tags(runner.tag_list),
        "managers": str(len(runner.managers)),
        "ip": (current.ip_address if current else runner.ip_address) or "-",
    }


def format_contacted(contacted_at: str | None, *, now: dt.datetime | None = None) -> str:
    seconds = age_seconds(contacted_at, now=now)
    if seconds is None:
        return "never"
    return f"{humanize_duration(seconds)} ago"


def manager_row_values(row: ManagerRow, *, now: dt.datetime | None = None) -> dict[str, str]:
    manager = row.manager
    return {
        "runner": str(row.runner_id),
        "tags": format_tags(row.runner_tags),
        "manager": str(manager.id),
        "system_id": manager.system_id,
        "status": manager.status,
        "version": manager.version or "-",
        "contacted": format_contacted(manager.contacted_at, now=now),
        "ip": manager.ip_address or "-",
    }


def compute_widths(
    columns: list[str],
    rows: list[dict[str, str]],
    *,
    max_width: int = 0,
    cap_widths: bool = True,
    sep_len: int = 2,
) -> tuple[list[str], dict[str, int]]:
    """Compute visible columns and their widths.

    With ``max_width`` > 0, columns in DROP_ORDER are removed until the
    table fits.
    """
    widths = {col: len(LABELS[col]) for col in columns}
    for values in rows:
        for col in columns:
            widths[col] = max(widths[col], len(values[col]))
    if cap_widths:
        for col in columns:
            widths[col] = min(widths[col], CAPS[col])

    columns = list(columns)
    if max_width <= 0:
        return columns, widths

    def total() -> int:
        return sum(widths[c] for c in columns) + sep_len * (len(columns) - 1)

    for col in DROP_ORDER:
        if total() <= max_width:
            break
        if col in columns:
            columns.remove(col)
    return columns, widths


def render_line(
    values: dict[str, str], *, columns: list[str], widths: dict[str, int], col_sep: str = "  "
) -> str:
    return col_sep.join(clip_cell(values[col], widths[col]) for col in columns).rstrip()


def render_header(columns: list[str], widths: dict[str, int], col_sep: str = "  ") -> str:
    return render_line(LABELS, columns=columns, widths=widths, col_sep=col_sep)


def render_table(
    columns: list[str],
    rows: list[dict[str, str]],
    *,
    max_width: int = 0,
    cap_widths: bool = True,
    col_sep: str = "  ",
) -> tuple[str, list[str]]:
    """Return (header, lines) for a set of row values."""
    columns, widths = compute_widths(
        columns, rows, max_width=max_width, cap_widths=cap_widths, sep_len=len(col_sep)
    )
    header = render_header(columns, widths, col_sep)
    lines = [render_line(v, columns=columns, widths=widths, col_sep=col_sep) for v in rows]
    return header, lines


def format_health_line(summary: HealthSummary) -> str:
    state = "HEALTHY" if summary.is_healthy() else "DEGRADED"
    return (
        f"{summary.online_count}/{summary.total_count} runners online "
        f"({summary.percentage():.1f}%) - {state}"
    )


def format_manager_brief(manager: RunnerManager) -> str:
    return f"{manager.system_id}({manager.status}/{manager.version or '-'})"


def format_runner_brief(runner: Runner) -> str:
    """One-line runner summary used by headless polling output."""
    managers = ", ".join(format_manager_brief(m) for m in runner.managers)
    return f"  Runner {runner.id} [{format_tags(runner.tag_list)}] managers=[{managers}]"


def format_poll_header(elapsed_s: float, poll_number: int, count: int, command: str) -> str:
    return (
        f"[{format_clock(elapsed_s)}] Poll #{poll_number} - "
        f"{count} runners matched (command: {command})"
    )
